"""
Compilation units.

A CompilationUnit is the explicit state of one expansion pass over one
Python module: the active type context, the emission sink and the symbol
minter. It is created per module and threaded through every call-site
expansion, so no expansion state is shared between modules.
"""

from __future__ import annotations

from typing import List, Optional

from .codegen.boundary import BoundaryGenerator, CallSite, ScopeResolver
from .codegen.emission import EmissionHandle, EmissionSink
from .codegen.safety import Purity, Safety
from .context import DEFAULT_CONTEXT, TypeContext
from .parser import ParsedSnippet, parse_snippet
from .utils.exceptions import ConfigurationOrderError, SourceLocation
from .utils.logging import ExpansionLogger
from .utils.naming import SymbolMinter

events = ExpansionLogger(__name__)


class CompilationUnit:
    """
    Per-module generation state.

    The type context may be replaced only before the first snippet is
    expanded; afterwards it is frozen for the rest of the unit.
    """

    def __init__(
        self,
        name: str,
        filename: str = "<unknown>",
        context: Optional[TypeContext] = None,
        libc_shim: bool = True,
    ):
        """
        Args:
            name: Dotted module name, used to derive exported symbols
            filename: Source file, used in diagnostics
            context: Initial type context (defaults to `basic`)
            libc_shim: Whether the emitted file aliases `libc` to std types
        """
        self.name = name
        self.filename = filename
        self._context = context if context is not None else DEFAULT_CONTEXT
        self.sink = EmissionSink(name, libc_shim=libc_shim)
        self.minter = SymbolMinter(name)
        self._generator = BoundaryGenerator(self.sink)
        self._call_sites: List[CallSite] = []
        events.log_unit_start(name, filename)

    @property
    def context(self) -> TypeContext:
        return self._context

    @property
    def call_sites(self) -> List[CallSite]:
        return list(self._call_sites)

    @property
    def expanded_count(self) -> int:
        return len(self._call_sites)

    def set_context(self, context: TypeContext) -> None:
        """
        Replace the active type context.

        Raises:
            ConfigurationOrderError: If a snippet was already expanded
        """
        if self._call_sites:
            raise ConfigurationOrderError(self.name, len(self._call_sites))
        self._context = context

    def emit_code_block(self, source_text: str) -> EmissionHandle:
        """Append top-level Rust items to the unit's emitted source."""
        return self.sink.emit(source_text)

    def expand(
        self,
        snippet: ParsedSnippet,
        safety: Safety,
        purity: Purity,
        resolver: ScopeResolver,
    ) -> CallSite:
        """
        Expand one parsed snippet into a call site.

        Args:
            snippet: Parsed snippet
            safety: Calling contract selected by the entry point
            purity: Purity selected by the entry point
            resolver: Lookup of placeholder names in the enclosing scope

        Returns:
            CallSite whose declaration and call expression the caller installs
        """
        symbol = self.minter.mint()
        call_site = self._generator.generate(
            snippet,
            self._context,
            symbol,
            self.minter.binding_name(symbol),
            safety,
            purity,
            resolver,
        )
        self._call_sites.append(call_site)
        events.log_snippet_expanded(symbol, snippet.location, len(snippet.args))
        return call_site

    def expand_text(
        self,
        text: str,
        safety: Safety,
        purity: Purity,
        resolver: ScopeResolver,
        location: Optional[SourceLocation] = None,
    ) -> CallSite:
        """Parse and expand raw snippet text."""
        return self.expand(parse_snippet(text, location), safety, purity, resolver)
