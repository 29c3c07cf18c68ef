"""
Boundary code generation.

For one parsed snippet this module produces the three artifacts of a call
site: the exported Rust function, the Python declaration binding it, and
the Python call expression that replaces the snippet.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from ..context import HostType, RType, TypeContext
from ..parser import ParsedSnippet
from ..utils.exceptions import UnmappedTypeError, UnresolvedIdentifierError
from ..utils.logging import get_logger
from .emission import EmissionHandle, EmissionSink
from .safety import CallingConvention, Purity, Safety, dispatch

logger = get_logger(__name__)

# Maps a placeholder name to the Python expression that reads it at the call
# site, or None when the name is not visible there.
ScopeResolver = Callable[[str], Optional[str]]

UNIT_VARIABLE = "_inline_rust_unit"


@dataclass(frozen=True)
class ResolvedSignature:
    """Host types for the return value and each argument, in order."""

    return_type: HostType
    param_types: Tuple[HostType, ...]


@dataclass(frozen=True)
class GeneratedFunction:
    """An exported Rust function implementing one snippet."""

    symbol: str
    source: str
    return_type: RType
    param_types: Tuple[RType, ...]
    param_names: Tuple[str, ...]


@dataclass(frozen=True)
class HostResult:
    """Declared result of a host declaration."""

    host_type: HostType
    effectful: bool

    def __str__(self) -> str:
        if self.effectful:
            return f"IO[{self.host_type}]"
        return str(self.host_type)


@dataclass(frozen=True)
class HostDeclaration:
    """Python binding of one exported Rust symbol."""

    name: str
    symbol: str
    param_types: Tuple[HostType, ...]
    result: HostResult
    convention: CallingConvention

    @property
    def safety(self) -> Safety:
        return self.convention.safety

    def render(self) -> str:
        """Python statement that creates the binding at import time."""
        params = ", ".join(repr(p.reference) for p in self.param_types)
        if len(self.param_types) == 1:
            params += ","
        return (
            f"{self.name} = {UNIT_VARIABLE}.declare("
            f"{self.symbol!r}, ({params}), {self.result.host_type.reference!r}, "
            f"safety={self.convention.safety.value!r}, pure={self.convention.memoize!r})"
        )


@dataclass(frozen=True)
class CallSite:
    """Everything generated for one snippet occurrence."""

    snippet: ParsedSnippet
    safety: Safety
    purity: Purity
    function: GeneratedFunction
    declaration: HostDeclaration
    call_expression: str
    handle: EmissionHandle

    @property
    def location(self):
        return self.snippet.location


def resolve_signature(snippet: ParsedSnippet, context: TypeContext) -> ResolvedSignature:
    """
    Map the return type and every argument type through `context`.

    Raises:
        UnmappedTypeError: Naming the first unmapped type and its position
    """
    return_type = context.lookup(snippet.return_type)
    if return_type is None:
        raise UnmappedTypeError(str(snippet.return_type), "return type", snippet.location)

    params: List[HostType] = []
    for index, arg in enumerate(snippet.args, start=1):
        host_type = context.lookup(arg.rust_type)
        if host_type is None:
            raise UnmappedTypeError(str(arg.rust_type), f"argument {index} ('{arg.name}')", snippet.location)
        if host_type.is_void:
            raise UnmappedTypeError(str(arg.rust_type), f"argument {index} ('{arg.name}')", snippet.location)
        params.append(host_type)

    return ResolvedSignature(return_type=return_type, param_types=tuple(params))


def resolve_arguments(snippet: ParsedSnippet, resolver: ScopeResolver) -> Tuple[str, ...]:
    """
    Resolve each placeholder name in the enclosing Python scope.

    Raises:
        UnresolvedIdentifierError: For the first name that is not visible
    """
    expressions = []
    for arg in snippet.args:
        expression = resolver(arg.name)
        if expression is None:
            raise UnresolvedIdentifierError(arg.name, snippet.location)
        expressions.append(expression)
    return tuple(expressions)


def render_rust_function(symbol: str, snippet: ParsedSnippet) -> str:
    """
    Render the exported, non-mangled Rust function for a snippet.

    Parameters keep the placeholder order and their declared Rust types;
    the body is the snippet block with placeholders replaced by names.
    """
    params = ", ".join(f"{arg.rust_name}: {arg.rust_type}" for arg in snippet.args)
    return "\n".join(
        [
            "#[no_mangle]",
            f'pub extern "C" fn {symbol}({params}) -> {snippet.return_type}',
            snippet.body.render(),
        ]
    ) + "\n"


def build_declaration(
    binding_name: str,
    symbol: str,
    signature: ResolvedSignature,
    convention: CallingConvention,
) -> HostDeclaration:
    """Construct the host declaration for a resolved signature."""
    return HostDeclaration(
        name=binding_name,
        symbol=symbol,
        param_types=signature.param_types,
        result=HostResult(signature.return_type, convention.effect_wrapped),
        convention=convention,
    )


def build_call_expression(declaration: HostDeclaration, arguments: Tuple[str, ...]) -> str:
    """Apply the declared binding to the resolved argument expressions."""
    return f"{declaration.name}({', '.join(arguments)})"


class BoundaryGenerator:
    """
    Runs the five generation steps for one call site.

    The generator holds no state between call sites; the symbol and binding
    name are supplied by the compilation unit.
    """

    def __init__(self, sink: EmissionSink):
        self.sink = sink

    def generate(
        self,
        snippet: ParsedSnippet,
        context: TypeContext,
        symbol: str,
        binding_name: str,
        safety: Safety,
        purity: Purity,
        resolver: ScopeResolver,
    ) -> CallSite:
        """
        Generate and emit the boundary for one snippet.

        Args:
            snippet: Parsed snippet
            context: Active type context
            symbol: Freshly minted exported symbol
            binding_name: Python name for the declaration
            safety: Selected calling contract
            purity: Selected purity
            resolver: Enclosing-scope lookup for placeholder names

        Returns:
            CallSite with the generated function, declaration and call

        Raises:
            UnmappedTypeError: If a type has no correspondence
            UnresolvedIdentifierError: If a placeholder name is not in scope
        """
        signature = resolve_signature(snippet, context)
        arguments = resolve_arguments(snippet, resolver)

        source = render_rust_function(symbol, snippet)
        function = GeneratedFunction(
            symbol=symbol,
            source=source,
            return_type=snippet.return_type,
            param_types=tuple(arg.rust_type for arg in snippet.args),
            param_names=snippet.arg_names,
        )
        handle = self.sink.emit(source, symbol=symbol)

        declaration = build_declaration(binding_name, symbol, signature, dispatch(safety, purity))
        call_expression = build_call_expression(declaration, arguments)

        logger.debug(f"Generated {symbol}: {declaration.render()}")
        return CallSite(
            snippet=snippet,
            safety=safety,
            purity=purity,
            function=function,
            declaration=declaration,
            call_expression=call_expression,
            handle=handle,
        )
