"""
Module expansion.

A source-to-source pass over one Python module. Every call to an inline
Rust entry point is expanded through the module's CompilationUnit: the
Rust boundary function goes to the unit's emission sink, the Python
declaration is installed at the top of the module, and the call is replaced
by a call to that declaration. `set_context` and `emit_code_block`
statements are interpreted at expansion time and removed.

The pass is built on libcst so that the rest of the module keeps its exact
formatting, and uses libcst's scope analysis to resolve placeholder names.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Set, Tuple

import libcst as cst
from libcst.metadata import MetadataWrapper, PositionProvider, QualifiedNameProvider, ScopeProvider

from .codegen.boundary import HostDeclaration, UNIT_VARIABLE
from .codegen.safety import ENTRY_POINTS, entry_point_modes
from .context import TypeContext, basic, libc, merge, mk_context, singleton
from .quasiquote import DIRECTIVES
from .unit import CompilationUnit
from .utils.exceptions import ExpansionError, InlineRustError, SourceLocation
from .utils.logging import get_logger

logger = get_logger(__name__)

PACKAGE_NAME = "inline_rust"
LOADER_ALIAS = "_inline_rust_load_unit"
BUILTIN_CONTEXTS = {"basic": basic, "libc": libc}


class CodeInsertion(ABC):
    """
    Host-side insertion capability used while expanding one call site.

    register_external_declaration installs a binding at module level,
    substitute_expression produces the node that replaces the snippet, and
    lookup_enclosing_scope_identifier resolves a placeholder name.
    """

    @abstractmethod
    def register_external_declaration(self, declaration: HostDeclaration) -> None:
        """Install `declaration` so that it is defined before the module body runs."""

    @abstractmethod
    def substitute_expression(self, expression: str) -> cst.BaseExpression:
        """Return the node that replaces the snippet at its call site."""

    @abstractmethod
    def lookup_enclosing_scope_identifier(self, name: str) -> Optional[str]:
        """Return the expression reading `name` at the call site, or None."""


class ScopeInsertion(CodeInsertion):
    """CodeInsertion for one call site, backed by libcst scope metadata."""

    def __init__(self, declarations: List[HostDeclaration], scope: Optional[object]):
        self._declarations = declarations
        self._scope = scope

    def register_external_declaration(self, declaration: HostDeclaration) -> None:
        self._declarations.append(declaration)

    def substitute_expression(self, expression: str) -> cst.BaseExpression:
        return cst.parse_expression(expression)

    def lookup_enclosing_scope_identifier(self, name: str) -> Optional[str]:
        if self._scope is None:
            return None
        if name in self._scope:
            return name
        return None


@dataclass
class ExpansionResult:
    """Output of expanding one module."""

    code: str
    unit: CompilationUnit
    changed: bool

    @property
    def has_rust(self) -> bool:
        return not self.unit.sink.is_empty


def _is_docstring(statement: cst.CSTNode) -> bool:
    return (
        isinstance(statement, cst.SimpleStatementLine)
        and len(statement.body) == 1
        and isinstance(statement.body[0], cst.Expr)
        and isinstance(statement.body[0].value, (cst.SimpleString, cst.ConcatenatedString))
    )


def _is_future_import(statement: cst.CSTNode) -> bool:
    if not isinstance(statement, cst.SimpleStatementLine):
        return False
    return any(
        isinstance(small, cst.ImportFrom)
        and isinstance(small.module, cst.Name)
        and small.module.value == "__future__"
        for small in statement.body
    )


class InlineRustTransformer(cst.CSTTransformer):
    """Rewrites entry-point calls and directives of one module."""

    METADATA_DEPENDENCIES = (PositionProvider, QualifiedNameProvider, ScopeProvider)

    def __init__(self, unit: CompilationUnit, module: cst.Module, library_ref: str):
        super().__init__()
        self.unit = unit
        self.module = module
        self.library_ref = library_ref
        self.declarations: List[HostDeclaration] = []
        self._block_depth = 0
        self._directive_calls: Set[int] = set()
        self._directive_lines: Set[int] = set()

    # -- helpers ------------------------------------------------------------

    def _location(self, node: cst.CSTNode) -> SourceLocation:
        position = self.get_metadata(PositionProvider, node, None)
        if position is None:
            return SourceLocation(self.unit.filename, 1, 1)
        return SourceLocation(self.unit.filename, position.start.line, position.start.column + 1)

    def _entry_name(self, call: cst.Call) -> Optional[str]:
        for qualified in self.get_metadata(QualifiedNameProvider, call.func, set()):
            module, _, attr = qualified.name.rpartition(".")
            if module.split(".")[0] != PACKAGE_NAME:
                continue
            if attr in ENTRY_POINTS or attr in DIRECTIVES:
                return attr
        return None

    def _literal_argument(self, call: cst.Call, entry: str) -> cst.SimpleString:
        if len(call.args) != 1 or call.args[0].keyword is not None or call.args[0].star:
            raise ExpansionError(f"'{entry}' takes exactly one string literal argument", self._location(call))
        value = call.args[0].value
        if not isinstance(value, cst.SimpleString) or isinstance(value.evaluated_value, bytes):
            raise ExpansionError(
                f"'{entry}' requires a plain string literal (no f-strings, bytes or concatenation)",
                self._location(value),
            )
        return value

    def _content_location(self, literal: cst.SimpleString) -> SourceLocation:
        start = self._location(literal)
        skip = len(literal.prefix) + len(literal.quote)
        return SourceLocation(start.filename, start.line, start.column + skip)

    # -- traversal ----------------------------------------------------------

    def visit_IndentedBlock(self, node: cst.IndentedBlock) -> Optional[bool]:
        self._block_depth += 1
        return True

    def leave_IndentedBlock(self, original_node: cst.IndentedBlock, updated_node: cst.IndentedBlock) -> cst.IndentedBlock:
        self._block_depth -= 1
        return updated_node

    def visit_SimpleStatementSuite(self, node: cst.SimpleStatementSuite) -> Optional[bool]:
        self._block_depth += 1
        return True

    def leave_SimpleStatementSuite(
        self, original_node: cst.SimpleStatementSuite, updated_node: cst.SimpleStatementSuite
    ) -> cst.SimpleStatementSuite:
        self._block_depth -= 1
        return updated_node

    def visit_SimpleStatementLine(self, node: cst.SimpleStatementLine) -> Optional[bool]:
        if self._block_depth != 0 or len(node.body) != 1:
            return True
        statement = node.body[0]
        if isinstance(statement, cst.Expr) and isinstance(statement.value, cst.Call):
            if self._entry_name(statement.value) in DIRECTIVES:
                self._directive_calls.add(id(statement.value))
                self._directive_lines.add(id(node))
        return True

    def leave_Call(self, original_node: cst.Call, updated_node: cst.Call) -> cst.BaseExpression:
        entry = self._entry_name(original_node)
        if entry is None:
            return updated_node

        if entry in DIRECTIVES:
            if id(original_node) not in self._directive_calls:
                raise ExpansionError(
                    f"'{entry}' must be used as a module-level statement", self._location(original_node)
                )
            return updated_node

        literal = self._literal_argument(original_node, entry)
        safety, purity = entry_point_modes(entry)
        insertion = ScopeInsertion(self.declarations, self.get_metadata(ScopeProvider, original_node, None))

        call_site = self.unit.expand_text(
            literal.evaluated_value,
            safety,
            purity,
            insertion.lookup_enclosing_scope_identifier,
            self._content_location(literal),
        )
        insertion.register_external_declaration(call_site.declaration)
        return insertion.substitute_expression(call_site.call_expression)

    def leave_SimpleStatementLine(
        self, original_node: cst.SimpleStatementLine, updated_node: cst.SimpleStatementLine
    ):
        if id(original_node) not in self._directive_lines:
            return updated_node

        call = original_node.body[0].value
        entry = self._entry_name(call)
        if entry == "emit_code_block":
            literal = self._literal_argument(call, entry)
            self.unit.emit_code_block(literal.evaluated_value)
        else:
            self.unit.set_context(self._evaluate_context(call))
        return cst.RemoveFromParent()

    def _evaluate_context(self, call: cst.Call) -> TypeContext:
        if len(call.args) != 1 or call.args[0].keyword is not None or call.args[0].star:
            raise ExpansionError("'set_context' takes exactly one argument", self._location(call))
        argument = call.args[0].value
        try:
            return self._context_expression(argument)
        except ExpansionError:
            raise
        except (InlineRustError, ValueError) as e:
            code = self.module.code_for_node(argument)
            raise ExpansionError(f"Could not evaluate type context {code!r}: {e}", self._location(call)) from e

    def _package_attribute(self, node: cst.BaseExpression) -> Optional[str]:
        for qualified in self.get_metadata(QualifiedNameProvider, node, set()):
            module, _, attr = qualified.name.rpartition(".")
            if module.split(".")[0] == PACKAGE_NAME:
                return attr
        return None

    def _context_expression(self, node: cst.BaseExpression) -> TypeContext:
        # Interpreted, never executed: built-in contexts, the constructors
        # over string literals, and `|`.
        if isinstance(node, cst.BinaryOperation) and isinstance(node.operator, cst.BitOr):
            return self._context_expression(node.left) | self._context_expression(node.right)

        if isinstance(node, (cst.Name, cst.Attribute)):
            name = self._package_attribute(node)
            if name in BUILTIN_CONTEXTS:
                return BUILTIN_CONTEXTS[name]

        elif isinstance(node, cst.Call):
            name = self._package_attribute(node.func)
            if any(arg.keyword is not None or arg.star for arg in node.args):
                raise ExpansionError(f"'{name}' takes positional arguments only", self._location(node))
            args = [arg.value for arg in node.args]
            if name == "merge":
                return merge(*(self._context_expression(arg) for arg in args))
            if name == "singleton" and len(args) == 2:
                return singleton(self._string_literal(args[0]), self._host_literal(args[1]))
            if name == "mk_context" and len(args) == 1:
                return mk_context(self._correspondence(element) for element in self._sequence(args[0]))

        raise ExpansionError(
            f"Unsupported type context expression {self.module.code_for_node(node)!r}; "
            f"use basic, libc, singleton, mk_context, merge or '|'",
            self._location(node),
        )

    def _string_literal(self, node: cst.BaseExpression) -> str:
        if isinstance(node, cst.SimpleString) and isinstance(node.evaluated_value, str):
            return node.evaluated_value
        raise ExpansionError(
            f"Expected a string literal, got {self.module.code_for_node(node)!r}", self._location(node)
        )

    def _host_literal(self, node: cst.BaseExpression) -> Optional[str]:
        if isinstance(node, cst.Name) and node.value == "None":
            return None
        return self._string_literal(node)

    def _sequence(self, node: cst.BaseExpression) -> List[cst.BaseExpression]:
        if isinstance(node, (cst.List, cst.Tuple)) and not any(
            isinstance(element, cst.StarredElement) for element in node.elements
        ):
            return [element.value for element in node.elements]
        raise ExpansionError(
            f"Expected a list of (rust, host) pairs, got {self.module.code_for_node(node)!r}", self._location(node)
        )

    def _correspondence(self, node: cst.BaseExpression) -> Tuple[str, Optional[str]]:
        pair = self._sequence(node) if isinstance(node, cst.Tuple) else []
        if len(pair) != 2:
            raise ExpansionError(
                f"Expected a (rust, host) pair, got {self.module.code_for_node(node)!r}", self._location(node)
            )
        return self._string_literal(pair[0]), self._host_literal(pair[1])

    def leave_Module(self, original_node: cst.Module, updated_node: cst.Module) -> cst.Module:
        if self.unit.sink.is_empty:
            return updated_node

        body = list(updated_node.body)
        index = 0
        if index < len(body) and _is_docstring(body[index]):
            index += 1
        while index < len(body) and _is_future_import(body[index]):
            index += 1

        prelude = [
            cst.parse_statement(f"from inline_rust.runtime import load_unit as {LOADER_ALIAS}\n"),
            cst.parse_statement(f"{UNIT_VARIABLE} = {LOADER_ALIAS}(__name__, __file__, {self.library_ref!r})\n"),
        ]
        prelude.extend(cst.parse_statement(decl.render() + "\n") for decl in self.declarations)
        return updated_node.with_changes(body=body[:index] + prelude + body[index:])


def expand_module(
    source: str,
    module_name: str,
    filename: str = "<unknown>",
    library_ref: str = "",
    libc_shim: bool = True,
) -> ExpansionResult:
    """
    Expand all inline Rust in one module's source.

    Args:
        source: Python source text
        module_name: Dotted module name (the compilation unit name)
        filename: Path used in diagnostics
        library_ref: Library path written into the loader call; relative
            paths are resolved against the module's directory at runtime
        libc_shim: Whether the emitted Rust aliases `libc` to std types

    Returns:
        ExpansionResult with the rewritten source and the compilation unit

    Raises:
        InlineRustError: Any expansion failure; nothing is emitted for the
            module in that case
    """
    try:
        module = cst.parse_module(source)
    except cst.ParserSyntaxError as e:
        raise ExpansionError(
            f"Python syntax error: {e.message}", SourceLocation(filename, e.raw_line, e.raw_column + 1)
        ) from e

    unit = CompilationUnit(module_name, filename, libc_shim=libc_shim)
    wrapper = MetadataWrapper(module)
    transformer = InlineRustTransformer(unit, wrapper.module, library_ref)
    new_module = wrapper.visit(transformer)

    changed = bool(transformer.declarations) or not unit.sink.is_empty or new_module.code != source
    logger.info(f"Expanded {unit.expanded_count} snippets in '{module_name}'")
    return ExpansionResult(code=new_module.code, unit=unit, changed=changed)
