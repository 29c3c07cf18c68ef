"""
Snippet parsing.

Turns the text of an inline Rust snippet into a ParsedSnippet: the declared
return type, the body block, and the ordered `$(name: Type)` placeholders
found in it. Rust types are reduced to a canonical spelling so that they can
be used as keys of a type context.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedInput, UnexpectedToken

from ..context import RType
from ..utils.exceptions import SnippetParseError, SourceLocation, UNKNOWN_LOCATION
from ..utils.logging import get_logger

logger = get_logger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")

_PARSER = Lark(
    _GRAMMAR_PATH.read_text(),
    parser="lalr",
    lexer="basic",
    start=["snippet", "rtype"],
    keep_all_tokens=True,
    maybe_placeholders=False,
)

# Keywords that can be used as raw identifiers (`r#loop`).
RUST_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "dyn", "else", "enum",
        "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop", "match",
        "mod", "move", "mut", "pub", "ref", "return", "static", "struct", "trait",
        "true", "type", "unsafe", "use", "where", "while", "abstract", "become",
        "box", "do", "final", "macro", "override", "priv", "typeof", "unsized",
        "virtual", "yield", "try", "gen",
    }
)
# Keywords that cannot be raw identifiers.
_RESERVED_PATH_KEYWORDS = frozenset({"self", "Self", "super", "crate", "_"})


def rust_identifier(name: str) -> str:
    """Spelling of a Python variable name as a Rust function parameter."""
    if name in _RESERVED_PATH_KEYWORDS:
        return f"{name}_"
    if name in RUST_KEYWORDS:
        return f"r#{name}"
    return name


@dataclass(frozen=True)
class Placeholder:
    """One `$(name: Type)` reference to a Python variable."""

    name: str
    rust_type: RType
    # Offsets into the snippet text, end exclusive.
    span: Tuple[int, int] = field(compare=False)

    @property
    def rust_name(self) -> str:
        return rust_identifier(self.name)


@dataclass(frozen=True)
class SnippetBody:
    """The body block of a snippet, kept as source text with placeholder spans."""

    text: str
    offset: int
    spans: Tuple[Tuple[int, int, str], ...] = ()

    def render(self) -> str:
        """Body text with every placeholder replaced by its parameter name."""
        pieces: List[str] = []
        cursor = 0
        for start, end, name in self.spans:
            pieces.append(self.text[cursor:start - self.offset])
            pieces.append(rust_identifier(name))
            cursor = end - self.offset
        pieces.append(self.text[cursor:])
        return "".join(pieces)


@dataclass(frozen=True)
class ParsedSnippet:
    """Structured form of one snippet."""

    return_type: RType
    body: SnippetBody
    args: Tuple[Placeholder, ...]
    source: str
    location: SourceLocation = UNKNOWN_LOCATION

    @property
    def arg_names(self) -> Tuple[str, ...]:
        return tuple(arg.name for arg in self.args)


# ---------------------------------------------------------------------------
# Tree helpers
# ---------------------------------------------------------------------------


def _tokens(tree: Tree) -> List[Token]:
    return list(tree.scan_values(lambda v: isinstance(v, Token)))


def _span(tree: Tree) -> Tuple[int, int]:
    tokens = _tokens(tree)
    return tokens[0].start_pos, tokens[-1].end_pos


def _child_trees(tree: Tree) -> List[Tree]:
    return [child for child in tree.children if isinstance(child, Tree)]


def _render_type(node) -> str:
    """Canonical spelling of a type subtree."""
    if isinstance(node, Token):
        # Lifetimes inside generic arguments.
        return node.value

    kind = node.data
    children = node.children

    if kind == "path_type":
        leading = "::" if isinstance(children[0], Token) and children[0].value == "::" else ""
        return leading + "::".join(_render_type(seg) for seg in _child_trees(node))

    if kind == "path_segment":
        name = children[0].value
        args = [c for c in children[1:] if isinstance(c, Tree)]
        if args:
            return name + _render_type(args[0])
        return name

    if kind == "generic_args":
        args = [
            _render_type(c)
            for c in children
            if isinstance(c, Tree) or (isinstance(c, Token) and c.type == "LIFETIME")
        ]
        return "<" + ", ".join(args) + ">"

    if kind == "ptr_type":
        qualifier = next(c.value for c in children if isinstance(c, Token) and c.type in ("CONST", "MUT"))
        return f"*{qualifier} {_render_type(_child_trees(node)[0])}"

    if kind == "ref_type":
        parts = ["&"]
        for child in children:
            if isinstance(child, Token) and child.type == "LIFETIME":
                parts.append(child.value + " ")
            elif isinstance(child, Token) and child.type == "MUT":
                parts.append("mut ")
        parts.append(_render_type(_child_trees(node)[0]))
        return "".join(parts)

    if kind == "tuple_type":
        elems = [_render_type(c) for c in _child_trees(node)]
        if not elems:
            return "()"
        if len(elems) == 1:
            return f"({elems[0]},)"
        return "(" + ", ".join(elems) + ")"

    if kind == "paren_type":
        return _render_type(_child_trees(node)[0])

    if kind == "array_type":
        length = next(c.value for c in children if isinstance(c, Token) and c.type == "NUMBER")
        return f"[{_render_type(_child_trees(node)[0])}; {length}]"

    if kind == "slice_type":
        return f"[{_render_type(_child_trees(node)[0])}]"

    if kind == "never_type":
        return "!"

    if kind == "fn_type":
        prefix = []
        for child in children:
            if isinstance(child, Token) and child.type == "UNSAFE":
                prefix.append("unsafe")
            elif isinstance(child, Token) and child.type == "EXTERN":
                prefix.append("extern")
            elif isinstance(child, Token) and child.type == "STRING":
                prefix.append(child.value)
        params: List[str] = []
        ret = ""
        for sub in _child_trees(node):
            if sub.data == "fn_params":
                params = [_render_type(c) for c in _child_trees(sub)]
            elif sub.data == "fn_return":
                ret = " -> " + _render_type(_child_trees(sub)[0])
        head = " ".join(prefix + ["fn"])
        return f"{head}(" + ", ".join(params) + ")" + ret

    raise ValueError(f"Unexpected type node: {kind}")


def _to_parse_error(error: UnexpectedInput, text: str, location: SourceLocation) -> SnippetParseError:
    line = getattr(error, "line", 1) or 1
    column = getattr(error, "column", 1) or 1
    where = location.offset(line, column)

    if isinstance(error, UnexpectedEOF):
        return SnippetParseError("Unexpected end of snippet; expected a '{ ... }' body block", where)

    if isinstance(error, UnexpectedCharacters):
        bad = text[error.pos_in_stream] if error.pos_in_stream < len(text) else ""
        return SnippetParseError(f"Unexpected character {bad!r} in snippet", where, bad)

    if isinstance(error, UnexpectedToken):
        token = error.token
        if token.type == "$END":
            return SnippetParseError("Unexpected end of snippet; expected a '{ ... }' body block", where)
        return SnippetParseError(f"Unexpected token {token.value!r} in snippet", where, token.value)

    return SnippetParseError(str(error), where)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def parse_rust_type(text: str) -> RType:
    """
    Parse a standalone Rust type into its canonical RType.

    Args:
        text: Rust type as written by a user, e.g. ``"Vec< i32 >"``

    Returns:
        Canonical RType

    Raises:
        SnippetParseError: If the text is not a Rust type
    """
    try:
        tree = _PARSER.parse(text, start="rtype")
    except UnexpectedInput as e:
        raise _to_parse_error(e, text, UNKNOWN_LOCATION) from None
    return RType(_render_type(tree))


def parse_snippet(text: str, location: Optional[SourceLocation] = None) -> ParsedSnippet:
    """
    Parse the contents of an inline Rust snippet.

    Args:
        text: Snippet text, ``<ReturnType> { <body> }``
        location: Location of the first character of `text` in its file

    Returns:
        ParsedSnippet with placeholders in source order

    Raises:
        SnippetParseError: On malformed syntax, a missing return type, a
            missing body, or a placeholder declared twice with different types
    """
    location = location or UNKNOWN_LOCATION
    stripped = text.lstrip()
    if not stripped:
        raise SnippetParseError("Empty snippet; expected '<ReturnType> { <body> }'", location)
    if stripped.startswith("{"):
        lead = text[: len(text) - len(stripped)]
        line = lead.count("\n") + 1
        column = len(lead) - (lead.rfind("\n") + 1) + 1
        raise SnippetParseError(
            "Missing return type annotation before the snippet body",
            location.offset(line, column),
            "{",
        )

    try:
        tree = _PARSER.parse(text, start="snippet")
    except UnexpectedInput as e:
        raise _to_parse_error(e, text, location) from None

    type_node, block = tree.children
    return_type = RType(_render_type(type_node))

    block_start, block_end = _span(block)
    spans: List[Tuple[int, int, str]] = []
    args: List[Placeholder] = []
    seen = {}

    for node in block.iter_subtrees_topdown():
        if node.data != "placeholder":
            continue
        ident = next(c for c in node.children if isinstance(c, Token) and c.type == "IDENT")
        rust_type = RType(_render_type(_child_trees(node)[0]))
        start, end = _span(node)
        name = ident.value
        spans.append((start, end, name))

        previous = seen.get(name)
        if previous is None:
            seen[name] = rust_type
            args.append(Placeholder(name, rust_type, (start, end)))
        elif previous != rust_type:
            raise SnippetParseError(
                f"Placeholder '{name}' declared as both '{previous}' and '{rust_type}'",
                location.offset(ident.line, ident.column),
                text[start:end],
            )

    spans.sort()
    body = SnippetBody(text=text[block_start:block_end], offset=block_start, spans=tuple(spans))
    parsed = ParsedSnippet(
        return_type=return_type,
        body=body,
        args=tuple(args),
        source=text,
        location=location,
    )
    logger.debug(f"Parsed snippet at {location}: {return_type} with {len(args)} placeholders")
    return parsed
