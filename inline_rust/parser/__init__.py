"""Snippet parsing."""

from .snippet import (
    ParsedSnippet,
    Placeholder,
    SnippetBody,
    parse_rust_type,
    parse_snippet,
    rust_identifier,
)

__all__ = [
    "ParsedSnippet",
    "Placeholder",
    "SnippetBody",
    "parse_rust_type",
    "parse_snippet",
    "rust_identifier",
]
