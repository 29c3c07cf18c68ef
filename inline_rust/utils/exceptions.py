"""
Custom exception definitions.

This module defines the exception hierarchy for inline_rust. Every error
raised while expanding or building a module is fatal to that module: the
build produces a complete library or nothing.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SourceLocation:
    """Position of a snippet (or a construct inside it) in a source file."""

    filename: str
    line: int
    column: int

    def offset(self, line: int, column: int) -> "SourceLocation":
        """
        Translate a 1-based position inside a snippet into a file position.

        Args:
            line: Line inside the snippet text (1-based)
            column: Column inside the snippet text (1-based)

        Returns:
            Location relative to the enclosing file
        """
        if line <= 1:
            return SourceLocation(self.filename, self.line, self.column + column - 1)
        return SourceLocation(self.filename, self.line + line - 1, column)

    def __str__(self) -> str:
        return f"{self.filename}:{self.line}:{self.column}"


UNKNOWN_LOCATION = SourceLocation("<unknown>", 1, 1)


class InlineRustError(Exception):
    """
    Base exception for all inline_rust errors.

    Carries a human-readable message and an optional dictionary with
    additional context that is appended to the string form.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        """
        Initialize error.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return formatted error message."""
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


class SnippetParseError(InlineRustError):
    """
    Raised when a snippet is malformed.

    Covers syntax errors, a missing return type annotation, a missing body
    block and conflicting placeholder declarations.
    """

    def __init__(self, message: str, location: Optional[SourceLocation] = None, construct: str = ""):
        """
        Initialize parse error.

        Args:
            message: Error description
            location: Where the malformed construct starts
            construct: The offending text, if known
        """
        details = {}
        if location is not None:
            details["location"] = str(location)
        if construct:
            details["construct"] = repr(construct)
        super().__init__(message, details)
        self.location = location
        self.construct = construct


class UnmappedTypeError(InlineRustError):
    """
    Raised when a Rust type has no correspondence in the active context.

    The position is either ``"return type"`` or ``"argument N"`` (1-based).
    """

    def __init__(self, rust_type: str, position: str, location: Optional[SourceLocation] = None):
        message = f"Rust type '{rust_type}' used as {position} has no Python correspondence in the active context"
        details = {}
        if location is not None:
            details["location"] = str(location)
        super().__init__(message, details)
        self.rust_type = rust_type
        self.position = position
        self.location = location


class UnresolvedIdentifierError(InlineRustError):
    """Raised when a placeholder names a variable not visible at the call site."""

    def __init__(self, identifier: str, location: Optional[SourceLocation] = None):
        message = f"Could not find Python variable '{identifier}' in the enclosing scope"
        details = {}
        if location is not None:
            details["location"] = str(location)
        super().__init__(message, details)
        self.identifier = identifier
        self.location = location


class ConfigurationOrderError(InlineRustError):
    """Raised when the active type context is changed after snippets were expanded."""

    def __init__(self, unit_name: str, expanded: int):
        super().__init__(
            f"The type context of '{unit_name}' must be set before the first snippet",
            {"expanded_snippets": expanded},
        )
        self.unit_name = unit_name
        self.expanded = expanded


class ExpansionError(InlineRustError):
    """Raised when an entry point is used in a way that cannot be expanded."""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        details = {}
        if location is not None:
            details["location"] = str(location)
        super().__init__(message, details)
        self.location = location


class EmissionError(InlineRustError):
    """Raised on misuse of an emission sink (emit after flush, double flush)."""


class CompilationError(InlineRustError):
    """
    Raised when rustc fails to compile the emitted Rust source.

    Keeps both the source and the compiler output so that callers can
    report them.
    """

    def __init__(self, message: str, rust_source: str = "", compiler_output: str = ""):
        """
        Initialize compilation error.

        Args:
            message: Error description
            rust_source: Rust source that failed to compile
            compiler_output: Output from the compiler
        """
        details = {}
        if rust_source:
            details["source_length"] = len(rust_source)
        if compiler_output:
            details["compiler_output_length"] = len(compiler_output)

        super().__init__(message, details)
        self.rust_source = rust_source
        self.compiler_output = compiler_output

    def get_compiler_errors(self) -> list:
        """
        Extract error messages from compiler output.

        Returns:
            List of error message strings
        """
        if not self.compiler_output:
            return []

        errors = []
        for line in self.compiler_output.split("\n"):
            stripped = line.strip()
            if stripped.lower().startswith("error"):
                errors.append(stripped)
        return errors


class LibraryLoadError(InlineRustError):
    """Raised when a compiled library or one of its symbols cannot be loaded."""

    def __init__(self, message: str, library_path: Optional[str] = None, symbol: Optional[str] = None):
        details = {}
        if library_path is not None:
            details["library"] = library_path
        if symbol is not None:
            details["symbol"] = symbol
        super().__init__(message, details)
        self.library_path = library_path
        self.symbol = symbol


class NotExpandedError(InlineRustError):
    """Raised when an entry point is evaluated in code that was never expanded."""

    def __init__(self, entry_point: str):
        super().__init__(
            f"'{entry_point}' was called at runtime; modules using inline Rust must be built "
            "with 'inline-rust build' or imported through inline_rust.importer"
        )
        self.entry_point = entry_point
