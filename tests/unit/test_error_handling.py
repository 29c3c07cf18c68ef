"""
Unit tests for error handling.

This module tests the exception hierarchy, the formatting of error
details and the mapping of snippet positions to file positions.
"""

import pytest

from inline_rust.utils.exceptions import (
    CompilationError,
    ConfigurationOrderError,
    EmissionError,
    ExpansionError,
    InlineRustError,
    LibraryLoadError,
    NotExpandedError,
    SnippetParseError,
    SourceLocation,
    UnmappedTypeError,
    UnresolvedIdentifierError,
)


class TestSourceLocation:
    def test_str(self):
        assert str(SourceLocation("mod.py", 4, 17)) == "mod.py:4:17"

    def test_offset_on_first_line(self):
        """Test that first-line positions are relative to the snippet start."""
        start = SourceLocation("mod.py", 4, 17)
        assert start.offset(1, 1) == start
        assert start.offset(1, 5) == SourceLocation("mod.py", 4, 21)

    def test_offset_on_later_line(self):
        start = SourceLocation("mod.py", 4, 17)
        assert start.offset(3, 2) == SourceLocation("mod.py", 6, 2)

    def test_hashable(self):
        assert len({SourceLocation("a.py", 1, 1), SourceLocation("a.py", 1, 1)}) == 1


class TestInlineRustExceptions:
    """Test cases for custom exception classes."""

    def test_base_error(self):
        error = InlineRustError("Test error message")
        assert str(error) == "Test error message"
        assert error.message == "Test error message"
        assert error.details == {}

    def test_base_error_with_details(self):
        error = InlineRustError("Test error", {"key1": "value1", "key2": 42})
        assert str(error) == "Test error (key1=value1, key2=42)"

    @pytest.mark.parametrize(
        "error",
        [
            SnippetParseError("bad"),
            UnmappedTypeError("f32", "return type"),
            UnresolvedIdentifierError("x"),
            ConfigurationOrderError("mod", 1),
            ExpansionError("bad"),
            EmissionError("bad"),
            CompilationError("bad"),
            LibraryLoadError("bad"),
            NotExpandedError("rust"),
        ],
    )
    def test_hierarchy(self, error):
        assert isinstance(error, InlineRustError)

    def test_snippet_parse_error(self):
        location = SourceLocation("mod.py", 2, 9)
        error = SnippetParseError("Expected a type", location, "{ 1 }")

        assert error.location == location
        assert error.construct == "{ 1 }"
        assert "location=mod.py:2:9" in str(error)
        assert "construct='{ 1 }'" in str(error)

    def test_unmapped_type_error(self):
        error = UnmappedTypeError("f32", "argument 2", SourceLocation("mod.py", 1, 1))

        assert error.rust_type == "f32"
        assert error.position == "argument 2"
        assert "'f32' used as argument 2" in str(error)
        assert "mod.py:1:1" in str(error)

    def test_unresolved_identifier_error(self):
        error = UnresolvedIdentifierError("count")
        assert error.identifier == "count"
        assert "'count'" in str(error)
        assert error.details == {}

    def test_configuration_order_error(self):
        error = ConfigurationOrderError("pkg.mod", 3)
        assert "'pkg.mod'" in str(error)
        assert error.details == {"expanded_snippets": 3}

    def test_library_load_error(self):
        error = LibraryLoadError("missing symbol", "/tmp/libm.so", "sym_q0")
        assert error.details == {"library": "/tmp/libm.so", "symbol": "sym_q0"}

    def test_not_expanded_error(self):
        error = NotExpandedError("rust_io")
        assert error.entry_point == "rust_io"
        assert "inline-rust build" in str(error)


class TestCompilationError:
    def test_details(self):
        source = "fn main() {"
        output = "error: this file contains an unclosed delimiter"
        error = CompilationError("Compilation failed", source, output)

        assert error.rust_source == source
        assert error.compiler_output == output
        assert error.details["source_length"] == len(source)
        assert error.details["compiler_output_length"] == len(output)

    def test_get_compiler_errors(self):
        """Test extraction of compiler errors."""
        output = """
        Compiling module...
        error[E0308]: mismatched types
        warning: unused variable 'temp'
        error: aborting due to 1 previous error
        """
        errors = CompilationError("failed", compiler_output=output).get_compiler_errors()
        assert errors == ["error[E0308]: mismatched types", "error: aborting due to 1 previous error"]

    def test_get_compiler_errors_empty(self):
        assert CompilationError("failed").get_compiler_errors() == []
