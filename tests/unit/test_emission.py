"""
Unit tests for the emission sink.
"""

import pytest

from inline_rust.codegen.emission import FILE_HEADER, LIBC_SHIM, EmissionSink
from inline_rust.utils.exceptions import EmissionError


class TestEmissionSink:
    """Test accumulation and flushing of emitted Rust."""

    def setup_method(self):
        """Set up test fixtures."""
        self.sink = EmissionSink("pkg.sample")

    def test_initially_empty(self):
        assert self.sink.is_empty
        assert self.sink.entries == ()
        assert not self.sink.is_flushed

    def test_emit_appends_in_order(self):
        first = self.sink.emit("fn a() {}\n")
        second = self.sink.emit("fn b() {}\n", symbol="b")

        assert self.sink.entries == ("fn a() {}\n", "fn b() {}\n")
        assert (first.index, second.index) == (0, 1)
        assert second.symbol == "b"

    def test_emit_adds_trailing_newline(self):
        self.sink.emit("fn a() {}")
        assert self.sink.entries == ("fn a() {}\n",)

    def test_no_deduplication(self):
        """Test that identical text is emitted twice."""
        self.sink.emit("fn a() {}\n")
        self.sink.emit("fn a() {}\n")
        assert len(self.sink.entries) == 2

    def test_render_includes_header_and_shim(self):
        self.sink.emit("fn a() {}\n")
        rendered = self.sink.render()
        assert rendered.startswith(FILE_HEADER)
        assert LIBC_SHIM in rendered
        assert rendered.index(LIBC_SHIM) < rendered.index("fn a()")

    def test_render_without_shim(self):
        sink = EmissionSink("pkg.sample", libc_shim=False)
        sink.emit("fn a() {}\n")
        assert "mod libc" not in sink.render()

    def test_flush_writes_file(self, tmp_path):
        self.sink.emit("fn a() {}\n")
        self.sink.emit("fn b() {}\n")

        path = self.sink.flush(tmp_path / "sample.rs")

        text = path.read_text()
        assert text == self.sink.render()
        assert text.index("fn a()") < text.index("fn b()")
        assert self.sink.is_flushed

    def test_flush_twice_fails(self, tmp_path):
        self.sink.emit("fn a() {}\n")
        self.sink.flush(tmp_path / "sample.rs")
        with pytest.raises(EmissionError):
            self.sink.flush(tmp_path / "again.rs")

    def test_emit_after_flush_fails(self, tmp_path):
        self.sink.flush(tmp_path / "sample.rs")
        with pytest.raises(EmissionError):
            self.sink.emit("fn late() {}\n")

    def test_entries_are_read_only(self):
        self.sink.emit("fn a() {}\n")
        entries = self.sink.entries
        assert isinstance(entries, tuple)
