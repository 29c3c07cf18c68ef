"""
Unit tests for the information report.

The Rust toolchain check is patched so these tests do not depend on an
installed rustc.
"""

import platform
import sys
from unittest.mock import patch

import pytest

import inline_rust
from inline_rust.utils.info import get_inline_rust_info, get_system_info, main, print_info


@pytest.fixture
def no_rustc():
    with patch("inline_rust.compiler.rustc.RustToolchain.is_available", return_value=False):
        with patch("inline_rust.compiler.rustc.RustToolchain.version", return_value=None):
            yield


@pytest.fixture
def fake_rustc():
    with patch("inline_rust.compiler.rustc.RustToolchain.is_available", return_value=True):
        with patch("inline_rust.compiler.rustc.RustToolchain.version", return_value="rustc 1.80.0"):
            yield


class TestSystemInfo:
    """Test system information collection."""

    def test_get_system_info_basic(self):
        info = get_system_info()

        assert info["python_version"] == sys.version
        assert info["platform"] == platform.platform()
        assert info["architecture"] == platform.architecture()
        assert info["processor"] == platform.processor()


class TestInlineRustInfo:
    """Test package, toolchain and cache information."""

    def test_package_fields(self, isolated_config, no_rustc):
        info = get_inline_rust_info()

        assert info["version"] == inline_rust.__version__
        assert info["author"] == inline_rust.__author__
        assert info["rustc"] == "rustc"
        assert info["rustc_available"] is False
        assert info["rustc_version"] is None
        assert info["library_suffix"] in (".so", ".dylib", ".dll")
        assert info["config_file"] == str(isolated_config.config_file)

    def test_cache_stats(self, isolated_config, no_rustc):
        info = get_inline_rust_info()
        assert info["cache_enabled"] is True
        assert info["cache"]["entries"] == 0
        assert info["cache"]["cache_dir"] == isolated_config.cache.cache_dir

    def test_cache_disabled(self, isolated_config, no_rustc):
        isolated_config.cache.enabled = False
        info = get_inline_rust_info()
        assert info["cache_enabled"] is False
        assert "cache" not in info


class TestPrintInfo:
    def test_print_info_without_rustc(self, isolated_config, no_rustc, capsys):
        print_info()
        output = capsys.readouterr().out

        assert f"inline-rust Version: {inline_rust.__version__}" in output
        assert "Rust Compiler: 'rustc' not available" in output
        assert "Build Cache: 0 entries" in output

    def test_print_info_with_rustc(self, isolated_config, fake_rustc, capsys):
        print_info()
        assert "Rust Compiler: rustc 1.80.0" in capsys.readouterr().out

    def test_main_reports_errors(self, capsys):
        with patch("inline_rust.utils.info.print_info", side_effect=RuntimeError("boom")):
            with pytest.raises(SystemExit) as exc_info:
                main()
        assert exc_info.value.code == 1
        assert "Error getting system information: boom" in capsys.readouterr().out
