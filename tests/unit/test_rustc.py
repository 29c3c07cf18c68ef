"""
Unit tests for the Rust toolchain wrapper.

subprocess is mocked; real compilation is covered by the integration tests.
"""

import subprocess
from unittest.mock import Mock, patch

import pytest

from inline_rust.compiler.rustc import RustToolchain, shared_library_suffix
from inline_rust.utils.config import CompilerConfig
from inline_rust.utils.exceptions import CompilationError


def completed(returncode=0, stdout="", stderr=""):
    return Mock(returncode=returncode, stdout=stdout, stderr=stderr)


class TestSharedLibrarySuffix:
    @pytest.mark.parametrize(
        "platform,suffix",
        [("linux", ".so"), ("darwin", ".dylib"), ("win32", ".dll"), ("freebsd13", ".so")],
    )
    def test_suffix(self, platform, suffix):
        assert shared_library_suffix(platform) == suffix


class TestRustToolchain:
    """Test availability checks and command lines."""

    def test_is_available(self):
        with patch("subprocess.run", return_value=completed(stdout="rustc 1.80.0\n")) as mock_run:
            toolchain = RustToolchain()
            assert toolchain.is_available()
            assert toolchain.is_available()
            assert toolchain.version() == "rustc 1.80.0"
        mock_run.assert_called_once()

    def test_not_installed(self):
        with patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
            toolchain = RustToolchain()
            assert not toolchain.is_available()
            assert toolchain.version() is None

    def test_compile_command(self):
        config = CompilerConfig(rustc="/opt/rust/bin/rustc", edition="2018", opt_level="3", extra_flags=["-g"])
        cmd = RustToolchain(config).get_compile_command("mod.rs", "libmod.so", crate_name="mod_inline_rust")

        assert cmd[0] == "/opt/rust/bin/rustc"
        assert cmd[1:3] == ["--crate-type", "cdylib"]
        assert "--edition" in cmd and cmd[cmd.index("--edition") + 1] == "2018"
        assert "opt-level=3" in cmd
        assert cmd[cmd.index("--crate-name") + 1] == "mod_inline_rust"
        assert "-g" in cmd
        assert cmd[-3:] == ["mod.rs", "-o", "libmod.so"]

    def test_compile_success(self, tmp_path):
        source = tmp_path / "mod.rs"
        source.write_text("pub fn f() {}\n")
        output = tmp_path / "libmod.so"

        def run(cmd, **kwargs):
            if "--version" not in cmd:
                output.write_bytes(b"lib")
            return completed(stdout="rustc 1.80.0")

        with patch("subprocess.run", side_effect=run):
            assert RustToolchain().compile(str(source), str(output)) == str(output)

    def test_compile_failure_keeps_output(self, tmp_path):
        """Test that rustc diagnostics are carried by the error."""
        source = tmp_path / "mod.rs"
        source.write_text("fn broken( {}\n")
        stderr = "error: expected one of `)`\n --> mod.rs:1:11\nwarning: unused\n"

        results = [completed(stdout="rustc 1.80.0"), completed(returncode=1, stderr=stderr)]
        with patch("subprocess.run", side_effect=results):
            with pytest.raises(CompilationError) as exc_info:
                RustToolchain().compile(str(source), str(tmp_path / "libmod.so"))

        error = exc_info.value
        assert error.rust_source == "fn broken( {}\n"
        assert "expected one of" in error.compiler_output
        assert error.get_compiler_errors() == ["error: expected one of `)`"]

    def test_compile_timeout(self, tmp_path):
        source = tmp_path / "mod.rs"
        source.write_text("")
        results = [completed(stdout="rustc 1.80.0"), subprocess.TimeoutExpired("rustc", 1)]
        with patch("subprocess.run", side_effect=results):
            with pytest.raises(CompilationError, match="timed out"):
                RustToolchain(CompilerConfig(timeout_seconds=1)).compile(str(source), str(tmp_path / "lib.so"))

    def test_compile_without_rustc(self, tmp_path):
        source = tmp_path / "mod.rs"
        source.write_text("")
        with patch("subprocess.run", side_effect=FileNotFoundError("rustc")):
            with pytest.raises(CompilationError, match="not available"):
                RustToolchain().compile(str(source), str(tmp_path / "lib.so"))

    def test_missing_output(self, tmp_path):
        source = tmp_path / "mod.rs"
        source.write_text("")
        with patch("subprocess.run", return_value=completed(stdout="rustc 1.80.0")):
            with pytest.raises(CompilationError, match="did not produce"):
                RustToolchain().compile(str(source), str(tmp_path / "lib.so"))
