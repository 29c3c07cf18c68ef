"""
Pytest configuration and shared fixtures for inline_rust tests.

This module provides common test fixtures, configuration, and utilities
used across the test suite.
"""

import json
import shutil
import tempfile
import textwrap
from pathlib import Path
from unittest.mock import Mock

import pytest

from inline_rust.codegen.safety import Purity, Safety
from inline_rust.context import basic, libc, merge, mk_context
from inline_rust.unit import CompilationUnit
from inline_rust.utils.config import InlineRustConfig, set_config
from inline_rust.utils.exceptions import SourceLocation


# Test configuration
@pytest.fixture(scope="session")
def temp_test_dir():
    """Create temporary directory for test artifacts."""
    temp_dir = tempfile.mkdtemp(prefix="inline_rust_test_")
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def isolated_config(tmp_path, monkeypatch):
    """Global configuration pointing the build cache at a private directory."""
    monkeypatch.delenv("INLINE_RUST_CONFIG", raising=False)
    monkeypatch.delenv("INLINE_RUST_RUSTC", raising=False)
    monkeypatch.delenv("INLINE_RUST_DISABLE_CACHE", raising=False)

    config_file = tmp_path / "inline_rust.json"
    config_file.write_text(json.dumps({"cache": {"cache_dir": str(tmp_path / "cache")}}))
    config = InlineRustConfig(str(config_file))
    set_config(config)
    yield config
    set_config(None)


# Context fixtures
@pytest.fixture
def i32_only_context():
    """A context that only knows i32."""
    return mk_context([("i32", "ctypes.c_int32")])


@pytest.fixture
def full_context():
    """basic merged with libc."""
    return merge(basic, libc)


# Unit fixtures
@pytest.fixture
def unit():
    """A fresh compilation unit for a module named 'pkg.sample'."""
    return CompilationUnit("pkg.sample", "sample.py")


@pytest.fixture
def resolver_for():
    """Build a scope resolver from a set of visible names."""

    def make(*names):
        visible = set(names)
        return lambda name: name if name in visible else None

    return make


@pytest.fixture
def location():
    return SourceLocation("sample.py", 10, 20)


@pytest.fixture
def safe_pure():
    return Safety.SAFE, Purity.PURE


# Source fixtures
@pytest.fixture
def inc_module_source():
    """Module with one pure snippet capturing a parameter."""
    return textwrap.dedent(
        '''\
        """Increment through Rust."""

        from inline_rust import rust


        def rust_inc(x):
            return rust("i32 { 1i32 + $(x: i32) }")
        '''
    )


@pytest.fixture
def write_module(tmp_path):
    """Write a module into a temporary source directory and return its path."""

    def write(name: str, source: str) -> Path:
        src_dir = tmp_path / "src"
        src_dir.mkdir(exist_ok=True)
        path = src_dir / f"{name}.py"
        path.write_text(textwrap.dedent(source))
        return path

    return write


# Toolchain fixtures
@pytest.fixture
def mock_toolchain():
    """Toolchain stand-in that 'compiles' by writing a placeholder library."""
    toolchain = Mock()
    toolchain.get_compile_command.return_value = ["rustc", "--crate-type", "cdylib", "<source>", "-o", "<output>"]
    toolchain.version.return_value = "rustc 1.80.0 (mock)"

    def compile_(source_path, output_path, crate_name=None, extra_flags=None):
        Path(output_path).write_bytes(b"\x7fELF mock library")
        return output_path

    toolchain.compile.side_effect = compile_
    return toolchain


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: tests that compile Rust with a real rustc")
