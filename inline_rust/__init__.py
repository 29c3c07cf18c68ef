"""
inline_rust: Rust snippets in Python modules

Write Rust expressions directly inside Python functions. A build step
(`inline-rust build`, or the import hook in `inline_rust.importer`) turns
every snippet into an exported Rust function, compiles the module's Rust
into a shared library and replaces the snippet with a call into it.

Usage:
    from inline_rust import rust

    def inc(x):
        return rust("i32 { 1i32 + $(x: i32) }")

Type correspondences between Rust and ctypes are configured per module:

    from inline_rust import set_context, basic, libc, merge
    set_context(merge(basic, libc))
"""

__version__ = "0.1.0"
__author__ = "inline-rust Team"
__email__ = "inline-rust@example.com"

# Public API exports
from .context import (
    HostType,
    RType,
    TypeContext,
    basic,
    libc,
    lookup_type_in_context,
    merge,
    mk_context,
    singleton,
)

from .quasiquote import (
    emit_code_block,
    rust,
    rust_interruptible,
    rust_interruptible_io,
    rust_io,
    rust_unsafe,
    rust_unsafe_io,
    set_context,
)

from .utils.config import get_config, InlineRustConfig
from .utils.exceptions import InlineRustError

__all__ = [
    "HostType",
    "RType",
    "TypeContext",
    "basic",
    "libc",
    "lookup_type_in_context",
    "merge",
    "mk_context",
    "singleton",
    "emit_code_block",
    "rust",
    "rust_interruptible",
    "rust_interruptible_io",
    "rust_io",
    "rust_unsafe",
    "rust_unsafe_io",
    "set_context",
    "get_config",
    "InlineRustConfig",
    "InlineRustError",
]
