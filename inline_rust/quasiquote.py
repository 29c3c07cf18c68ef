"""
Public entry points.

These objects mark inline Rust in Python source. They do nothing at
runtime: the expander recognises calls to them and replaces each call
before the module runs. Evaluating one means the module was not expanded.

Snippets are expressions. As Rust does not distinguish pure from impure
expressions, choosing between the pure and the ``_io`` entry points is up to
the caller; labelling an impure expression as pure is not detected, and its
result may be shared between calls.

    def rust_inc(x):
        return rust("i32 { 1i32 + $(x: i32) }")

    def rust_hello(n):
        rust_io('() { println!("Your number: {}", $(n: i32)) }')
"""

from __future__ import annotations

from typing import Any

from .codegen.safety import ENTRY_POINTS, Purity, Safety
from .utils.exceptions import NotExpandedError


class RustQuoter:
    """Marker for one (safety, purity) combination."""

    def __init__(self, name: str, safety: Safety, purity: Purity):
        self.name = name
        self.safety = safety
        self.purity = purity

    def __call__(self, snippet: str) -> Any:
        raise NotExpandedError(self.name)

    def __repr__(self) -> str:
        return f"<inline Rust entry point {self.name} ({self.safety.value}, {self.purity.value})>"


def _quoter(name: str) -> RustQuoter:
    spec = ENTRY_POINTS[name]
    return RustQuoter(spec.name, spec.safety, spec.purity)


# Safe: the GIL is released for the call. When in doubt, use these.
rust = _quoter("rust")
rust_io = _quoter("rust_io")

# Unsafe: less overhead, but the Rust code must not block and must not call
# back into Python.
rust_unsafe = _quoter("rust_unsafe")
rust_unsafe_io = _quoter("rust_unsafe_io")

# Interruptible: like safe, and an interrupted caller signals the thread
# running the Rust code so blocking system calls return early.
rust_interruptible = _quoter("rust_interruptible")
rust_interruptible_io = _quoter("rust_interruptible_io")


def emit_code_block(code: str) -> None:
    """Emit top-level Rust items (module-level statement only)."""
    raise NotExpandedError("emit_code_block")


def set_context(context: Any) -> None:
    """Select the module's type context (module-level statement only)."""
    raise NotExpandedError("set_context")


DIRECTIVES = ("emit_code_block", "set_context")
