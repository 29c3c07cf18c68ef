"""
Naming Utilities.

Identifier sanitising and the minting of exported symbol names. Symbols
are used as link-time names, so they must never collide within a program,
including for textually identical snippets.
"""

from __future__ import annotations

import hashlib
import re
from typing import Set

DEFAULT_SYMBOL_PREFIX = "inline_rust"
BINDING_PREFIX = "_inline_rust_"


def sanitize_identifier(name: str) -> str:
    """Sanitize a string to be a valid Rust and Python identifier."""
    sanitized = re.sub(r"[^a-zA-Z0-9_]", "_", name)

    if sanitized and sanitized[0].isdigit():
        sanitized = f"_{sanitized}"

    if not sanitized:
        sanitized = "unnamed"

    return sanitized


def generate_unique_name(base_name: str, used_names: Set[str], separator: str = "_") -> str:
    """Generate a unique name by appending a counter if needed."""
    if base_name not in used_names:
        return base_name

    counter = 1
    while True:
        candidate = f"{base_name}{separator}{counter}"
        if candidate not in used_names:
            return candidate
        counter += 1


def library_stem(unit_name: str) -> str:
    """Base name of the shared library built for a module."""
    return f"{sanitize_identifier(unit_name.split('.')[-1])}_inline_rust"


class SymbolMinter:
    """
    Mints exported symbol names for one compilation unit.

    Names combine the sanitised unit name, a short digest of the unsanitised
    unit name (so ``a.b`` and ``a_b`` never clash) and a per-unit counter.
    A minted name is never handed out twice.
    """

    def __init__(self, unit_name: str, prefix: str = DEFAULT_SYMBOL_PREFIX):
        self.unit_name = unit_name
        digest = hashlib.sha256(unit_name.encode("utf-8")).hexdigest()[:8]
        self._stem = f"{prefix}_{sanitize_identifier(unit_name)}_{digest}"
        self._counter = 0
        self._issued: Set[str] = set()

    def mint(self) -> str:
        """Return a fresh symbol name."""
        name = generate_unique_name(f"{self._stem}_q{self._counter}", self._issued)
        self._counter += 1
        self._issued.add(name)
        return name

    def binding_name(self, symbol: str) -> str:
        """Python module-level name under which the binding for `symbol` is stored."""
        return BINDING_PREFIX + symbol.rsplit("_", 1)[-1]

    @property
    def issued(self) -> Set[str]:
        """All names minted so far."""
        return set(self._issued)
