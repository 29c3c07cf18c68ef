"""
Emission sink.

Accumulates the Rust source generated for one compilation unit and writes
it to a single file exactly once. Entries keep emission order and are never
deduplicated.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ..utils.exceptions import EmissionError
from ..utils.logging import get_logger

logger = get_logger(__name__)

FILE_HEADER = (
    "// Generated by inline_rust. Do not edit.\n"
    "#![allow(unused_imports, unused_parens, unused_braces, non_snake_case, dead_code)]\n"
)

LIBC_SHIM = (
    "#[allow(non_camel_case_types)]\n"
    "mod libc {\n"
    "    pub use std::os::raw::*;\n"
    "    pub use std::ffi::c_void;\n"
    "    pub type size_t = usize;\n"
    "    pub type ssize_t = isize;\n"
    "}\n"
)


@dataclass(frozen=True)
class EmissionHandle:
    """Receipt for one emitted entry."""

    index: int
    symbol: Optional[str] = None


class EmissionSink:
    """
    Append-only buffer of Rust source for one compilation unit.

    The buffer is opened lazily by the first emission and can be flushed
    only once; emitting after the flush is an error.
    """

    def __init__(self, unit_name: str, libc_shim: bool = True):
        """
        Args:
            unit_name: Name of the compilation unit (module) this sink serves
            libc_shim: Whether the flushed file starts with a `mod libc` alias
        """
        self.unit_name = unit_name
        self.libc_shim = libc_shim
        self._entries: Optional[List[str]] = None
        self._flushed_to: Optional[Path] = None

    def emit(self, source_text: str, symbol: Optional[str] = None) -> EmissionHandle:
        """
        Append one block of Rust source.

        Args:
            source_text: Complete top-level Rust items
            symbol: Exported symbol defined by the block, if any

        Returns:
            Handle identifying the entry
        """
        if self._flushed_to is not None:
            raise EmissionError(
                f"Cannot emit into '{self.unit_name}' after it was flushed",
                {"flushed_to": str(self._flushed_to)},
            )
        if self._entries is None:
            logger.debug(f"Opening emission buffer for '{self.unit_name}'")
            self._entries = []
        if not source_text.endswith("\n"):
            source_text += "\n"
        self._entries.append(source_text)
        return EmissionHandle(index=len(self._entries) - 1, symbol=symbol)

    @property
    def entries(self) -> Tuple[str, ...]:
        return tuple(self._entries or ())

    @property
    def is_empty(self) -> bool:
        return not self._entries

    @property
    def is_flushed(self) -> bool:
        return self._flushed_to is not None

    def render(self) -> str:
        """Full text of the file the sink flushes to."""
        parts = [FILE_HEADER]
        if self.libc_shim:
            parts.append(LIBC_SHIM)
        parts.extend(self.entries)
        return "\n".join(parts)

    def flush(self, path: Union[str, Path]) -> Path:
        """
        Write all entries, in emission order, to `path`.

        Args:
            path: Destination `.rs` file

        Returns:
            The path written

        Raises:
            EmissionError: If the sink was already flushed
        """
        if self._flushed_to is not None:
            raise EmissionError(
                f"Emission sink for '{self.unit_name}' was already flushed",
                {"flushed_to": str(self._flushed_to)},
            )
        path = Path(path)
        path.write_text(self.render())
        self._flushed_to = path
        logger.info(f"Flushed {len(self.entries)} Rust items for '{self.unit_name}' to {path}")
        return path
