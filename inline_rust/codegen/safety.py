"""
Safety and purity dispatch.

Safety selects how the Python side calls into Rust: whether the GIL is
released, and whether the call can be interrupted. Purity only affects the
Python side: pure results are memoised, effectful calls run on every
evaluation. Neither changes the generated Rust.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple


class Safety(Enum):
    """Calling-convention contract of a boundary call."""

    # GIL released; may block and may call back into Python.
    SAFE = "safe"
    # GIL held; must not block and must not call back into Python.
    UNSAFE = "unsafe"
    # Like SAFE, and the waiting thread can interrupt the call.
    INTERRUPTIBLE = "interruptible"


class Purity(Enum):
    """Whether a call is value-like or sequenced."""

    PURE = "pure"
    EFFECTFUL = "effectful"


@dataclass(frozen=True)
class CallingConvention:
    """
    Shape of the Python binding for one call site.

    Attributes:
        safety: Calling contract passed to the runtime binding
        memoize: Whether the binding may share results between calls
        effect_wrapped: Whether the declared result is sequenced
        release_gil: Whether the GIL is dropped for the duration of the call
        interruptible: Whether the call runs on an interruptible worker
    """

    safety: Safety
    memoize: bool
    effect_wrapped: bool
    release_gil: bool
    interruptible: bool


@dataclass(frozen=True)
class EntryPointSpec:
    """Static description of one public entry point."""

    name: str
    safety: Safety
    purity: Purity


ENTRY_POINTS: Dict[str, EntryPointSpec] = {
    spec.name: spec
    for spec in (
        EntryPointSpec("rust", Safety.SAFE, Purity.PURE),
        EntryPointSpec("rust_io", Safety.SAFE, Purity.EFFECTFUL),
        EntryPointSpec("rust_unsafe", Safety.UNSAFE, Purity.PURE),
        EntryPointSpec("rust_unsafe_io", Safety.UNSAFE, Purity.EFFECTFUL),
        EntryPointSpec("rust_interruptible", Safety.INTERRUPTIBLE, Purity.PURE),
        EntryPointSpec("rust_interruptible_io", Safety.INTERRUPTIBLE, Purity.EFFECTFUL),
    )
}


def dispatch(safety: Safety, purity: Purity) -> CallingConvention:
    """
    Decide the binding shape for a (safety, purity) pair.

    Args:
        safety: Selected calling contract
        purity: Selected purity

    Returns:
        CallingConvention for the host declaration
    """
    return CallingConvention(
        safety=safety,
        memoize=purity is Purity.PURE,
        effect_wrapped=purity is Purity.EFFECTFUL,
        release_gil=safety is not Safety.UNSAFE,
        interruptible=safety is Safety.INTERRUPTIBLE,
    )


def entry_point_modes(name: str) -> Tuple[Safety, Purity]:
    """Safety and purity selected by an entry point name."""
    spec = ENTRY_POINTS[name]
    return spec.safety, spec.purity
