"""Boundary code generation for inline Rust snippets."""

from .boundary import (
    BoundaryGenerator,
    CallSite,
    GeneratedFunction,
    HostDeclaration,
    HostResult,
    ResolvedSignature,
    build_call_expression,
    build_declaration,
    render_rust_function,
    resolve_arguments,
    resolve_signature,
)
from .emission import EmissionHandle, EmissionSink
from .safety import ENTRY_POINTS, CallingConvention, EntryPointSpec, Purity, Safety, dispatch

__all__ = [
    "BoundaryGenerator",
    "CallSite",
    "GeneratedFunction",
    "HostDeclaration",
    "HostResult",
    "ResolvedSignature",
    "build_call_expression",
    "build_declaration",
    "render_rust_function",
    "resolve_arguments",
    "resolve_signature",
    "EmissionHandle",
    "EmissionSink",
    "ENTRY_POINTS",
    "CallingConvention",
    "EntryPointSpec",
    "Purity",
    "Safety",
    "dispatch",
]
