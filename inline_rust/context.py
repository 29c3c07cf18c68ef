"""
Type contexts.

A type context maps Rust types, identified by their canonical spelling, to
the ctypes types used on the Python side of a boundary call. Contexts are
immutable; they are built from singletons and lists and combined by merging,
where the right-hand context wins on conflicting keys.

    ctx = basic | singleton("Point", "geometry.ffi.Point")
    ctx.lookup(RType.parse("i32"))   # HostType('ctypes.c_int32')
"""

from __future__ import annotations

import ctypes
import importlib
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RType:
    """A Rust type identified by its canonical spelling."""

    text: str

    @classmethod
    def parse(cls, text: str) -> "RType":
        """Normalise user-written Rust type text, e.g. ``"Vec< i32 >"``."""
        from .parser import parse_rust_type

        return parse_rust_type(text)

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class HostType:
    """
    Reference to a ctypes type, by dotted import path.

    The reference ``"None"`` denotes a void result. Pointer and array types
    are written ``POINTER(<reference>)`` and ``ARRAY(<reference>, <length>)``.
    References are resolved lazily so that contexts can name types of
    modules that are not yet importable when the context is built.
    """

    reference: str

    @property
    def is_void(self) -> bool:
        return self.reference == "None"

    def resolve(self) -> Any:
        """
        Import and return the referenced type.

        Returns:
            The ctypes type object, or None for a void result

        Raises:
            ImportError: If the module part cannot be imported
            AttributeError: If the attribute path does not exist
            ValueError: If an ARRAY reference is malformed
        """
        if self.is_void:
            return None
        reference = self.reference
        if reference.startswith("POINTER(") and reference.endswith(")"):
            return ctypes.POINTER(HostType(reference[len("POINTER(") : -1]).resolve())
        if reference.startswith("ARRAY(") and reference.endswith(")"):
            element, _, length = reference[len("ARRAY(") : -1].rpartition(",")
            if not element:
                raise ValueError(f"Malformed array reference '{reference}'")
            return HostType(element.strip()).resolve() * int(length)
        module_name, _, attr_path = self.reference.partition(".")
        obj = importlib.import_module(module_name)
        # Walk the longest importable module prefix, then attributes.
        parts = attr_path.split(".") if attr_path else []
        consumed = 0
        for i in range(len(parts), 0, -1):
            candidate = ".".join([module_name] + parts[:i])
            try:
                obj = importlib.import_module(candidate)
            except ImportError:
                continue
            consumed = i
            break
        for part in parts[consumed:]:
            obj = getattr(obj, part)
        return obj

    def __str__(self) -> str:
        return self.reference


TypeCorrespondence = Tuple[RType, HostType]
_RTypeLike = Union[RType, str]
_HostTypeLike = Union[HostType, str, type, None]


def _as_rtype(value: _RTypeLike) -> RType:
    if isinstance(value, RType):
        return value
    return RType.parse(value)


def _as_host_type(value: _HostTypeLike) -> HostType:
    if isinstance(value, HostType):
        return value
    if value is None:
        return HostType("None")
    if isinstance(value, str):
        return HostType(value)
    if isinstance(value, type) and issubclass(value, ctypes._Pointer):
        return HostType(f"POINTER({_as_host_type(value._type_)})")
    if isinstance(value, type) and issubclass(value, ctypes.Array):
        return HostType(f"ARRAY({_as_host_type(value._type_)}, {value._length_})")

    # Only types reachable by import path survive into the expanded module.
    host_type = HostType(f"{value.__module__}.{value.__qualname__}")
    try:
        resolved = host_type.resolve()
    except (ImportError, AttributeError):
        resolved = None
    if resolved is not value:
        raise ValueError(f"Host type {value!r} cannot be referenced by import path; pass a dotted path string")
    return host_type


class TypeContext:
    """
    Immutable mapping from Rust types to Python host types.

    Contexts compose with `merge` (or the ``|`` operator); entries of the
    right operand override same-keyed entries of the left one.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Optional[Mapping[RType, HostType]] = None):
        self._entries: Mapping[RType, HostType] = MappingProxyType(dict(entries or {}))

    def lookup(self, rust_type: _RTypeLike) -> Optional[HostType]:
        """
        Find the host type for a Rust type.

        Args:
            rust_type: RType or Rust type text

        Returns:
            The HostType, or None if the type is not registered
        """
        return self._entries.get(_as_rtype(rust_type))

    def reverse_lookup(self, host_type: _HostTypeLike) -> Optional[RType]:
        """Find the first registered Rust type that maps to `host_type`."""
        try:
            target = _as_host_type(host_type)
        except ValueError:
            return None
        for rust_type, candidate in self._entries.items():
            if candidate == target:
                return rust_type
        return None

    def merge(self, other: "TypeContext") -> "TypeContext":
        """Return a new context where `other` overrides this one."""
        combined: Dict[RType, HostType] = dict(self._entries)
        for rust_type, host_type in other._entries.items():
            previous = combined.get(rust_type)
            if previous is not None and previous != host_type:
                logger.debug(f"Context merge overrides {rust_type}: {previous} -> {host_type}")
            combined[rust_type] = host_type
        return TypeContext(combined)

    def __or__(self, other: "TypeContext") -> "TypeContext":
        if not isinstance(other, TypeContext):
            return NotImplemented
        return self.merge(other)

    def __contains__(self, rust_type: object) -> bool:
        if not isinstance(rust_type, (RType, str)):
            return False
        return self.lookup(rust_type) is not None

    def __iter__(self) -> Iterator[TypeCorrespondence]:
        return iter(self._entries.items())

    def __len__(self) -> int:
        return len(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeContext):
            return NotImplemented
        return dict(self._entries) == dict(other._entries)

    def __hash__(self) -> int:
        return hash(frozenset(self._entries.items()))

    def __repr__(self) -> str:
        return f"TypeContext({len(self._entries)} entries)"


def singleton(rust_type: _RTypeLike, host_type: _HostTypeLike) -> TypeContext:
    """
    Lift one correspondence into a context.

    Raises:
        ValueError: If `host_type` is a type object that cannot be referenced
            by import path, such as a CFUNCTYPE prototype or a local class
    """
    return TypeContext({_as_rtype(rust_type): _as_host_type(host_type)})


def mk_context(correspondences: Iterable[Tuple[_RTypeLike, _HostTypeLike]]) -> TypeContext:
    """
    Build a context from a list of correspondences.

    Later entries override earlier entries with the same Rust type.
    """
    entries: Dict[RType, HostType] = {}
    for rust_type, host_type in correspondences:
        entries[_as_rtype(rust_type)] = _as_host_type(host_type)
    return TypeContext(entries)


def merge(*contexts: TypeContext) -> TypeContext:
    """Merge contexts left to right; later contexts win."""
    result = TypeContext()
    for context in contexts:
        result = result.merge(context)
    return result


def lookup_type_in_context(context: TypeContext, rust_type: _RTypeLike) -> Optional[HostType]:
    """Functional form of `TypeContext.lookup`."""
    return context.lookup(rust_type)


# ---------------------------------------------------------------------------
# Built-in contexts
# ---------------------------------------------------------------------------

# Built directly from canonical spellings; going through the parser here
# would import it while this module is still initialising.
def _builtin(pairs: Iterable[Tuple[str, str]]) -> TypeContext:
    return TypeContext({RType(rust): HostType(host) for rust, host in pairs})


basic = _builtin(
    [
        ("i8", "ctypes.c_int8"),
        ("i16", "ctypes.c_int16"),
        ("i32", "ctypes.c_int32"),
        ("i64", "ctypes.c_int64"),
        ("isize", "ctypes.c_ssize_t"),
        ("u8", "ctypes.c_uint8"),
        ("u16", "ctypes.c_uint16"),
        ("u32", "ctypes.c_uint32"),
        ("u64", "ctypes.c_uint64"),
        ("usize", "ctypes.c_size_t"),
        ("f32", "ctypes.c_float"),
        ("f64", "ctypes.c_double"),
        ("bool", "ctypes.c_bool"),
        ("char", "ctypes.c_uint32"),
        ("()", "None"),
        ("*const u8", "ctypes.c_char_p"),
        ("*mut u8", "ctypes.c_char_p"),
    ]
)
"""Primitive numeric, boolean, unit and byte-string correspondences."""

libc = _builtin(
    [
        ("libc::c_char", "ctypes.c_char"),
        ("libc::c_schar", "ctypes.c_byte"),
        ("libc::c_uchar", "ctypes.c_ubyte"),
        ("libc::c_short", "ctypes.c_short"),
        ("libc::c_ushort", "ctypes.c_ushort"),
        ("libc::c_int", "ctypes.c_int"),
        ("libc::c_uint", "ctypes.c_uint"),
        ("libc::c_long", "ctypes.c_long"),
        ("libc::c_ulong", "ctypes.c_ulong"),
        ("libc::c_longlong", "ctypes.c_longlong"),
        ("libc::c_ulonglong", "ctypes.c_ulonglong"),
        ("libc::c_float", "ctypes.c_float"),
        ("libc::c_double", "ctypes.c_double"),
        ("libc::size_t", "ctypes.c_size_t"),
        ("libc::ssize_t", "ctypes.c_ssize_t"),
        ("*const libc::c_char", "ctypes.c_char_p"),
        ("*mut libc::c_char", "ctypes.c_char_p"),
        ("*const libc::c_void", "ctypes.c_void_p"),
        ("*mut libc::c_void", "ctypes.c_void_p"),
    ]
)
"""C-compatible numeric and pointer vocabulary, spelled through `libc::`."""

DEFAULT_CONTEXT = basic
