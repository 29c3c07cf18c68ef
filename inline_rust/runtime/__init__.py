"""Runtime support for expanded modules."""

from .interrupt import InterruptibleExecutor, get_executor
from .loader import ForeignFunction, LoadedUnit, load_unit, resolve_library_path

__all__ = [
    "InterruptibleExecutor",
    "get_executor",
    "ForeignFunction",
    "LoadedUnit",
    "load_unit",
    "resolve_library_path",
]
