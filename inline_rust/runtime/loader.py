"""
Library loading and foreign function bindings.

Expanded modules call `load_unit` once at import time and then `declare`
one binding per snippet. The shared library is opened, and the host types
resolved, on the first call of a binding.
"""

import ctypes
import functools
import os
import threading
from typing import Any, Callable, Dict, Optional, Sequence, Tuple

from ..codegen.safety import Safety
from ..context import HostType
from ..utils.exceptions import LibraryLoadError
from ..utils.logging import get_logger
from .interrupt import get_executor

logger = get_logger(__name__)


class LoadedUnit:
    """
    The compiled library of one expanded module.

    The library is opened twice at most: through ctypes.CDLL for bindings
    that release the GIL and through ctypes.PyDLL for bindings that hold it.
    """

    def __init__(self, module_name: str, library_path: str):
        self.module_name = module_name
        self.library_path = library_path
        self._handles: Dict[bool, ctypes.CDLL] = {}
        self._lock = threading.Lock()
        self.bindings: Dict[str, "ForeignFunction"] = {}

    def library(self, hold_gil: bool = False) -> ctypes.CDLL:
        """
        Open (once) and return the library handle.

        Args:
            hold_gil: Return the PyDLL handle, whose calls keep the GIL

        Raises:
            LibraryLoadError: If the library cannot be opened
        """
        with self._lock:
            handle = self._handles.get(hold_gil)
            if handle is None:
                loader = ctypes.PyDLL if hold_gil else ctypes.CDLL
                try:
                    handle = loader(self.library_path)
                except OSError as e:
                    raise LibraryLoadError(
                        f"Failed to load library for '{self.module_name}': {e}", self.library_path
                    ) from e
                logger.debug(f"Loaded {self.library_path} ({'PyDLL' if hold_gil else 'CDLL'})")
                self._handles[hold_gil] = handle
            return handle

    def declare(
        self,
        symbol: str,
        param_types: Sequence[str],
        result_type: str,
        safety: str = "safe",
        pure: bool = True,
    ) -> "ForeignFunction":
        """
        Declare the binding of one exported symbol.

        Args:
            symbol: Exported symbol name
            param_types: ctypes type references of the parameters, in order
            result_type: ctypes type reference of the result ("None" for void)
            safety: "safe", "unsafe" or "interruptible"
            pure: Memoise the binding

        Returns:
            Callable binding
        """
        binding = ForeignFunction(self, symbol, tuple(param_types), result_type, Safety(safety), pure)
        self.bindings[symbol] = binding
        return binding


class ForeignFunction:
    """
    Lazily bound foreign function.

    Binding (symbol lookup, argtypes/restype) happens on the first call;
    calls after that go straight to ctypes, through a memo for pure bindings
    and through the interruptible executor for interruptible ones.
    """

    def __init__(
        self,
        unit: LoadedUnit,
        symbol: str,
        param_types: Sequence[str],
        result_type: str,
        safety: Safety,
        pure: bool,
    ):
        self.unit = unit
        self.symbol = symbol
        self.param_types = tuple(HostType(p) for p in param_types)
        self.result_type = HostType(result_type)
        self.safety = safety
        self.pure = pure
        self._call: Optional[Callable[..., Any]] = None
        self._lock = threading.Lock()

    @property
    def is_bound(self) -> bool:
        return self._call is not None

    def _bind(self) -> Callable[..., Any]:
        hold_gil = self.safety is Safety.UNSAFE
        library = self.unit.library(hold_gil=hold_gil)
        try:
            function = getattr(library, self.symbol)
        except AttributeError as e:
            raise LibraryLoadError(
                f"Symbol not found in library of '{self.unit.module_name}'", self.unit.library_path, self.symbol
            ) from e

        try:
            function.argtypes = [p.resolve() for p in self.param_types]
            function.restype = self.result_type.resolve()
        except (ImportError, AttributeError, ValueError) as e:
            raise LibraryLoadError(
                f"Cannot resolve host types of '{self.symbol}': {e}", self.unit.library_path, self.symbol
            ) from e

        call = function
        if self.safety is Safety.INTERRUPTIBLE:
            call = functools.partial(get_executor().call, function)

        if self.pure:
            from ..utils.config import get_config

            call = memoize(call, get_config().runtime.pure_cache_size)

        logger.debug(f"Bound {self.symbol} ({self.safety.value}, pure={self.pure})")
        return call

    def __call__(self, *args: Any) -> Any:
        if self._call is None:
            with self._lock:
                if self._call is None:
                    self._call = self._bind()
        return self._call(*args)

    def __repr__(self) -> str:
        params = ", ".join(str(p) for p in self.param_types)
        return f"<ForeignFunction {self.symbol}({params}) -> {self.result_type} [{self.safety.value}]>"


def _memo_key(args: Sequence[Any]) -> Tuple[Any, ...]:
    # 0.0 == -0.0 and 1 == True, but the foreign function can tell them apart.
    return tuple((type(arg), arg.hex() if isinstance(arg, float) else None, arg) for arg in args)


def memoize(function: Callable[..., Any], maxsize: Optional[int]) -> Callable[..., Any]:
    """
    Share results of a pure binding between calls with identical arguments.

    Arguments are compared by type and, for floats, by their exact bit
    pattern. Calls with unhashable arguments are not memoised.

    Args:
        function: The bound foreign call
        maxsize: Number of results kept (None for unbounded)
    """

    @functools.lru_cache(maxsize=maxsize)
    def cached(key: Tuple[Any, ...]) -> Any:
        return function(*(arg for _, _, arg in key))

    def call(*args: Any) -> Any:
        key = _memo_key(args)
        try:
            hash(key)
        except TypeError:
            return function(*args)
        return cached(key)

    call.cache_info = cached.cache_info
    call.cache_clear = cached.cache_clear
    return call


def resolve_library_path(module_file: Optional[str], library: str) -> str:
    """Resolve a library reference relative to the directory of the module."""
    if os.path.isabs(library) or not module_file:
        return library
    return os.path.join(os.path.dirname(os.path.abspath(module_file)), library)


def load_unit(module_name: str, module_file: Optional[str], library: str) -> LoadedUnit:
    """
    Create the loaded unit of an expanded module.

    Args:
        module_name: `__name__` of the expanded module
        module_file: `__file__` of the expanded module
        library: Library path written by the build; relative paths are
            resolved against the module's directory

    Raises:
        LibraryLoadError: If the library file does not exist
    """
    library_path = resolve_library_path(module_file, library)
    if not os.path.exists(library_path):
        raise LibraryLoadError(f"Compiled library for '{module_name}' not found", library_path)
    return LoadedUnit(module_name, library_path)
