"""
Import hook.

While installed, modules that mention inline_rust are expanded and their
Rust compiled when they are imported, instead of ahead of time with
`inline-rust build`. Compiled libraries go through the build cache, so an
unchanged module is compiled once.

    import inline_rust.importer
    inline_rust.importer.install()

    import my_module_with_rust
"""

import importlib.abc
import importlib.machinery
import os
import sys
import tempfile
from typing import Optional

from .compiler.build import ModuleBuilder, library_filename
from .utils.caching import generate_cache_key
from .utils.config import get_config
from .utils.logging import get_logger

logger = get_logger(__name__)

MARKER = "inline_rust"


def _mentions_inline_rust(path: str) -> bool:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return MARKER in f.read()
    except (OSError, UnicodeDecodeError):
        return False


def default_build_root() -> str:
    """Directory receiving the libraries built by the hook."""
    cache_dir = get_config().cache.cache_dir or os.path.join(tempfile.gettempdir(), "inline_rust_cache")
    return os.path.join(cache_dir, "modules")


class InlineRustLoader(importlib.machinery.SourceFileLoader):
    """Source loader that expands and compiles inline Rust before executing."""

    def __init__(self, fullname: str, path: str, builder: ModuleBuilder, build_root: str):
        super().__init__(fullname, path)
        self.builder = builder
        self.build_root = build_root

    def get_code(self, fullname):
        # Bytecode caching is bypassed: cached bytecode would point at a
        # library that may have been evicted since.
        path = self.get_filename(fullname)
        source = self.get_data(path).decode("utf-8")

        out_dir = os.path.join(self.build_root, generate_cache_key(os.path.abspath(path), fullname))
        library_ref = os.path.join(out_dir, library_filename(fullname))
        built = self.builder.build_source(source, fullname, out_dir, filename=path, library_ref=library_ref)
        with open(built.python_path, "r", encoding="utf-8") as f:
            expanded = f.read()

        logger.info(f"Imported '{fullname}' with {built.snippet_count} inline Rust snippets")
        return self.source_to_code(expanded, path)


class InlineRustFinder(importlib.abc.MetaPathFinder):
    """Meta path finder routing modules that use inline_rust to InlineRustLoader."""

    def __init__(self, builder: Optional[ModuleBuilder] = None, build_root: Optional[str] = None):
        self.builder = builder or ModuleBuilder()
        self.build_root = build_root or default_build_root()

    def find_spec(self, fullname, path, target=None):
        if fullname == MARKER or fullname.startswith(MARKER + "."):
            return None

        spec = importlib.machinery.PathFinder.find_spec(fullname, path)
        if spec is None or not isinstance(spec.loader, importlib.machinery.SourceFileLoader):
            return None
        if not _mentions_inline_rust(spec.origin):
            return None

        spec.loader = InlineRustLoader(fullname, spec.origin, self.builder, self.build_root)
        return spec


_finder: Optional[InlineRustFinder] = None


def install(builder: Optional[ModuleBuilder] = None, build_root: Optional[str] = None) -> InlineRustFinder:
    """
    Install the import hook (idempotent).

    Args:
        builder: Builder used for imported modules (default: from the config)
        build_root: Directory receiving built modules

    Returns:
        The installed finder
    """
    global _finder
    if _finder is None:
        _finder = InlineRustFinder(builder, build_root)
        sys.meta_path.insert(0, _finder)
        logger.debug("Installed inline Rust import hook")
    return _finder


def uninstall() -> None:
    """Remove the import hook if it is installed."""
    global _finder
    if _finder is not None:
        if _finder in sys.meta_path:
            sys.meta_path.remove(_finder)
        _finder = None
        logger.debug("Removed inline Rust import hook")


def is_installed() -> bool:
    return _finder is not None
