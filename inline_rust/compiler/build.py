"""
Module build driver.

Runs the whole pipeline for one Python module: expansion, flushing of the
emitted Rust, compilation (through the build cache) and writing of the
expanded module. Outputs are staged in a temporary directory and only
moved into place once every stage succeeded, so a failed build leaves no
partial files behind.
"""

import os
import shutil
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..expander import ExpansionResult, expand_module
from ..utils.caching import BuildCache, generate_cache_key
from ..utils.config import InlineRustConfig, get_config
from ..utils.exceptions import CompilationError, InlineRustError
from ..utils.logging import get_logger
from ..utils.naming import library_stem
from .rustc import RustToolchain, shared_library_suffix

logger = get_logger(__name__)


def library_filename(unit_name: str, platform: Optional[str] = None) -> str:
    """File name of the shared library built for a module."""
    platform = platform or sys.platform
    prefix = "" if platform.startswith("win") else "lib"
    return f"{prefix}{library_stem(unit_name)}{shared_library_suffix(platform)}"


def rust_filename(unit_name: str) -> str:
    """File name of the emitted Rust source for a module."""
    return f"{unit_name.split('.')[-1]}.rs"


@dataclass
class BuildResult:
    """Files produced for one module."""

    module_name: str
    python_path: Path
    rust_path: Optional[Path] = None
    library_path: Optional[Path] = None
    snippet_count: int = 0
    from_cache: bool = False

    @property
    def has_rust(self) -> bool:
        return self.rust_path is not None


class ModuleBuilder:
    """
    Builds Python modules containing inline Rust.

    One builder may build many modules; each module gets its own
    compilation unit.
    """

    def __init__(
        self,
        config: Optional[InlineRustConfig] = None,
        toolchain: Optional[RustToolchain] = None,
        cache: Optional[BuildCache] = None,
    ):
        """
        Args:
            config: Configuration (default: global configuration)
            toolchain: Rust toolchain (default: built from the config)
            cache: Build cache (default: built from the config when enabled)
        """
        self.config = config or get_config()
        self.toolchain = toolchain or RustToolchain(self.config.compiler)
        if cache is None and self.config.is_cache_enabled():
            cache = BuildCache(self.config.cache.cache_dir, self.config.cache.max_size_mb)
        self.cache = cache

    def expand(self, source: str, module_name: str, filename: str, library_ref: str) -> ExpansionResult:
        """Expand a module without compiling it."""
        return expand_module(
            source,
            module_name,
            filename=filename,
            library_ref=library_ref,
            libc_shim=self.config.compiler.libc_shim,
        )

    def build_source(
        self,
        source: str,
        module_name: str,
        out_dir: str,
        filename: str = "<unknown>",
        library_ref: Optional[str] = None,
        emit_only: bool = False,
    ) -> BuildResult:
        """
        Build one module from its source text.

        Args:
            source: Python source of the module
            module_name: Dotted module name
            out_dir: Directory receiving the expanded module, the Rust source
                and the library
            filename: Source path used in diagnostics
            library_ref: Library path written into the expanded module
                (default: the library file name, resolved next to the module)
            emit_only: Write the expanded module and the Rust source but do
                not compile

        Returns:
            BuildResult describing the written files

        Raises:
            InlineRustError: If any stage fails; nothing is written then
        """
        lib_name = library_filename(module_name)
        if library_ref is None:
            library_ref = lib_name

        result = self.expand(source, module_name, filename, library_ref)
        py_name = f"{module_name.split('.')[-1]}.py"

        out_path = Path(out_dir)
        with tempfile.TemporaryDirectory(prefix="inline_rust_build_") as staging:
            staging_path = Path(staging)
            (staging_path / py_name).write_text(result.code)
            staged = [py_name]

            from_cache = False
            if result.has_rust:
                result.unit.sink.flush(staging_path / rust_filename(module_name))
                staged.append(rust_filename(module_name))
                if not emit_only:
                    from_cache = self._compile(result, staging_path, lib_name)
                    staged.append(lib_name)

            out_path.mkdir(parents=True, exist_ok=True)
            for name in staged:
                shutil.copy2(staging_path / name, out_path / name)

        built = BuildResult(
            module_name=module_name,
            python_path=out_path / py_name,
            snippet_count=result.unit.expanded_count,
            from_cache=from_cache,
        )
        if result.has_rust:
            built.rust_path = out_path / rust_filename(module_name)
            if not emit_only:
                built.library_path = out_path / lib_name
        logger.info(f"Built module '{module_name}' into {out_path}")
        return built

    def build_file(
        self,
        path: str,
        out_dir: Optional[str] = None,
        module_name: Optional[str] = None,
        emit_only: bool = False,
    ) -> BuildResult:
        """
        Build one module from a file.

        Args:
            path: Python source file
            out_dir: Output directory (default: `build` next to the file)
            module_name: Dotted module name (default: the file stem)
            emit_only: See build_source
        """
        source_path = Path(path)
        with open(source_path, "r", encoding="utf-8") as f:
            source = f.read()

        if module_name is None:
            module_name = source_path.stem
        if out_dir is None:
            out_dir = default_out_dir(path)
        if Path(out_dir).resolve() == source_path.resolve().parent:
            raise InlineRustError(
                "Output directory must differ from the source directory", {"out_dir": out_dir}
            )

        return self.build_source(source, module_name, out_dir, str(source_path), emit_only=emit_only)

    def _compile(self, result: ExpansionResult, staging_path: Path, lib_name: str) -> bool:
        """Compile the flushed unit into `staging_path / lib_name`; True on a cache hit."""
        rust_path = staging_path / rust_filename(result.unit.name)
        lib_path = staging_path / lib_name
        crate_name = library_stem(result.unit.name)

        key = None
        if self.cache is not None:
            template = self.toolchain.get_compile_command("<source>", "<output>", crate_name)
            key = generate_cache_key(result.unit.sink.render(), " ".join(template), self.toolchain.version())
            cached = self.cache.get(key)
            if cached is not None:
                shutil.copy2(cached, lib_path)
                return True

        try:
            self.toolchain.compile(str(rust_path), str(lib_path), crate_name=crate_name)
        except CompilationError as e:
            logger.error(f"Compilation of '{result.unit.name}' failed: {e}")
            for line in e.get_compiler_errors():
                logger.error(line)
            raise
        except OSError as e:
            raise CompilationError(
                f"Unexpected toolchain failure: {e}", rust_source=result.unit.sink.render()
            ) from e

        if self.cache is not None and key is not None:
            self.cache.put(key, str(lib_path), shared_library_suffix())
        return False


def build_file(path: str, out_dir: Optional[str] = None, emit_only: bool = False) -> BuildResult:
    """Build one file with a builder configured from the global configuration."""
    return ModuleBuilder().build_file(path, out_dir, emit_only=emit_only)


def default_out_dir(path: str) -> str:
    """Default output directory for a source file."""
    return os.path.join(os.path.dirname(os.path.abspath(path)), "build")
