"""
Rust toolchain utilities.

Wraps rustc for building the emitted source of one module into a C-ABI
shared library (`--crate-type cdylib`).
"""

import os
import subprocess
import sys
import time
from typing import List, Optional

from ..utils.config import CompilerConfig
from ..utils.exceptions import CompilationError
from ..utils.logging import ExpansionLogger, get_logger

logger = get_logger(__name__)
events = ExpansionLogger(__name__)


def shared_library_suffix(platform: Optional[str] = None) -> str:
    """File suffix of shared libraries on the given (default: current) platform."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        return ".dll"
    if platform == "darwin":
        return ".dylib"
    return ".so"


class RustToolchain:
    """Manages the rustc executable and its command lines."""

    def __init__(self, config: Optional[CompilerConfig] = None):
        """
        Initialize the toolchain.

        Args:
            config: Compiler settings (default: CompilerConfig())
        """
        self.config = config or CompilerConfig()
        self.rustc = self.config.rustc
        self._is_available: Optional[bool] = None
        self._version: Optional[str] = None

    def is_available(self) -> bool:
        """Check if rustc can be executed."""
        if self._is_available is not None:
            return self._is_available

        try:
            result = subprocess.run([self.rustc, "--version"], capture_output=True, text=True, timeout=10)
            self._is_available = result.returncode == 0
            if self._is_available:
                self._version = result.stdout.strip()
            else:
                logger.debug(f"rustc --version failed with return code {result.returncode}")
        except (FileNotFoundError, subprocess.TimeoutExpired, PermissionError) as e:
            logger.debug(f"rustc availability check failed: {e}")
            self._is_available = False

        return self._is_available

    def version(self) -> Optional[str]:
        """Version line reported by rustc, or None if it is unavailable."""
        if self.is_available():
            return self._version
        return None

    def get_compile_command(
        self,
        source_path: str,
        output_path: str,
        crate_name: Optional[str] = None,
        extra_flags: Optional[List[str]] = None,
    ) -> List[str]:
        """
        Get the rustc command building `source_path` into a shared library.

        Args:
            source_path: Emitted Rust source file
            output_path: Library file to produce
            crate_name: Crate name (default: derived from the source file name)
            extra_flags: Flags appended after the configured ones

        Returns:
            Complete command list for subprocess
        """
        cmd = [
            self.rustc,
            "--crate-type",
            "cdylib",
            "--edition",
            self.config.edition,
            "-C",
            f"opt-level={self.config.opt_level}",
        ]

        if crate_name:
            cmd.extend(["--crate-name", crate_name])

        cmd.extend(self.config.extra_flags)
        if extra_flags:
            cmd.extend(extra_flags)

        cmd.extend([source_path, "-o", output_path])
        return cmd

    def compile(
        self,
        source_path: str,
        output_path: str,
        crate_name: Optional[str] = None,
        extra_flags: Optional[List[str]] = None,
    ) -> str:
        """
        Compile one emitted source file.

        Returns:
            Path of the produced library

        Raises:
            CompilationError: If rustc is missing, fails or times out
        """
        with open(source_path, "r") as f:
            rust_source = f.read()

        if not self.is_available():
            raise CompilationError(f"Rust compiler '{self.rustc}' is not available", rust_source=rust_source)

        cmd = self.get_compile_command(source_path, output_path, crate_name, extra_flags)
        timeout = self.config.timeout_seconds
        events.log_compile_start(source_path, output_path)
        logger.debug(f"Running rustc: {' '.join(cmd)}")

        start = time.perf_counter()
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout)
        except subprocess.TimeoutExpired:
            raise CompilationError(f"rustc timed out after {timeout} seconds", rust_source=rust_source)

        if result.returncode != 0:
            output = "\n".join(part for part in (result.stderr, result.stdout) if part)
            raise CompilationError(
                f"rustc failed with return code {result.returncode}",
                rust_source=rust_source,
                compiler_output=output,
            )

        if not os.path.exists(output_path):
            raise CompilationError(f"rustc did not produce {output_path}", rust_source=rust_source)

        events.log_compile_finished(output_path, time.perf_counter() - start)
        return output_path

