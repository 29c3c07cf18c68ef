"""
Compilation of emitted Rust and the module build driver.
"""

from .build import BuildResult, ModuleBuilder, build_file, library_filename, rust_filename
from .rustc import RustToolchain, shared_library_suffix

__all__ = [
    "BuildResult",
    "ModuleBuilder",
    "build_file",
    "library_filename",
    "rust_filename",
    "RustToolchain",
    "shared_library_suffix",
]
