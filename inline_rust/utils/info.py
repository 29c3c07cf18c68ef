"""
Package information utility.

This module provides the `inline-rust info` report: the installation,
the Rust toolchain and the effective configuration.
"""

import platform
import sys
from typing import Any, Dict

import inline_rust


def get_system_info() -> Dict[str, Any]:
    """
    Get system information relevant to inline Rust.

    Returns:
        Dictionary containing system information
    """
    return {
        "python_version": sys.version,
        "platform": platform.platform(),
        "architecture": platform.architecture(),
        "processor": platform.processor(),
    }


def get_inline_rust_info() -> Dict[str, Any]:
    """
    Get inline_rust-specific information.

    Returns:
        Dictionary containing package, toolchain and cache information
    """
    from ..compiler.rustc import RustToolchain, shared_library_suffix
    from .caching import BuildCache
    from .config import get_config

    config = get_config()
    toolchain = RustToolchain(config.compiler)
    info = {
        "version": inline_rust.__version__,
        "author": inline_rust.__author__,
        "rustc": config.compiler.rustc,
        "rustc_available": toolchain.is_available(),
        "rustc_version": toolchain.version(),
        "library_suffix": shared_library_suffix(),
        "config_file": str(config.config_file) if config.config_file else None,
        "cache_enabled": config.is_cache_enabled(),
    }

    if config.is_cache_enabled():
        try:
            info["cache"] = BuildCache(config.cache.cache_dir, config.cache.max_size_mb).get_stats()
        except OSError as e:
            info["cache_error"] = str(e)

    return info


def print_info() -> None:
    """Print formatted information about inline_rust and the system."""
    print("inline-rust: Rust snippets in Python modules")
    print("=" * 40)

    package_info = get_inline_rust_info()
    print(f"\ninline-rust Version: {package_info['version']}")
    print(f"Author: {package_info['author']}")
    print(f"Configuration File: {package_info['config_file'] or 'none (defaults)'}")

    if package_info["rustc_available"]:
        print(f"Rust Compiler: {package_info['rustc_version']}")
    else:
        print(f"Rust Compiler: '{package_info['rustc']}' not available")
    print(f"Library Suffix: {package_info['library_suffix']}")

    if "cache" in package_info:
        cache = package_info["cache"]
        print(f"Build Cache: {cache['entries']} entries, {cache['total_size_bytes']} bytes in {cache['cache_dir']}")
    elif "cache_error" in package_info:
        print(f"Build Cache Error: {package_info['cache_error']}")
    else:
        print("Build Cache: disabled")

    system_info = get_system_info()
    print(f"\nPython Version: {system_info['python_version'].split()[0]}")
    print(f"Platform: {system_info['platform']}")
    print(f"Architecture: {system_info['architecture'][0]}")


def main() -> None:
    """Main entry point for the info report."""
    try:
        print_info()
    except Exception as e:
        print(f"Error getting system information: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
