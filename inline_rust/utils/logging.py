"""
Logging configuration and utilities.

This module provides centralized logging configuration for the
inline_rust package with appropriate formatting and levels.
"""

import logging
import os
from typing import Optional

ROOT_LOGGER_NAME = "inline_rust"


def setup_logging(level: Optional[str] = None, log_file: Optional[str] = None) -> None:
    """
    Configure logging for the inline_rust package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional file path for log output
    """
    if level is None:
        level = os.environ.get("INLINE_RUST_LOG_LEVEL", "WARNING")

    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(log_level)

    for handler in logger.handlers[:]:
        logger.removeHandler(handler)

    formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(log_level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for the given module.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance nested under the package logger
    """
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


class ExpansionLogger:
    """
    Structured logging for the expansion and build pipeline.

    Each method corresponds to one pipeline event so that the messages
    stay uniform across the expander, the toolchain and the import hook.
    """

    def __init__(self, name: str):
        """
        Initialize logger for specific component.

        Args:
            name: Component name for logging context
        """
        self.logger = get_logger(name)

    def log_unit_start(self, unit_name: str, filename: str) -> None:
        """Log the beginning of the expansion of one module."""
        self.logger.info(f"Expanding inline Rust in module '{unit_name}' ({filename})")

    def log_snippet_expanded(self, symbol: str, location: object, arg_count: int) -> None:
        """
        Log one expanded call site.

        Args:
            symbol: Exported symbol minted for the call site
            location: Source location of the snippet
            arg_count: Number of captured Python variables
        """
        self.logger.debug(f"Expanded snippet at {location} as '{symbol}' ({arg_count} args)")

    def log_compile_start(self, source_path: str, output_path: str) -> None:
        """Log the start of a rustc invocation."""
        self.logger.info(f"Compiling {source_path} -> {output_path}")

    def log_compile_finished(self, output_path: str, elapsed: float) -> None:
        """Log a successful rustc invocation."""
        self.logger.info(f"Compiled {output_path} in {elapsed:.3f}s")

    def log_cache_hit(self, key: str) -> None:
        """Log cache hit for a compiled library."""
        self.logger.debug(f"Cache hit for library {key[:8]}...")

    def log_cache_miss(self, key: str) -> None:
        """Log cache miss requiring a new compilation."""
        self.logger.debug(f"Cache miss for library {key[:8]}...")


# Initialize logging on module import
setup_logging()
