"""
Utils package for inline_rust.

Logging, configuration, exceptions, naming and build caching shared by the
expander, the toolchain and the runtime.
"""

# Core utilities
from .exceptions import (
    CompilationError,
    ConfigurationOrderError,
    EmissionError,
    ExpansionError,
    InlineRustError,
    LibraryLoadError,
    NotExpandedError,
    SnippetParseError,
    SourceLocation,
    UnmappedTypeError,
    UnresolvedIdentifierError,
)
from .naming import SymbolMinter, library_stem, sanitize_identifier

# Configuration and system utilities
from .config import (
    CacheConfig,
    CompilerConfig,
    InlineRustConfig,
    LoggingConfig,
    RuntimeConfig,
    get_config,
    load_config,
    set_config,
)

from .caching import BuildCache, generate_cache_key
from .logging import ExpansionLogger, get_logger, setup_logging

__all__ = [
    # Exceptions
    "CompilationError",
    "ConfigurationOrderError",
    "EmissionError",
    "ExpansionError",
    "InlineRustError",
    "LibraryLoadError",
    "NotExpandedError",
    "SnippetParseError",
    "SourceLocation",
    "UnmappedTypeError",
    "UnresolvedIdentifierError",

    # Naming
    "SymbolMinter",
    "library_stem",
    "sanitize_identifier",

    # Configuration
    "CacheConfig",
    "CompilerConfig",
    "InlineRustConfig",
    "LoggingConfig",
    "RuntimeConfig",
    "get_config",
    "load_config",
    "set_config",

    # Caching
    "BuildCache",
    "generate_cache_key",

    # Logging
    "ExpansionLogger",
    "get_logger",
    "setup_logging",
]
