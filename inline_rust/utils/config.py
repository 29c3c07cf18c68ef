"""
Configuration System for inline_rust.

Settings are read from a single JSON or YAML file with a small number of
environment variable overrides, and grouped into one dataclass per concern.
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_NAMES = ("inline_rust.yaml", "inline_rust.yml", "inline_rust.json")


@dataclass
class CompilerConfig:
    """Rust toolchain configuration."""

    rustc: str = "rustc"
    edition: str = "2021"
    opt_level: str = "2"
    extra_flags: List[str] = field(default_factory=list)
    timeout_seconds: int = 300

    # Prepend a `mod libc` alias over std::os::raw so the libc context
    # works without the libc crate.
    libc_shim: bool = True


@dataclass
class CacheConfig:
    """Build cache configuration."""

    enabled: bool = True
    max_size_mb: int = 512
    cache_dir: Optional[str] = None


@dataclass
class RuntimeConfig:
    """Runtime binding configuration."""

    pure_cache_size: Optional[int] = 256
    interrupt_signal: str = "SIGUSR2"
    interrupt_poll_interval: float = 0.05


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "WARNING"
    enable_file_logging: bool = False
    log_file: str = "inline_rust.log"


class InlineRustConfig:
    """
    Unified configuration manager.

    Loads one configuration file (JSON or YAML) and exposes its sections
    as dataclasses. Missing keys take their dataclass defaults.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_file: Path to configuration file. If None, uses
                INLINE_RUST_CONFIG or a default file in the working directory.
        """
        self.config_file = self._get_config_file_path(config_file)
        self._config_data = self._load_config()

        self.compiler = self._create_compiler_config()
        self.cache = self._create_cache_config()
        self.runtime = self._create_runtime_config()
        self.logging = self._create_logging_config()

    def _get_config_file_path(self, config_file: Optional[str]) -> Optional[Path]:
        """Get the configuration file path."""
        if config_file:
            return Path(config_file)

        env_file = os.getenv("INLINE_RUST_CONFIG")
        if env_file:
            return Path(env_file)

        for name in DEFAULT_CONFIG_NAMES:
            candidate = Path.cwd() / name
            if candidate.exists():
                return candidate
        return None

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from file (JSON or YAML)."""
        if self.config_file is None:
            return {}
        if not self.config_file.exists():
            logger.warning(f"Configuration file {self.config_file} not found, using defaults")
            return {}

        with open(self.config_file, "r") as f:
            if self.config_file.suffix.lower() in (".yaml", ".yml"):
                config_data = yaml.safe_load(f)
            else:
                config_data = json.load(f)
        logger.info(f"Loaded configuration from {self.config_file}")
        return config_data or {}

    def _create_compiler_config(self) -> CompilerConfig:
        """Create compiler configuration from loaded data."""
        data = self._config_data.get("compiler", {})

        return CompilerConfig(
            rustc=os.getenv("INLINE_RUST_RUSTC") or data.get("rustc", "rustc"),
            edition=str(data.get("edition", "2021")),
            opt_level=str(data.get("opt_level", "2")),
            extra_flags=list(data.get("extra_flags", [])),
            timeout_seconds=data.get("timeout_seconds", 300),
            libc_shim=data.get("libc_shim", True),
        )

    def _create_cache_config(self) -> CacheConfig:
        """Create cache configuration from loaded data."""
        data = self._config_data.get("cache", {})

        env_disabled = os.getenv("INLINE_RUST_DISABLE_CACHE", "").lower() in ("1", "true", "yes")
        enabled = not env_disabled and data.get("enabled", True)

        return CacheConfig(
            enabled=enabled,
            max_size_mb=data.get("max_size_mb", 512),
            cache_dir=data.get("cache_dir"),
        )

    def _create_runtime_config(self) -> RuntimeConfig:
        """Create runtime configuration from loaded data."""
        data = self._config_data.get("runtime", {})

        return RuntimeConfig(
            pure_cache_size=data.get("pure_cache_size", 256),
            interrupt_signal=data.get("interrupt_signal", "SIGUSR2"),
            interrupt_poll_interval=data.get("interrupt_poll_interval", 0.05),
        )

    def _create_logging_config(self) -> LoggingConfig:
        """Create logging configuration from loaded data."""
        data = self._config_data.get("logging", {})

        return LoggingConfig(
            level=data.get("level", "WARNING"),
            enable_file_logging=data.get("enable_file_logging", False),
            log_file=data.get("log_file", "inline_rust.log"),
        )

    def is_cache_enabled(self) -> bool:
        """Check if the build cache is enabled."""
        return self.cache.enabled

    def to_dict(self) -> Dict[str, Any]:
        """Return the effective configuration as plain data."""
        return {
            "version": "1.0",
            "compiler": {
                "rustc": self.compiler.rustc,
                "edition": self.compiler.edition,
                "opt_level": self.compiler.opt_level,
                "extra_flags": list(self.compiler.extra_flags),
                "timeout_seconds": self.compiler.timeout_seconds,
                "libc_shim": self.compiler.libc_shim,
            },
            "cache": {
                "enabled": self.cache.enabled,
                "max_size_mb": self.cache.max_size_mb,
                "cache_dir": self.cache.cache_dir,
            },
            "runtime": {
                "pure_cache_size": self.runtime.pure_cache_size,
                "interrupt_signal": self.runtime.interrupt_signal,
                "interrupt_poll_interval": self.runtime.interrupt_poll_interval,
            },
            "logging": {
                "level": self.logging.level,
                "enable_file_logging": self.logging.enable_file_logging,
                "log_file": self.logging.log_file,
            },
        }

    def save_config(self, path: Optional[str] = None) -> Path:
        """
        Save current configuration to file.

        Args:
            path: Destination; defaults to the file the config was loaded from

        Returns:
            Path that was written
        """
        target = Path(path) if path else (self.config_file or Path.cwd() / "inline_rust.json")
        with open(target, "w") as f:
            if target.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)
        logger.info(f"Configuration saved to {target}")
        return target


# Global configuration instance
_global_config: Optional[InlineRustConfig] = None


def get_config() -> InlineRustConfig:
    """Get the global configuration instance."""
    global _global_config
    if _global_config is None:
        _global_config = InlineRustConfig()
    return _global_config


def set_config(config: Optional[InlineRustConfig]) -> None:
    """Set (or reset, with None) the global configuration instance."""
    global _global_config
    _global_config = config


def load_config(config_file: str) -> InlineRustConfig:
    """Load configuration from a specific file."""
    return InlineRustConfig(config_file)
