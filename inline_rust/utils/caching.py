"""
Compiled library caching.

Rebuilding a module whose emitted Rust source did not change is a pure
waste of rustc time, so compiled libraries are cached on disk keyed by a
hash of the source and the toolchain command line.
"""

import hashlib
import json
import os
import shutil
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, Optional

from .logging import ExpansionLogger, get_logger

logger = get_logger(__name__)
events = ExpansionLogger(__name__)

CACHE_VERSION = "1"
METADATA_FILENAME = "cache_metadata.json"


class BuildCache:
    """
    Manages caching of compiled shared libraries.

    Entries are plain files in the cache directory; a JSON index records
    their size and access time so the cache can be kept under a size limit.
    """

    def __init__(self, cache_dir: Optional[str] = None, max_size_mb: int = 512):
        """
        Initialize build cache.

        Args:
            cache_dir: Directory for cache storage (default: system temp)
            max_size_mb: Maximum cache size in megabytes
        """
        if cache_dir is None:
            cache_dir = os.path.join(tempfile.gettempdir(), "inline_rust_cache")

        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

        self.max_size_bytes = max_size_mb * 1024 * 1024
        self._metadata_file = self.cache_dir / METADATA_FILENAME
        self._metadata = self._load_metadata()

    def get(self, key: str) -> Optional[Path]:
        """
        Look up a cached library.

        Args:
            key: Cache key (see generate_cache_key)

        Returns:
            Path of the cached library, or None on a miss
        """
        entry = self._metadata.get(key)
        if entry is None:
            events.log_cache_miss(key)
            return None

        library_path = self.cache_dir / entry["filename"]
        if not library_path.exists():
            logger.warning(f"Cache entry exists but file missing: {library_path}")
            del self._metadata[key]
            self._save_metadata()
            events.log_cache_miss(key)
            return None

        entry["last_accessed"] = time.time()
        self._save_metadata()
        events.log_cache_hit(key)
        return library_path

    def put(self, key: str, library_path: str, suffix: str = "") -> Path:
        """
        Store a compiled library in the cache.

        Args:
            key: Cache key
            library_path: Freshly compiled library to copy into the cache
            suffix: File suffix to keep on the cached copy

        Returns:
            Path of the cached copy
        """
        filename = f"{key}{suffix}"
        cached_path = self.cache_dir / filename
        shutil.copy2(library_path, cached_path)

        now = time.time()
        self._metadata[key] = {
            "filename": filename,
            "size": cached_path.stat().st_size,
            "created": now,
            "last_accessed": now,
        }
        self._enforce_size_limit(keep=key)
        self._save_metadata()

        logger.debug(f"Cached library for key '{key}' ({self._metadata[key]['size']} bytes)")
        return cached_path

    def invalidate(self, key: str) -> bool:
        """
        Remove specific entry from cache.

        Returns:
            True if entry was removed, False if not found
        """
        return self._remove_entry(key)

    def clear(self) -> None:
        """Remove all entries from cache."""
        shutil.rmtree(self.cache_dir, ignore_errors=True)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self._metadata.clear()
        self._save_metadata()
        logger.info("Cache cleared")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dictionary containing cache statistics
        """
        total_size = sum(entry["size"] for entry in self._metadata.values())
        return {
            "entries": len(self._metadata),
            "total_size_bytes": total_size,
            "cache_dir": str(self.cache_dir),
            "max_size_mb": self.max_size_bytes / (1024 * 1024),
        }

    def _load_metadata(self) -> Dict[str, Any]:
        """Load cache metadata from disk, discarding other cache versions."""
        if not self._metadata_file.exists():
            return {}
        try:
            with open(self._metadata_file, "r") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load cache metadata: {e}")
            return {}
        if not isinstance(data, dict) or data.get("cache_version") != CACHE_VERSION:
            logger.info("Cache version mismatch, starting with an empty cache")
            return {}
        return data.get("entries", {})

    def _save_metadata(self) -> None:
        """Save cache metadata to disk."""
        with open(self._metadata_file, "w") as f:
            json.dump({"cache_version": CACHE_VERSION, "entries": self._metadata}, f, indent=2)

    def _remove_entry(self, key: str) -> bool:
        """Remove cache entry and associated file."""
        entry = self._metadata.pop(key, None)
        if entry is None:
            return False

        library_path = self.cache_dir / entry["filename"]
        if library_path.exists():
            library_path.unlink()
        self._save_metadata()

        logger.debug(f"Removed cache entry for key '{key}'")
        return True

    def _enforce_size_limit(self, keep: Optional[str] = None) -> None:
        """Remove least recently used entries while the cache exceeds its limit."""
        total_size = sum(entry["size"] for entry in self._metadata.values())
        if total_size <= self.max_size_bytes:
            return

        sorted_entries = sorted(self._metadata.items(), key=lambda x: x[1]["last_accessed"])
        for key, entry in sorted_entries:
            if total_size <= self.max_size_bytes:
                break
            if key == keep:
                continue
            if self._remove_entry(key):
                total_size -= entry["size"]
                logger.debug(f"Evicted cache entry '{key}' to enforce size limit")


def generate_cache_key(*args) -> str:
    """
    Generate cache key from arguments.

    Args:
        *args: Arguments to hash for cache key

    Returns:
        Hexadecimal hash string suitable for use as cache key
    """
    hasher = hashlib.sha256()
    for arg in args:
        hasher.update(str(arg).encode("utf-8"))
        hasher.update(b"\0")
    return hasher.hexdigest()[:24]
