"""
Storage - Key-value blob persistence
====================================
"""

import logging
import re
import threading
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """
    Key-value persistence capability over opaque byte blobs.

    Subclasses implement get/set. The preset store only ever reads and
    writes whole blobs.
    """

    def get(self, key: str) -> Optional[bytes]:
        """Return the blob stored under key, or None if absent."""
        raise NotImplementedError

    def set(self, key: str, blob: bytes):
        """Store blob under key, replacing any previous value."""
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    """In-process storage (tests, throwaway sessions)."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[bytes]:
        with self._lock:
            return self._data.get(key)

    def set(self, key: str, blob: bytes):
        with self._lock:
            self._data[key] = bytes(blob)


class FileStorage(KeyValueStorage):
    """
    Storage that keeps one file per key inside a directory.

    Writes go to a temporary file first and are then renamed over the
    target, so a crash mid-write leaves the previous blob intact.
    """

    DEFAULT_DIR = Path.home() / ".config" / "radiant-control" / "presets"

    def __init__(self, directory: Optional[Path] = None, suffix: str = ".yaml"):
        """
        Initialize file storage.

        Args:
            directory: Directory holding the blobs, or None for default
            suffix: File name suffix for each key
        """
        self.directory = Path(directory or self.DEFAULT_DIR).expanduser()
        self.suffix = suffix
        self._lock = threading.Lock()

    def _path_for(self, key: str) -> Path:
        safe_key = re.sub(r"[^A-Za-z0-9_.-]", "_", key)
        return self.directory / f"{safe_key}{self.suffix}"

    def get(self, key: str) -> Optional[bytes]:
        path = self._path_for(key)
        with self._lock:
            if not path.exists():
                logger.debug(f"No stored blob for '{key}' at {path}")
                return None
            return path.read_bytes()

    def set(self, key: str, blob: bytes):
        path = self._path_for(key)
        with self._lock:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_name(path.name + ".tmp")
            tmp_path.write_bytes(blob)
            tmp_path.replace(path)
        logger.debug(f"Stored {len(blob)} bytes for '{key}' at {path}")
