"""
Local Durable Cache

String-keyed entries persisted to a small JSON file. The settings store
reads it at startup so preferences render before the remote profile
resolves.

Writes replace the whole file through a temp file + rename, so a crash
mid-write leaves the previous contents intact.
"""

import json
import os
from pathlib import Path
from typing import Optional

import structlog


logger = structlog.get_logger(__name__)


class LocalCache:
    """
    A tiny persistent key/value store.

    Args:
        path: JSON file to persist to. None keeps entries in memory only.
    """

    def __init__(self, path: Optional[Path] = None):
        self._path = Path(path) if path else None
        self._entries: dict[str, str] = self._load()

    @property
    def path(self) -> Optional[Path]:
        return self._path

    def _load(self) -> dict[str, str]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("cache_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(json.dumps(self._entries, ensure_ascii=False), encoding="utf-8")
        os.replace(tmp, self._path)

    def get(self, key: str) -> Optional[str]:
        return self._entries.get(key)

    def set(self, key: str, value: str) -> None:
        self._entries[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if self._entries.pop(key, None) is not None:
            self._flush()
