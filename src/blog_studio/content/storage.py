"""File-backed key-value storage with string values.

Mirrors the browser ``localStorage`` surface the studio state was designed
around: every key holds a JSON-encoded string.  The whole file is read on
each access and rewritten after each write, so there is no cross-process
locking; two studios sharing a data directory can overwrite each other.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

STORAGE_FILENAME = ".blog-studio-storage.json"


class StorageError(Exception):
    """The storage file could not be read or written."""


class LocalStorage:
    """JSON file mapping keys to string values."""

    def __init__(self, data_dir: Path) -> None:
        self._path = data_dir / STORAGE_FILENAME

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageError(f"Unreadable storage file {self._path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise StorageError(f"Storage file {self._path} is not a JSON object")
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(data, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(f"Could not write storage file {self._path}: {exc}") from exc

    def get_item(self, key: str) -> str | None:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove_item(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)
