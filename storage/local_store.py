"""
Local key/value fallback storage.

A tiny string store addressed by well-known keys. The admin logger keeps its
fallback activity list here (JSON-serialized under a single key) when the
remote log table cannot be reached.
"""
import json
import os
import threading
from pathlib import Path
from typing import Dict, Optional

from core.logger import logger


class LocalStore:
    """Interface for a string key/value store."""

    def get_item(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set_item(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove_item(self, key: str) -> None:
        raise NotImplementedError


class MemoryStore(LocalStore):
    """Process-local store; contents are lost on restart."""

    def __init__(self):
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            self._items[key] = value

    def remove_item(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)


class JsonFileStore(LocalStore):
    """
    Store backed by a single JSON object on disk.

    Writes go to a temporary file first and are then renamed over the target,
    so a crash never leaves a half-written file behind.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local store {self.path} unreadable, starting empty: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(items, f)
        os.replace(tmp_path, self.path)

    def get_item(self, key: str) -> Optional[str]:
        with self._lock:
            return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        with self._lock:
            items = self._read_all()
            items[key] = value
            self._write_all(items)

    def remove_item(self, key: str) -> None:
        with self._lock:
            items = self._read_all()
            if key in items:
                del items[key]
                self._write_all(items)
