# haven_platform/local_cache.py
# Haven - durable local key-value cache (the client's localStorage).
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from _logging import log as _root_log

_log = _root_log.child("CACHE")


@dataclass
class MemoryCache:
    """In-process cache with the same get/set/delete surface as JsonFileCache."""

    data: dict[str, str] = field(default_factory=dict)

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = str(value)

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


@dataclass
class JsonFileCache:
    """All keys live in one JSON document; every write replaces the file atomically."""

    path: Path
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text("utf-8"))
        except Exception as e:
            _log.warn(f"unreadable cache file {self.path}: {e}; starting fresh")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_atomic(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        tmp.replace(self.path)

    def get(self, key: str) -> str | None:
        with self._lock:
            v = self._read().get(key)
        return v if isinstance(v, str) else None

    def set(self, key: str, value: str) -> None:
        with self._lock:
            data = self._read()
            data[key] = str(value)
            self._write_atomic(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write_atomic(data)
