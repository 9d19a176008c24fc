"""Append-only JSON-lines sink."""

from __future__ import annotations

import json
import threading
from pathlib import Path


class JsonlSink:
    """One JSON object per line. Writes are serialised with a lock."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def write(self, record: dict) -> None:
        line = json.dumps(record, default=str) + "\n"
        with self._lock, open(self._path, "a", encoding="utf-8") as f:
            f.write(line)
