"""
File-backed key-value "defaults" store.

The whole store is one JSON object on disk. Writes go to a temporary file in
the same directory and are moved into place with ``os.replace``, so a crash
mid-write leaves the previous contents intact.
"""

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Any

import structlog

logger = structlog.get_logger(__name__)


class JsonFileDefaults:
    """Persistent key-value store satisfying ``healthtasks.services.KeyValueStore``."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        self.logger = logger.bind(component="json_defaults", path=str(self.path))

    def _read(self) -> dict[str, Any]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        data = json.loads(raw) if raw.strip() else {}
        if not isinstance(data, dict):
            raise ValueError(f"defaults file {self.path} does not hold a JSON object")
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2, sort_keys=True)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def get(self, key: str) -> Any:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            try:
                data = self._read()
            except ValueError:
                self.logger.warning("defaults_file_corrupt_overwritten")
                data = {}
            data[key] = value
            self._write(data)
        self.logger.debug("defaults_key_written", key=key)

    def remove(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if data.pop(key, None) is not None:
                self._write(data)
