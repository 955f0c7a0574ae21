"""
JSON File Key-Value Store

A single JSON object on disk mapping keys to string values.

TRADEOFFS:
- Every set() rewrites the whole file (fine for one user's ledger)
- Writes go to a temp file in the same directory, then os.replace(),
  so a crash mid-write leaves the previous file intact
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from talk_ledger.services.storage.interface import KeyValueStoreInterface, PersistenceError


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStoreInterface):
    """Key-value store backed by one JSON file."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read_all(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(f"Failed to read {self._path}: {e}")
        if not raw.strip():
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Storage file {self._path} is not valid JSON: {e}")
        if not isinstance(data, dict):
            raise PersistenceError(f"Storage file {self._path} does not hold a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            # Values are always written as strings.
            return json.dumps(value, ensure_ascii=False)
        return value

    def set(self, key: str, value: str) -> None:
        try:
            data = self._read_all()
        except PersistenceError as e:
            logger.warning("storage_file_reset", path=str(self._path), error=str(e))
            data = {}
        data[key] = value

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(data, handle, ensure_ascii=False)
                os.replace(tmp_name, self._path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(f"Failed to write {self._path}: {e}")


class InMemoryKeyValueStore(KeyValueStoreInterface):
    """Process-local store for tests and throwaway sessions."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
