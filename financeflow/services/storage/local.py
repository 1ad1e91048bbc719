"""
Local Storage Implementations

- InMemoryStore: a dict. Used by tests and when nothing is configured.
- JsonFileStore: one JSON object on disk mapping keys to values,
  rewritten on every set/delete (the data is small, personal-use sized).
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from financeflow.services.storage.interface import KeyValueStore, StorageError


class InMemoryStore(KeyValueStore):
    """Dict-backed keyed store."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> bool:
        return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


class JsonFileStore(KeyValueStore):
    """
    Keyed store persisted as a single JSON document.

    The file is read on every call so that edits made by another
    process (or by hand) are picked up; writes replace the file
    atomically.
    """

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            with self._path.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {self._path}: {e}")
        if not isinstance(data, dict):
            raise StorageError(f"Unexpected content in {self._path}: expected an object")
        return data

    def _write(self, data: dict[str, str]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
        except OSError as e:
            raise StorageError(f"Failed to write {self._path}: {e}")

        replaced = False
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_name, self._path)
            replaced = True
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write {self._path}: {e}")
        finally:
            if not replaced and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def get(self, key: str) -> Optional[str]:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> bool:
        data = self._read()
        if key not in data:
            return False
        del data[key]
        self._write(data)
        return True

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._read() if k.startswith(prefix))
