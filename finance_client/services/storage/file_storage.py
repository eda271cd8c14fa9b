"""
File Storage Implementation

Keeps all keys in one JSON object on disk. Every write replaces the file
atomically (temporary file + os.replace), so a crash mid-write leaves
either the old or the new content, never a truncated file. Because all
keys share one file, remove_items() is all-or-nothing.

A file that cannot be decoded fails reads with StorageCorruptedError but
is overwritten by the next write, so a new login or a logout recovers.

File I/O is small and synchronous; nothing awaits between reading and
writing the file, so writes from concurrent coroutines do not interleave.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional

import structlog

from finance_client.services.storage.interface import (
    KeyValueStorageInterface,
    StorageCorruptedError,
    StorageUnavailableError,
)


class FileKeyValueStorage(KeyValueStorageInterface):
    """JSON-file implementation of key/value storage."""

    def __init__(self, path: Path):
        self._path = Path(path)
        self._logger = structlog.get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, str]:
        """Read the whole file. A missing file is an empty store."""
        try:
            raw = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            raise StorageCorruptedError(f"Invalid UTF-8 in {self._path}: {e}") from e
        except OSError as e:
            raise StorageUnavailableError(f"Cannot read {self._path}: {e}") from e

        if not raw.strip():
            return {}

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageCorruptedError(f"Invalid JSON in {self._path}: {e}") from e

        if not isinstance(data, dict):
            raise StorageCorruptedError(
                f"Expected a JSON object in {self._path}, got {type(data).__name__}"
            )
        return data

    def _load_for_write(self) -> dict[str, str]:
        """Like _load(), but corrupted content is discarded so it can be overwritten."""
        try:
            return self._load()
        except StorageCorruptedError as e:
            self._logger.warning("storage_file_corrupted", path=str(self._path), error=str(e))
            return {}

    def _dump(self, data: dict[str, str]) -> None:
        """Atomically replace the file with `data`."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self._path.parent,
                prefix=f".{self._path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StorageUnavailableError(f"Cannot write {self._path}: {e}") from e

    async def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    async def set_item(self, key: str, value: str) -> None:
        data = self._load_for_write()
        data[key] = value
        self._dump(data)

    async def remove_items(self, keys: list[str]) -> None:
        try:
            data = self._load()
        except StorageCorruptedError as e:
            # Nothing readable is left to keep
            self._logger.warning("storage_file_corrupted", path=str(self._path), error=str(e))
            self._dump({})
            return
        if not any(key in data for key in keys):
            return
        for key in keys:
            data.pop(key, None)
        self._dump(data)
