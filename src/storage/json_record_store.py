# src/storage/json_record_store.py - v1
"""JSON file-based record store (default RECORD_BACKEND=json).

Stores each record as an individual JSON file under RECORD_ROOT, mirroring
the record path: ``processedDocuments/{key}`` -> ``{root}/processedDocuments/{key}.json``.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any

from doccache.core.errors import StoreError
from doccache.storage.base_record_store import BaseRecordStore

logger = logging.getLogger(__name__)


class JsonRecordStore(BaseRecordStore):
    """File-based record store using one JSON file per record."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, path: str) -> dict[str, Any] | None:
        """Read the record at ``path``."""
        return await asyncio.to_thread(self._read, path)

    async def set(self, path: str, record: dict[str, Any]) -> None:
        """Replace the record at ``path`` atomically."""
        await asyncio.to_thread(self._write, path, record)

    def _read(self, path: str) -> dict[str, Any] | None:
        file_path = self._record_file(path)
        try:
            text = file_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"Failed to read record {path}: {e}", path=path, original=e) from e

        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise StoreError(
                f"Corrupt record {path}: {e}", path=path, transient=False, original=e,
            ) from e
        if not isinstance(data, dict):
            raise StoreError(f"Corrupt record {path}: not an object", path=path, transient=False)
        return data

    def _write(self, path: str, record: dict[str, Any]) -> None:
        file_path = self._record_file(path)
        tmp_path = file_path.with_name(f"{file_path.name}.tmp")
        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(record), encoding="utf-8")
            os.replace(tmp_path, file_path)
        except OSError as e:
            raise StoreError(f"Failed to write record {path}: {e}", path=path, original=e) from e
        logger.debug("Record written: %s", file_path)

    def _record_file(self, path: str) -> Path:
        """Return file path for a record path."""
        return self._root / f"{path}.json"
