# teamup/local_storage.py
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError as ShapeError

from teamup.errors import StorageReadError, StorageWriteError
from teamup.storage_adapter import StorageAdapter
from teamup.wizard_state import SavedTeam

logger = logging.getLogger("teamup_storage")

STORAGE_FILE = "teams.json"
FLAGS_FILE = "flags.json"


class LocalStorageAdapter(StorageAdapter):
    """
    Local-device store: the whole collection lives in one JSON file, markers
    in a second one. Every write replaces the file atomically (temp file +
    fsync + os.replace), so readers see either the old or the new collection.
    """
    name = "local"

    def __init__(self, data_dir: str | os.PathLike) -> None:
        super().__init__()
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.collection_path = self.data_dir / STORAGE_FILE
        self.flags_path = self.data_dir / FLAGS_FILE
        # read-modify-write cycles run in worker threads
        self._lock = threading.Lock()

    # -------- raw file helpers --------

    def _read_json(self, path: Path, default: Any) -> Any:
        if not path.exists():
            return default
        try:
            with path.open("r", encoding="utf-8") as f:
                raw = f.read()
        except OSError as e:
            raise StorageReadError(f"Cannot read {path.name}: {e}") from e
        if not raw.strip():
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Corrupt {path.name}: {e}") from e

    def _write_json(self, path: Path, data: Any) -> None:
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=self.data_dir, prefix=f".{path.name}.", delete=False
            ) as tmp:
                tmp_name = tmp.name
                json.dump(data, tmp, ensure_ascii=False, indent=2)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageWriteError(f"Cannot write {path.name}: {e}") from e

    def _load_records(self) -> list[Any]:
        raw = self._read_json(self.collection_path, [])
        if not isinstance(raw, list):
            raise StorageReadError(f"{STORAGE_FILE} does not hold a list")
        return raw

    def _parse(self, record: Any) -> SavedTeam:
        try:
            return SavedTeam.model_validate(record)
        except ShapeError as e:
            raise StorageReadError(f"Malformed team record in {STORAGE_FILE}: {e}") from e

    def _load_for_write(self) -> list[Any]:
        # never overwrite a collection we could not read
        try:
            return self._load_records()
        except StorageReadError as e:
            raise StorageWriteError(f"Refusing to write over unreadable collection: {e}") from e

    # -------- primitives --------

    def _fetch_all(self) -> list[SavedTeam]:
        return [self._parse(r) for r in self._load_records()]

    def _fetch_one(self, team_id: str) -> Optional[SavedTeam]:
        # only the requested record is validated, like a keyed row lookup
        for record in self._load_records():
            if _record_id(record) == team_id:
                return self._parse(record)
        return None

    def _upsert(self, saved: SavedTeam) -> None:
        with self._lock:
            records = self._load_for_write()
            wire = saved.to_wire()
            for index, record in enumerate(records):
                if _record_id(record) == saved.id:
                    records[index] = wire
                    break
            else:
                records.append(wire)
            self._write_json(self.collection_path, records)

    def _remove(self, team_id: str) -> None:
        with self._lock:
            records = self._load_for_write()
            remaining = [r for r in records if _record_id(r) != team_id]
            if len(remaining) != len(records):
                self._write_json(self.collection_path, remaining)

    def _load_flags(self) -> dict:
        # an unreadable marker file counts as "no markers"; the next write replaces it
        try:
            flags = self._read_json(self.flags_path, {})
        except StorageReadError as e:
            logger.warning("Ignoring unreadable %s: %s", FLAGS_FILE, e)
            return {}
        if not isinstance(flags, dict):
            logger.warning("Ignoring %s: it does not hold an object", FLAGS_FILE)
            return {}
        return flags

    def _read_flag(self, key: str) -> bool:
        return bool(self._load_flags().get(key, False))

    def _write_flag(self, key: str, value: bool) -> None:
        with self._lock:
            flags = self._load_flags()
            flags[key] = bool(value)
            self._write_json(self.flags_path, flags)


def _record_id(record: Any) -> Optional[str]:
    return record.get("id") if isinstance(record, dict) else None
