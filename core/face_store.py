"""
Face Store Module

Persists enrolled face records the way a browser persists them in local
storage: one string key ("faceData") whose value is the whole record list
serialized as a JSON array of {"name": ..., "descriptor": [...]} objects.

The list is append-only. There is no delete or update, names are not
unique, and every read deserializes the full list.

Layers:
- KeyValueStore: string keys to string values (JsonFileKeyValueStore on
  disk, MemoryKeyValueStore for tests and throwaway sessions)
- FaceStore: record-level interface the controllers depend on
- KeyValueFaceStore: FaceStore on top of any KeyValueStore

Usage:
    from core.face_store import get_face_store, FaceRecord

    store = get_face_store()
    store.append([FaceRecord(name="Alice", descriptor=descriptor.tolist())])
    records = store.load()
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_KEY = "faceData"


class FaceStoreError(RuntimeError):
    """Raised when the persisted record list cannot be read or written."""


class FaceRecord(BaseModel):
    """One enrolled face: a display name and its descriptor."""

    name: str = Field(..., description="Name entered at enrollment (not unique)")
    descriptor: List[float] = Field(..., description="Descriptor produced by the recognition model")


_RECORD_LIST = TypeAdapter(List[FaceRecord])


def serialize_records(records: Iterable[FaceRecord]) -> str:
    """Serialize records to the JSON array stored under the face data key."""
    return _RECORD_LIST.dump_json(list(records)).decode("utf-8")


def deserialize_records(blob: Optional[str]) -> List[FaceRecord]:
    """
    Parse a stored JSON array back into records.

    A missing or empty blob is an empty list.

    Raises:
        FaceStoreError: If the blob is not a valid record array.
    """
    if not blob:
        return []
    try:
        return _RECORD_LIST.validate_json(blob)
    except ValidationError as e:
        raise FaceStoreError(f"Stored face data is corrupt: {e}") from e


# ============================================================
# Key-value backends
# ============================================================

class KeyValueStore(ABC):
    """String-to-string persisted storage (local storage semantics)."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None when the key is absent."""

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a key. Missing keys are ignored."""


class MemoryKeyValueStore(KeyValueStore):
    """Dict-backed store; contents vanish with the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Key-value store kept in a single JSON object on disk.

    Writes go to a temporary file that replaces the original, so a crash
    mid-write leaves the previous contents intact.

    Args:
        path: Location of the JSON file (created on first write).
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise FaceStoreError(f"Failed to read {self.path}: {e}") from e

        if not isinstance(data, dict):
            raise FaceStoreError(f"{self.path} does not contain a JSON object")
        return data

    def _write_all(self, data: Dict[str, str]) -> None:
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if tmp_path.exists():
                tmp_path.unlink()
            raise FaceStoreError(f"Failed to write {self.path}: {e}") from e

    def get_item(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set_item(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove_item(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


# ============================================================
# Record-level store
# ============================================================

class FaceStore(ABC):
    """Append-only collection of enrolled face records."""

    @abstractmethod
    def load(self) -> List[FaceRecord]:
        """Deserialize and return the full record list, in insertion order."""

    @abstractmethod
    def append(self, records: Iterable[FaceRecord]) -> int:
        """Append records and return the new total count."""

    def count(self) -> int:
        return len(self.load())


class KeyValueFaceStore(FaceStore):
    """
    FaceStore that keeps the whole list as one JSON string under a key.

    append() is a read-modify-write of the full blob. An in-process lock
    serializes it; other processes sharing the same file can still race.

    Args:
        backend: Where the serialized list lives.
        key: Storage key for the list (default "faceData").
    """

    def __init__(self, backend: KeyValueStore, key: str = DEFAULT_KEY):
        self.backend = backend
        self.key = key
        self._lock = threading.Lock()

    def load(self) -> List[FaceRecord]:
        return deserialize_records(self.backend.get_item(self.key))

    def append(self, records: Iterable[FaceRecord]) -> int:
        new_records = list(records)
        with self._lock:
            existing = self.load()
            combined = existing + new_records
            self.backend.set_item(self.key, serialize_records(combined))

        logger.info(f"Stored {len(new_records)} face record(s), total {len(combined)}")
        return len(combined)


def get_face_store(config: Optional[Dict[str, Any]] = None) -> FaceStore:
    """
    Factory for the configured face store.

    Args:
        config: Storage section dict (path, key, backend). If None, loads
                the "storage" section from config.yaml.
    """
    if config is None:
        from core.config import get_storage_config
        config = get_storage_config()

    key = config.get("key", DEFAULT_KEY)

    if config.get("backend") == "memory":
        return KeyValueFaceStore(MemoryKeyValueStore(), key=key)

    from core.config import resolve_path
    path = resolve_path(config.get("path", "storage/local_storage.json"))
    logger.info(f"Face store: {path} (key={key})")
    return KeyValueFaceStore(JsonFileKeyValueStore(str(path)), key=key)
