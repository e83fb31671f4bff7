import json
import os
import threading
import uuid
from pathlib import Path
from typing import Dict, Optional

from ..config.loader import DEFAULT_STORE_PATH


DEVICE_ID_KEY = "com.cutie.link.deviceId"
DEFAULT_PATH = Path(os.path.expanduser(DEFAULT_STORE_PATH))


class KeyValueStore:
    """Durable string store, one value per key."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStore(KeyValueStore):
    """Process-local store; nothing survives a restart."""

    def __init__(self, values: Optional[Dict[str, str]] = None):
        self._values = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileStore(KeyValueStore):
    """Keeps all keys in one JSON object on disk, e.g. ~/.cutie/link.json."""

    def __init__(self, path: Optional[Path] = None):
        self.path = Path(path) if path else DEFAULT_PATH

    def _load(self) -> Dict[str, str]:
        try:
            if self.path.exists():
                with open(self.path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if isinstance(data, dict):
                    return data
        except (OSError, ValueError):
            return {}
        return {}

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        os.makedirs(self.path.parent, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f)
        # Owner read/write only
        os.chmod(self.path, 0o600)


class DeviceIdProvider:
    """Hands out the per-installation device identifier.

    The first call creates a random UUID and persists it; every later call
    returns the stored value unchanged.
    """

    def __init__(self, store: Optional[KeyValueStore] = None, key: str = DEVICE_ID_KEY):
        self.store = store if store is not None else JsonFileStore()
        self.key = key
        self._lock = threading.Lock()
        self._unsaved_id: Optional[str] = None

    def get_device_id(self) -> str:
        existing = self.store.get(self.key)
        if existing:
            return existing
        if self._unsaved_id:
            return self._unsaved_id

        with self._lock:
            # Another thread may have created it while we waited
            existing = self.store.get(self.key) or self._unsaved_id
            if existing:
                return existing

            device_id = str(uuid.uuid4()).upper()
            try:
                self.store.set(self.key, device_id)
            except OSError as e:
                # Kept in memory for this process only
                print(f"[DeviceStore] Warning: could not persist device ID: {e}")
                self._unsaved_id = device_id
            return device_id
