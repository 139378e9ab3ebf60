"""
Cooldown Stores

Durable and in-memory implementations of the cooldown key-value store.
"""

from pathlib import Path
from typing import Dict, Optional, Union
import json
import logging
import os
import tempfile
import threading

from ...domain.ports.cooldown_store import CooldownStorePort


logger = logging.getLogger(__name__)


class JsonFileCooldownStore(CooldownStorePort):
    """
    Integer key-value store kept in a small JSON file.

    Writes go to a temporary file in the same directory which then
    replaces the original, so a crash never leaves a half-written file.
    A missing or corrupt file reads as empty.

    Only safe for a single process; multi-instance deployments need a
    shared store.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._lock = threading.Lock()
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def _read(self) -> Dict[str, int]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            self.logger.warning(f"Ignoring unreadable cooldown file {self.path}: {e}")
            return {}

        if not isinstance(data, dict):
            self.logger.warning(f"Ignoring malformed cooldown file {self.path}")
            return {}
        return {
            k: int(v) for k, v in data.items()
            if isinstance(v, (int, float)) and not isinstance(v, bool)
        }

    def _write(self, data: Dict[str, int]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cooldown-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[int]:
        with self._lock:
            return self._read().get(key)

    def set(self, key: str, value: int) -> None:
        with self._lock:
            data = self._read()
            data[key] = int(value)
            self._write(data)

    def delete(self, key: str) -> None:
        with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)


class InMemoryCooldownStore(CooldownStorePort):
    """Process-local store; cooldown does not survive a restart."""

    def __init__(self, initial: Optional[Dict[str, int]] = None):
        self._data: Dict[str, int] = dict(initial or {})

    def get(self, key: str) -> Optional[int]:
        return self._data.get(key)

    def set(self, key: str, value: int) -> None:
        self._data[key] = int(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
