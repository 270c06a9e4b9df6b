"""Local durable key/value cache (file persistence), the fallback for anonymous sessions."""
import json
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional

from fitplan.utilities.errors import StoreWriteFailure

logger = logging.getLogger(__name__)


class LocalCache:
    """String values keyed by string, mirrored to one JSON file."""

    def __init__(self, path):
        self.path = Path(path)
        self._values: Dict[str, str] = self._read()

    def _read(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in cache file {self.path}: {e}")
            return {}
        return {str(k): v for k, v in data.items() if isinstance(v, str)} if isinstance(data, dict) else {}

    def _atomic_write(self, values: Dict[str, str]) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".cache_", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as tmp:
                json.dump(values, tmp, indent=2, ensure_ascii=False)
            shutil.move(tmp_path, self.path)
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        values = dict(self._values)
        values[key] = value
        self._persist(values)

    def remove(self, key: str) -> None:
        if key not in self._values:
            return
        values = dict(self._values)
        del values[key]
        self._persist(values)

    def _persist(self, values: Dict[str, str]) -> None:
        try:
            self._atomic_write(values)
        except OSError as e:
            logger.exception("Failed to write local cache %s", self.path)
            raise StoreWriteFailure(f"Local cache write failed: {e}") from e
        self._values = values
