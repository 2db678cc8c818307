import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

STORAGE_KEYS = {
    "participants": "damfair_participants",
    "expenses": "damfair_expenses",
}


class JsonStorage:
    """Key/value persistence for participants and expenses.

    With a path every key lives in one JSON document on disk, otherwise the
    data only lives as long as the process.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._memory: Dict[str, Any] = {}

    def _read_all(self) -> Dict[str, Any]:
        if self.path is None:
            return self._memory
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _write_all(self, data: Dict[str, Any]):
        if self.path is None:
            self._memory = data
            return
        directory = os.path.dirname(self.path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)

    def load(self, key: str) -> Optional[Any]:
        try:
            item = self._read_all().get(key)
            logger.debug(f"Loading from storage ({key}): {item}")
            return item
        except (OSError, ValueError) as e:
            logger.error(f"Error loading from storage ({key}): {e}")
            return None

    def save(self, key: str, data: Any):
        try:
            logger.debug(f"Saving to storage ({key}): {data}")
            contents = self._read_all()
            contents = dict(contents)
            contents[key] = data
            self._write_all(contents)
        except (OSError, ValueError, TypeError) as e:
            logger.error(f"Error saving to storage ({key}): {e}")

    def clear(self):
        contents = {}
        try:
            contents = dict(self._read_all())
        except (OSError, ValueError) as e:
            logger.error(f"Error reading storage before clearing: {e}")
        for key in STORAGE_KEYS.values():
            contents.pop(key, None)
        self._write_all(contents)
