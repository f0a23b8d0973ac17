"""Local durable mirror for the storefront cart"""

import json
import logging
import os
from typing import Optional

from pydantic import TypeAdapter, ValidationError

from .errors import StorageError
from .models import LineItem

logger = logging.getLogger(__name__)

_line_items = TypeAdapter(list[LineItem])


class MemoryStorage:
    """In-memory key-value storage"""

    def __init__(self):
        self.data: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def put(self, key: str, value: str) -> None:
        self.data[key] = value


class JsonFileStorage:
    """Key-value storage persisted as one JSON object on disk"""

    def __init__(self, path: str):
        self.path = path

    def _load(self) -> dict[str, str]:
        if not os.path.exists(self.path):
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            raise StorageError(f"Cannot read {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageError(f"Cannot read {self.path}: expected a JSON object")
        return data

    def get(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def put(self, key: str, value: str) -> None:
        try:
            data = self._load()
        except StorageError as e:
            # Unreadable content is replaced by this write
            logger.warning(f"Overwriting unreadable storage file: {e.message}")
            data = {}
        data[key] = value
        try:
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            tmp_path = f"{self.path}.tmp"
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise StorageError(f"Cannot write {self.path}: {e}") from e


class CartMirror:
    """
    Serializes the cart item list into a storage backend under a fixed key.

    The backend only needs `get(key)` and `put(key, value)`.
    """

    def __init__(self, storage, key: str = "shopCoreCart"):
        self.storage = storage
        self.key = key

    def load(self) -> list[LineItem]:
        """Saved items, or an empty list when nothing usable is stored"""
        raw = self.storage.get(self.key)
        if not raw:
            return []
        if not isinstance(raw, (str, bytes)):
            logger.warning(f"Discarding cart mirror of unexpected type {type(raw).__name__}")
            return []
        try:
            return _line_items.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable cart mirror: {e.error_count()} errors")
            return []

    def save(self, items: list[LineItem]) -> None:
        self.storage.put(self.key, _line_items.dump_json(items).decode("utf-8"))
