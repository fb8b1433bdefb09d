"""Durable key-value storage for the catalog and the order ledger."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from .errors import PersistenceError

logger = logging.getLogger(__name__)

CATALOG_KEY = "shopzing_products"
ORDERS_KEY = "shopzing_orders"


class PersistenceAdapter:
    """
    Stores one JSON list of records per key under a data directory.

    No business logic lives here: stores hand over fully serialized
    collections and get back whatever was last written.
    """

    def __init__(self, data_dir: Path):
        """
        Initialize PersistenceAdapter.

        Args:
            data_dir: Directory holding ``<key>.json`` files. Created on first save.
        """
        self.data_dir = Path(data_dir)

    def path_for(self, key: str) -> Path:
        return self.data_dir / f"{key}.json"

    def load(self, key: str) -> list[dict[str, Any]] | None:
        """
        Load the collection stored under ``key``.

        Returns:
            The list of records, or None when nothing usable is stored
            (missing file, unreadable file, invalid JSON, or not a list).
        """
        path = self.path_for(key)
        if not path.exists():
            logger.info("No stored data for %s at %s", key, path)
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable data for %s at %s: %s", key, path, e)
            return None

        if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
            logger.warning("Ignoring malformed data for %s at %s: expected a list of records", key, path)
            return None

        return data

    def save(self, key: str, records: list[dict[str, Any]]) -> None:
        """
        Save the collection under ``key`` atomically.

        Uses write-to-temp-then-rename for atomicity.

        Raises:
            PersistenceError: If the data directory or file cannot be written.
        """
        path = self.path_for(key)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            fd, temp_path = tempfile.mkstemp(dir=self.data_dir, prefix=f".{key}_", suffix=".tmp")
        except OSError as e:
            raise PersistenceError(key, str(e)) from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
                f.write("\n")
            os.replace(temp_path, path)
        except (OSError, TypeError, ValueError) as e:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise PersistenceError(key, str(e)) from e
