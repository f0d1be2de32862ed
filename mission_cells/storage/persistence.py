"""Key/value persistence for string-list mappings."""

import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Dict, List

logger = logging.getLogger(__name__)

Mapping = Dict[str, List[str]]


class MappingStore(ABC):
    """
    Persists `name -> list of strings` mappings under a key.

    Loading a key that was never saved yields an empty mapping, never an error.
    """

    @abstractmethod
    def load_mapping(self, key: str) -> Mapping:
        """Load the mapping stored under key."""
        pass

    @abstractmethod
    def save_mapping(self, key: str, mapping: Mapping) -> None:
        """Replace the mapping stored under key."""
        pass


class JsonFileStore(MappingStore):
    """One pretty-printed JSON file per key inside a directory."""

    def __init__(self, directory: str = "./mission_data"):
        """
        Initialize the file store.

        Args:
            directory: Folder holding `<key>.json` files (created on first save)
        """
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def load_mapping(self, key: str) -> Mapping:
        path = self._path(key)
        if not os.path.exists(path):
            return {}

        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return {name: list(values) for name, values in (data or {}).items()}

    def save_mapping(self, key: str, mapping: Mapping) -> None:
        os.makedirs(self.directory, exist_ok=True)
        path = self._path(key)
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(mapping, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
        logger.debug("Saved mapping %r to %s", key, path)
