from typing import Dict, List

from pymongo import MongoClient

from .persistence import MappingStore


class MongoMappingStore(MappingStore):
    """
    MongoDB-backed mapping store.
    Each key is a single document in the `mappings` collection.
    """

    def __init__(
        self,
        uri: str = "mongodb://localhost:27017",
        db_name: str = "mission_cells",
        client: MongoClient = None,
    ):
        """
        Initialize the MongoDB client.

        Args:
            uri: MongoDB connection URI
            db_name: Database name
            client: Optional injected client (for testing)
        """
        self.client = client if client is not None else MongoClient(uri)
        self.db = self.client[db_name]

        # Collections
        self.mappings = self.db.mappings

        self._setup_indexes()

    def _setup_indexes(self) -> None:
        """Create necessary indexes for uniqueness."""
        self.mappings.create_index("key", unique=True)

    def load_mapping(self, key: str) -> Dict[str, List[str]]:
        """Retrieve the mapping stored under key, or an empty mapping."""
        data = self.mappings.find_one({"key": key})
        if not data:
            return {}
        return {name: list(values) for name, values in data.get("mapping", {}).items()}

    def save_mapping(self, key: str, mapping: Dict[str, List[str]]) -> None:
        """Add or replace the mapping stored under key."""
        self.mappings.replace_one(
            {"key": key},
            {"key": key, "mapping": mapping},
            upsert=True,
        )

    def keys(self) -> List[str]:
        """All stored keys."""
        return [doc["key"] for doc in self.mappings.find({}, {"key": 1})]

    def clear(self) -> None:
        """Clear all mappings (for testing/reset)."""
        self.mappings.delete_many({})
