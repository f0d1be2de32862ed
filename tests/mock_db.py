"""Mock storage backends and model providers for engine testing."""

from typing import Any, Dict, List, Optional

from mission_cells.config import EngineConfig
from mission_cells.core import EngineState
from mission_cells.exceptions import TransportError
from mission_cells.utils import LLMProvider, MockProvider


class MockMappingStore:
    """In-memory MappingStore for testing."""

    def __init__(self):
        self.data: Dict[str, Dict[str, List[str]]] = {}
        self.saves = 0

    def load_mapping(self, key: str) -> Dict[str, List[str]]:
        return {name: list(values) for name, values in self.data.get(key, {}).items()}

    def save_mapping(self, key: str, mapping: Dict[str, List[str]]) -> None:
        self.saves += 1
        self.data[key] = {name: list(values) for name, values in mapping.items()}

    def clear(self) -> None:
        self.data.clear()


class MockCollection:
    """Mock for the PyMongo Collection calls the mapping store makes."""

    def __init__(self):
        self.docs: Dict[str, Dict[str, Any]] = {}
        self.indexes: List[str] = []

    def create_index(self, field: str, unique: bool = False) -> None:
        self.indexes.append(field)

    def find_one(self, filter: Dict) -> Optional[Dict[str, Any]]:
        return self.docs.get(filter["key"])

    def replace_one(self, filter: Dict, doc: Dict, upsert: bool = False) -> None:
        if filter["key"] in self.docs or upsert:
            self.docs[filter["key"]] = doc

    def find(self, filter: Dict = None, projection: Dict = None):
        return list(self.docs.values())

    def delete_many(self, filter: Dict) -> None:
        self.docs.clear()


class MockMongoClient:
    """Mock MongoClient: client[db].mappings is a MockCollection."""

    def __init__(self):
        self.collection = MockCollection()

    def __getitem__(self, name: str):
        return self

    @property
    def mappings(self) -> MockCollection:
        return self.collection


class FlakyProvider(LLMProvider):
    """Raises TransportError for calls to failing endpoints, else delegates."""

    def __init__(self, inner: LLMProvider, failing_endpoints=(), failures: int = 10**6):
        self.inner = inner
        self.failing_endpoints = set(failing_endpoints)
        self.failures = failures
        self.attempts = 0

    def complete(self, messages, model=None, endpoint=None, temperature=0.7,
                 max_tokens=None, timeout=None) -> str:
        if endpoint in self.failing_endpoints and self.failures > 0:
            self.attempts += 1
            self.failures -= 1
            raise TransportError(f"Connection refused: {endpoint}")
        return self.inner.complete(
            messages, model=model, endpoint=endpoint, temperature=temperature,
            max_tokens=max_tokens, timeout=timeout,
        )


def make_config(**overrides) -> EngineConfig:
    """Fast, offline config: no delays, no backoff, small agent counts."""
    values = dict(
        sub_agent_count=3,
        reflection_count=3,
        tick_delay=0.0,
        retry_backoff=0.0,
        max_retries=2,
        concise_instruction="",
        initial_mission="Catalogue renewable energy sources",
    )
    values.update(overrides)
    return EngineConfig(**values)


def make_state(
    responses: Optional[Dict[str, Any]] = None,
    default: str = "Mock response",
    provider: Optional[LLMProvider] = None,
    store: Optional[MockMappingStore] = None,
    **config_overrides,
) -> EngineState:
    """Engine state wired to a MockProvider and an in-memory store."""
    return EngineState.create(
        config=make_config(**config_overrides),
        provider=provider or MockProvider(responses=responses, default=default),
        store=store if store is not None else MockMappingStore(),
    )
