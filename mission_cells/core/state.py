"""Explicit engine context shared by every cell and engine."""

import logging
from dataclasses import dataclass
from typing import Optional

from ..config import EngineConfig
from ..storage import AuditLog, JsonFileStore, MappingStore, MemoryStore, SkillMemory
from ..storage.mongo_client import MongoMappingStore
from ..utils.llm import CompletionClient, LLMProvider, OpenAIProvider
from .consensus import ConsensusEngine
from .emotion import EmotionEngine
from .mission import MissionState
from .registry import CellFactory

logger = logging.getLogger(__name__)


@dataclass
class EngineState:
    """
    Everything a cell needs: config, model access, memory, mission,
    audit trail, emotions, skills and the factory for spawning children.

    The Machine owns one instance for its whole lifetime.
    """

    config: EngineConfig
    completion: CompletionClient
    memory: MemoryStore
    audit: AuditLog
    mission: MissionState
    emotions: EmotionEngine
    skills: SkillMemory
    factory: Optional[CellFactory] = None
    consensus: Optional[ConsensusEngine] = None

    @classmethod
    def create(
        cls,
        config: Optional[EngineConfig] = None,
        provider: Optional[LLMProvider] = None,
        store: Optional[MappingStore] = None,
    ) -> "EngineState":
        """
        Wire up an engine state.

        Args:
            config: Engine config (defaults to EngineConfig.from_env())
            provider: LLM provider (defaults to an OpenAI-compatible one
                pointed at config.endpoint)
            store: Persistence backend (defaults to MongoDB when
                config.mongo_uri is set, else JSON files in config.data_dir)

        Returns:
            EngineState instance
        """
        config = config or EngineConfig.from_env()

        if provider is None:
            provider = OpenAIProvider(
                api_key=config.api_key, model=config.model, base_url=config.endpoint
            )

        if store is None:
            if config.mongo_uri:
                store = MongoMappingStore(uri=config.mongo_uri, db_name=config.mongo_db_name)
            else:
                store = JsonFileStore(config.data_dir)

        completion = CompletionClient.from_config(provider, config)
        state = cls(
            config=config,
            completion=completion,
            memory=MemoryStore(
                completion,
                store=store,
                recompression_window_seconds=config.recompression_window_seconds,
                global_key=config.global_node_type,
            ),
            audit=AuditLog(config.audit_log_path),
            mission=MissionState(store, config.initial_mission),
            emotions=EmotionEngine(),
            skills=SkillMemory(store),
        )
        state.factory = CellFactory(state)
        state.consensus = ConsensusEngine(state)
        logger.info("Engine state created (model=%s, endpoint=%s)", config.model, config.endpoint)
        return state
