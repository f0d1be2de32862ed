"""Engine configuration."""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

DEFAULT_MISSION = "Say as little as possible."


@dataclass
class EngineConfig:
    """
    Tunables for the scheduler, memory tiers and completion transport.

    Every field has a working default; `from_env` overrides the connection
    settings the way deployments usually supply them.
    """

    # Completion transport (OpenAI-compatible base URLs)
    endpoint: str = "http://localhost:1234/v1"
    model: str = "qwen2.5-0.5b-instruct-mlx"
    fallback_endpoint: str = "http://localhost:1234/v1"
    fallback_model: str = "mid-8b"
    api_key: Optional[str] = None
    request_timeout: float = 15.0
    max_retries: int = 5
    retry_backoff: float = 1.0
    concise_instruction: str = "Max 2-3 sentences."

    # Consensus and mission evolution
    sub_agent_count: int = 5
    reflection_count: int = 5
    consensus_node_type: str = "Consensus"
    global_node_type: str = "Global"

    # Memory tiers
    max_short_term: int = 3
    max_long_term: int = 10
    heavy_max_short_term: int = 1
    max_long_term_blobs: int = 10
    recompression_window_seconds: int = 3600

    # Scheduler
    tick_delay: float = 0.5
    curriculum_every: int = 10
    enable_agent_selector: bool = False
    emotion_thresholds: Dict[str, float] = field(
        default_factory=lambda: {"frustration": 0.5, "regret": 0.5}
    )

    # Safety review
    safety_keywords: List[str] = field(
        default_factory=lambda: ["unsafe", "bias", "hallucinate", "offensive", "toxic"]
    )

    # Persistence
    initial_mission: str = DEFAULT_MISSION
    data_dir: str = "./mission_data"
    mongo_uri: Optional[str] = None
    mongo_db_name: str = "mission_cells"
    audit_log_path: Optional[str] = None
    documentation_log_path: Optional[str] = None

    @classmethod
    def from_env(cls, **overrides) -> "EngineConfig":
        """
        Build a config from environment variables.

        Args:
            **overrides: Explicit values that win over the environment

        Returns:
            EngineConfig instance
        """
        config = cls()
        config.endpoint = os.getenv("MISSION_CELLS_ENDPOINT", config.endpoint)
        config.model = os.getenv("MISSION_CELLS_MODEL", config.model)
        config.fallback_endpoint = os.getenv(
            "MISSION_CELLS_FALLBACK_ENDPOINT", config.fallback_endpoint
        )
        config.fallback_model = os.getenv(
            "MISSION_CELLS_FALLBACK_MODEL", config.fallback_model
        )
        config.api_key = os.getenv("OPENAI_API_KEY", config.api_key)
        config.mongo_uri = os.getenv("MONGO_URI", config.mongo_uri)
        config.data_dir = os.getenv("MISSION_CELLS_DATA_DIR", config.data_dir)
        config.sub_agent_count = int(
            os.getenv("MISSION_CELLS_SUB_AGENTS", config.sub_agent_count)
        )
        config.tick_delay = float(
            os.getenv("MISSION_CELLS_TICK_DELAY", config.tick_delay)
        )

        for key, value in overrides.items():
            if not hasattr(config, key):
                raise ValueError(f"Unknown config field: {key}")
            setattr(config, key, value)
        return config

    @property
    def majority(self) -> int:
        """Votes needed for a mission change."""
        return self.reflection_count // 2 + 1
