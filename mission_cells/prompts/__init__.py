# Prompt templates for LLM operations
from .consensus_prompts import (
    DIVERSITY_HINTS,
    HYBRID_INSTRUCTION,
    HYBRID_MEMORY_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    MEMORY_ONLY_INSTRUCTION,
    MODEL_ONLY_INSTRUCTION,
    REDUCTION_PROMPTS,
)
from .memory_prompts import (
    CLEANER_SYSTEM_PROMPT,
    CLEANING_PROMPT,
    COMPRESSION_PROMPT,
    COMPRESSOR_SYSTEM_PROMPT,
    DISTILLATION_SYSTEM_PROMPT,
    RELEVANCE_PROMPT,
    RELEVANCE_SYSTEM_PROMPT,
)
from .reflection_prompts import (
    BOOTSTRAP_PROMPT,
    BOOTSTRAP_SYSTEM_PROMPT,
    CHAOS_INSTRUCTION,
    CHAOS_PROMPT,
    DEBATE_PROMPT,
    EXPLAINER_PROMPT,
    NO_CHANGE_MARKER,
    REFLECTION_PROMPT,
)
from .role_prompts import (
    IDEA_PROMPT,
    IDEA_USER_PROMPT,
    PROJECT_MANAGER_PROMPT,
    ROLE_SYSTEM_PROMPTS,
    WORKER_PROMPT,
)

__all__ = [
    "RELEVANCE_SYSTEM_PROMPT",
    "RELEVANCE_PROMPT",
    "DISTILLATION_SYSTEM_PROMPT",
    "COMPRESSOR_SYSTEM_PROMPT",
    "COMPRESSION_PROMPT",
    "CLEANER_SYSTEM_PROMPT",
    "CLEANING_PROMPT",
    "HYBRID_MEMORY_PROMPT",
    "MEMORY_ONLY_INSTRUCTION",
    "HYBRID_INSTRUCTION",
    "MODEL_ONLY_INSTRUCTION",
    "DIVERSITY_HINTS",
    "JUDGE_SYSTEM_PROMPT",
    "REDUCTION_PROMPTS",
    "REFLECTION_PROMPT",
    "NO_CHANGE_MARKER",
    "DEBATE_PROMPT",
    "CHAOS_INSTRUCTION",
    "CHAOS_PROMPT",
    "EXPLAINER_PROMPT",
    "BOOTSTRAP_SYSTEM_PROMPT",
    "BOOTSTRAP_PROMPT",
    "PROJECT_MANAGER_PROMPT",
    "WORKER_PROMPT",
    "IDEA_PROMPT",
    "IDEA_USER_PROMPT",
    "ROLE_SYSTEM_PROMPTS",
]
