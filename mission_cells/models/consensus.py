"""Consensus session records."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional


class ConsensusType(str, Enum):
    """Shape of the single answer a consensus reduces to."""

    WORD = "Word"
    NUMBER = "Number"
    BOOL = "Bool"
    KNOWLEDGE = "Knowledge"


class RetrievalMode(str, Enum):
    """Where responders draw their knowledge from."""

    MODEL_ONLY = "ModelOnly"
    MEMORY_ONLY = "MemoryOnly"
    HYBRID = "Hybrid"

    @property
    def uses_memory(self) -> bool:
        return self in (RetrievalMode.MEMORY_ONLY, RetrievalMode.HYBRID)


@dataclass
class ResponderRecord:
    """One spawned sub-agent and the answer it produced."""

    index: int
    name: str
    prompt: str
    endpoint: str
    model: str
    answer: Optional[str] = None
    used_fallback: bool = False
    responder_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "responder_id": self.responder_id,
            "index": self.index,
            "name": self.name,
            "prompt": self.prompt,
            "endpoint": self.endpoint,
            "model": self.model,
            "answer": self.answer,
            "used_fallback": self.used_fallback,
        }


@dataclass
class ConsensusSession:
    """
    A single consensus invocation.

    Responders are kept in spawn order; the session is discarded once its
    result has been folded into memory and the audit log.
    """

    question: str
    consensus_type: ConsensusType
    retrieval_mode: RetrievalMode
    memory_block: str = ""
    responders: List[ResponderRecord] = field(default_factory=list)
    result: str = ""
    diverse: bool = False
    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def answers(self) -> List[str]:
        """Sub-agent answers in spawn order."""
        return [r.answer for r in self.responders if r.answer is not None]

    @property
    def distinct_answers(self) -> int:
        return len(set(self.answers))

    @property
    def all_distinct(self) -> bool:
        """True when more than one answer exists and no two are equal."""
        answers = self.answers
        return len(answers) > 1 and len(set(answers)) == len(answers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_id": self.session_id,
            "question": self.question,
            "consensus_type": self.consensus_type.value,
            "retrieval_mode": self.retrieval_mode.value,
            "memory_block": self.memory_block,
            "responders": [r.to_dict() for r in self.responders],
            "result": self.result,
            "diverse": self.diverse,
            "created_at": self.created_at.isoformat(),
        }
