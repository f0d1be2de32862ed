"""Audit log entries: the definitive record of everything the engine does."""

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class AuditEntry:
    """
    One immutable audit record.

    `chain_depth` is the distance from the root cell (Director = 0).
    """

    step: str
    agent_name: str
    role: str
    question: Optional[str] = None
    answer: Optional[str] = None
    parent_id: Optional[str] = None
    expected_answer: Optional[str] = None
    judge_verdict: Optional[str] = None
    retrieval_mode: Optional[str] = None
    test_passed: Optional[bool] = None
    ethics_flag: Optional[str] = None
    safety_notes: Optional[str] = None
    chain_depth: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEntry":
        """Create from dictionary."""
        values = dict(data)
        values["timestamp"] = datetime.fromisoformat(values["timestamp"])
        return cls(**values)
