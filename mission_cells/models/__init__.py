# Data models for the orchestration engine
from .audit import AuditEntry
from .consensus import ConsensusSession, ConsensusType, ResponderRecord, RetrievalMode
from .mission import MissionRecord

__all__ = [
    "AuditEntry",
    "ConsensusSession",
    "ConsensusType",
    "ResponderRecord",
    "RetrievalMode",
    "MissionRecord",
]
