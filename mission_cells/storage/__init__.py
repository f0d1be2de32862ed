# Storage backends
from .audit_log import AuditLog
from .memory_store import GLOBAL_KEY, MemoryStore
from .persistence import JsonFileStore, MappingStore
from .skill_memory import SkillMemory

__all__ = [
    "AuditLog",
    "GLOBAL_KEY",
    "MemoryStore",
    "MappingStore",
    "JsonFileStore",
    "SkillMemory",
]
