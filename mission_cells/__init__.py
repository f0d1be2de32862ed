"""Recursive, self-organizing LLM cell engine."""

from .config import EngineConfig
from .core import EngineState, Machine

__all__ = ["EngineConfig", "EngineState", "Machine"]
