# Core cell engine components
from .cell import Cell, Classification
from .consensus import ConsensusEngine
from .director import DirectorCell, IdeaDispatch
from .emotion import EmotionEngine
from .evolution import ReflectionConcert
from .machine import Machine
from .mission import MissionState
from .project import ProjectCell, WorkerCell
from .registry import CellFactory, register_cell, registered_roles
from .roles import PromptCell
from .state import EngineState

__all__ = [
    "Cell",
    "CellFactory",
    "Classification",
    "ConsensusEngine",
    "DirectorCell",
    "EmotionEngine",
    "EngineState",
    "IdeaDispatch",
    "Machine",
    "MissionState",
    "ProjectCell",
    "PromptCell",
    "ReflectionConcert",
    "WorkerCell",
    "register_cell",
    "registered_roles",
]
