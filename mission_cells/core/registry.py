"""Role-tag registry and the cell factory."""

import logging
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Type

from ..exceptions import UnknownCellType
from .cell import Cell

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)

_REGISTRY: Dict[str, Type[Cell]] = {}


def register_cell(role: str) -> Callable[[Type[Cell]], Type[Cell]]:
    """
    Class decorator registering a cell class under a role tag.

    New roles are added by decorating a class; nothing else needs editing.
    """

    def decorator(cls: Type[Cell]) -> Type[Cell]:
        cls.role = role
        _REGISTRY[role] = cls
        return cls

    return decorator


def registered_roles() -> List[str]:
    return list(_REGISTRY)


class CellFactory:
    """Creates cells by role tag, bound to one engine state."""

    def __init__(self, state: "EngineState"):
        self.state = state

    def create(
        self,
        role: str,
        input: str = "",
        parent: Optional[Cell] = None,
        **kwargs,
    ) -> Cell:
        """
        Create a cell for a role.

        Args:
            role: Registered role tag
            input: Cell input text
            parent: Optional parent; the new cell is spawned under it
            **kwargs: Extra constructor arguments for the concrete role

        Returns:
            The new (not yet run) cell

        Raises:
            UnknownCellType: If no cell class is registered for role
        """
        cls = _REGISTRY.get(role)
        if cls is None:
            raise UnknownCellType(role)

        cell = cls(self.state, input or "", **kwargs)
        if parent is not None:
            parent.spawn_child(cell)
        logger.debug("Created %s (%s)", cell.agent_name, cell.id)
        return cell

    def is_registered(self, role: str) -> bool:
        return role in _REGISTRY

    @property
    def roles(self) -> List[str]:
        return registered_roles()
