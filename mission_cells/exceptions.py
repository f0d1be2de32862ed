"""Exception hierarchy for the cell orchestration engine."""


class MissionCellsError(Exception):
    """Base class for all engine errors."""


class CompletionError(MissionCellsError):
    """A text-completion call could not produce a usable reply."""


class TransportError(CompletionError):
    """The completion endpoint was unreachable or returned a non-2xx status."""


class CompletionTimeoutError(TransportError, TimeoutError):
    """The completion endpoint did not answer within the per-call timeout."""


class ProtocolError(CompletionError):
    """The completion endpoint answered with a malformed body."""


class UnknownCellType(MissionCellsError, ValueError):
    """The cell factory was asked for a role that is not registered."""

    def __init__(self, role: str):
        super().__init__(f"Unknown cell type: {role}")
        self.role = role


class MalformedProposal(MissionCellsError, ValueError):
    """Model output could not be parsed in the requested shape."""


class InvalidRollbackIndex(MissionCellsError, IndexError):
    """A mission rollback referenced a history entry that does not exist."""

    def __init__(self, index: int, size: int):
        super().__init__(
            f"Invalid mission history index {index} (history has {size} entries)"
        )
        self.index = index
        self.size = size
