"""Mission history records."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Tuple


@dataclass(frozen=True)
class MissionRecord:
    """
    Immutable history entry for one committed mission change.

    `rationales` are the proposals whose text matched the accepted mission.
    """

    old_mission: str
    new_mission: str
    rationales: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "old_mission": self.old_mission,
            "new_mission": self.new_mission,
            "rationales": list(self.rationales),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MissionRecord":
        """Create from dictionary."""
        return cls(
            old_mission=data["old_mission"],
            new_mission=data["new_mission"],
            rationales=tuple(data.get("rationales", [])),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )
