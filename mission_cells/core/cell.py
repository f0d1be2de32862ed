"""Base cell: a recursive unit of LLM-backed work."""

import logging
import re
import uuid
import weakref
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Iterable, List, Optional

from ..models import AuditEntry
from ..utils.datetime_utils import now_utc

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)

CELL_VERSION = "1.0.0"

_ISSUE_WORD = r"(?:error\w*|inefficienc\w*)"
_ISSUE = re.compile(rf"\b{_ISSUE_WORD}")
# "no errors", "no major errors or inefficiencies"; each negation only covers
# the issue words it lists.
_NEGATED_ISSUE = re.compile(
    rf"\b(?:no|zero|without)\s+(?:\w+\s+)?{_ISSUE_WORD}"
    rf"(?:(?:\s*,\s*|\s+(?:or|and|nor)\s+)(?:\w+\s+)?{_ISSUE_WORD})*"
)

_FAILURE_MARKERS = re.compile(
    r"\b(?:fail\w*|incorrect|wrong|false|unverified|unverifiable|"
    r"(?:not|isn't|cannot\s+be|can't\s+be|could\s+not\s+be)\s+(?:verified|correct|true))\b"
)
_SUCCESS_MARKERS = re.compile(r"\b(?:verified|correct|pass(?:es|ed)?|true)\b")


class Classification(str, Enum):
    """Outcome of a verification stage."""

    VERIFIED = "Verified"
    FAILED = "Failed"
    AMBIGUOUS = "Ambiguous"

    @classmethod
    def from_text(cls, text: str) -> "Classification":
        """
        Classify a verifier reply.

        The leading word wins when it names a class; otherwise failure markers
        (including negated success words such as "not verified") are checked
        before success markers.
        """
        lowered = (text or "").strip().lower()
        if not lowered:
            return cls.AMBIGUOUS

        leading = re.split(r"[\s:.,!-]+", lowered, maxsplit=1)[0]
        for member in cls:
            if leading == member.value.lower():
                return member

        if _FAILURE_MARKERS.search(lowered):
            return cls.FAILED
        if _SUCCESS_MARKERS.search(lowered):
            return cls.VERIFIED
        return cls.AMBIGUOUS


def is_unsafe(text: Optional[str], keywords: Iterable[str]) -> bool:
    """True when the text mentions any safety keyword (case-insensitive)."""
    if not text or not text.strip():
        return False
    lowered = text.lower()
    return any(keyword.lower() in lowered for keyword in keywords)


def reports_issue(text: Optional[str]) -> bool:
    """True when an assessment reports an error or inefficiency."""
    lowered = (text or "").lower()
    remaining = _NEGATED_ISSUE.sub(" ", lowered)
    return bool(_ISSUE.search(remaining))


class Cell(ABC):
    """
    Base class for all cells.

    A cell has an identity, a role tag, an input and (after running) an
    output. Parents own their children; a child only keeps a weak reference
    back to its parent. `children` is append-only; only a hot swap replaces
    an entry in place.

    `completed_at` is None while the cell is active and is set exactly once.
    """

    role: str = "Cell"

    def __init__(self, state: "EngineState", input: str = ""):
        self.state = state
        self.id = str(uuid.uuid4())
        self.input = input or ""
        self.output: Optional[str] = None
        self.children: List["Cell"] = []
        self.created_at: datetime = now_utc()
        self.completed_at: Optional[datetime] = None
        self.version = CELL_VERSION
        self._parent_ref: Optional[weakref.ReferenceType] = None

    @abstractmethod
    def run(self) -> str:
        """Do this cell's work and return its output. Safe to call again."""
        pass

    # --- Tree ---

    @property
    def parent(self) -> Optional["Cell"]:
        return self._parent_ref() if self._parent_ref is not None else None

    @property
    def agent_name(self) -> str:
        return f"{self.role}Cell"

    @property
    def chain_depth(self) -> int:
        """Distance from the root cell."""
        depth = 0
        current = self.parent
        while current is not None:
            depth += 1
            current = current.parent
        return depth

    def spawn_child(self, child: "Cell") -> "Cell":
        """
        Attach a child cell.

        Raises:
            ValueError: If the child already belongs to another parent
        """
        if child is self:
            raise ValueError("A cell cannot be its own child")

        current = child.parent
        if current is not None and current is not self:
            raise ValueError(
                f"{child.agent_name} {child.id} already belongs to "
                f"{current.agent_name} {current.id}"
            )
        if current is self and any(c is child for c in self.children):
            return child

        child._parent_ref = weakref.ref(self)
        self.children.append(child)
        logger.info(
            "%s (%s) spawned %s (%s)",
            self.agent_name,
            self.id,
            child.agent_name,
            child.id,
        )
        return child

    def run_child(self, child: "Cell") -> str:
        """Spawn (if needed), run and audit a child. Returns its output."""
        if child.parent is not self:
            self.spawn_child(child)
        output = child.run()
        self.state.audit.record_cell(child, "CellExecuted")
        return output or ""

    # --- Lifecycle ---

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    def mark_completed(self) -> None:
        if self.completed_at is None:
            self.completed_at = now_utc()

    # --- Shared behaviour ---

    def query(self, system: str, prompt: str, temperature: float = 0.3) -> str:
        return self.state.completion.query(system, prompt, temperature=temperature)

    def emotion_annotation(self) -> str:
        return self.state.emotions.annotation()

    def receive_emotion(self, emotion: str, amount: float) -> None:
        self.state.emotions.receive(emotion, amount)

    def safety_review(self) -> bool:
        """
        Flag unsafe output: audit a SafetyCheck and run an Ethics child.

        Returns:
            True if the output was flagged
        """
        if not is_unsafe(self.output, self.state.config.safety_keywords):
            return False

        logger.warning("%s output flagged for review", self.agent_name)
        self.state.audit.record(
            AuditEntry(
                step="SafetyCheck",
                agent_name=self.agent_name,
                role=self.role,
                question=self.input,
                answer=self.output,
                parent_id=self.parent.id if self.parent is not None else None,
                ethics_flag="flagged",
                safety_notes="Output contained unsafe, biased, or hallucinated content.",
                chain_depth=self.chain_depth,
            )
        )
        ethics = self.state.factory.create("Ethics", self.output, parent=self)
        self.run_child(ethics)
        return True

    def __repr__(self) -> str:
        status = "completed" if self.is_completed else "active"
        return f"<{self.agent_name} {self.id[:8]} {status}>"
