"""The Director: root cell that turns the mission into projects."""

import logging
from collections import deque
from typing import Deque, Optional

from ..utils.text import truncate
from .cell import Cell
from .registry import register_cell

logger = logging.getLogger(__name__)

UNSELECTABLE_ROLES = ("Director", "AgentSelector", "DataIngestion")

DEGENERATE_MISSION_MARKERS = (
    "summarize",
    "reflect",
    "say as little as possible",
    "few words",
)


def is_degenerate_mission(mission: str) -> bool:
    """Empty or meta missions cannot be used as a directive."""
    lowered = (mission or "").strip().lower()
    return not lowered or any(marker in lowered for marker in DEGENERATE_MISSION_MARKERS)


class IdeaDispatch:
    """
    Handle for an Idea cell dispatched without being run.

    The scheduler runs the Idea on a later tick; the Director polls the
    handle until it moves from `dispatched` to `resolved`.
    """

    DISPATCHED = "dispatched"
    RESOLVED = "resolved"

    def __init__(self, cell: Cell):
        self.cell = cell

    @property
    def status(self) -> str:
        return self.RESOLVED if self.cell.is_completed else self.DISPATCHED

    @property
    def resolved(self) -> bool:
        return self.cell.is_completed

    def poll(self) -> Optional[str]:
        """The Idea's output once resolved, else None."""
        if not self.resolved:
            return None
        return self.cell.output or ""


@register_cell("Director")
class DirectorCell(Cell):
    """
    Owns the queue of pending directives.

    Each run handles at most one directive by spawning and running a
    Project. With nothing queued it dispatches an Idea and waits for it.
    The scheduler keeps exactly one Director alive, even once completed.
    """

    def __init__(self, state, input: str = ""):
        super().__init__(state, input)
        self.pending: Deque[str] = deque()
        self.dispatch: Optional[IdeaDispatch] = None
        self.self_assessment_done = False
        self._seeded = False

    def seed(self) -> None:
        """Queue the first directive: the mission, or a Chaos idea if it is degenerate."""
        self._seeded = True
        if is_degenerate_mission(self.input):
            chaos = self.state.factory.create("Chaos", parent=self)
            idea = self.run_child(chaos).strip()
            if idea:
                self.pending.append(idea)
        else:
            self.pending.append(self.input.strip())

    def run(self) -> str:
        if not self._seeded:
            self.seed()

        if self.dispatch is not None:
            idea = self.dispatch.poll()
            if idea is None:
                logger.info("Director waiting for Idea %s", self.dispatch.cell.id)
                return self.output or ""
            self.dispatch = None
            if idea.strip():
                self.pending.append(idea.strip())
                logger.info("Director received new idea: %s", idea.strip())

        if self.pending:
            directive = self.pending.popleft()
            project = self.state.factory.create("Project", directive, parent=self)
            result = self.run_child(project)
            self.output = f"{self.output}\n\n{result}" if self.output else result
        else:
            context = (
                f"Mission: {self.state.mission.current}\n"
                f"Current accomplishments:\n{truncate(self.output or '', 1000)}"
            )
            idea = self.state.factory.create("Idea", context, parent=self)
            self.dispatch = IdeaDispatch(idea)
            logger.info("No more directives; dispatched Idea %s", idea.id)

        if self.state.config.enable_agent_selector:
            self._select_agent()

        if (
            not self.pending
            and self.dispatch is None
            and all(child.is_completed for child in self.children)
        ):
            if not self.is_completed:
                logger.info("Director completed all projects and ideas")
            self.mark_completed()

        if self.is_completed and not self.self_assessment_done:
            self.assess()
            self.self_assessment_done = True

        self.safety_review()
        self._adversarial_review()
        return self.output or ""

    def assess(self) -> None:
        """Run a self-assessment and, if it reports a problem, a self-repair."""
        assessment = self.state.factory.create(
            "SelfAssessment",
            f"Self-assessment for {self.role}\nOutput so far:\n{truncate(self.output or '', 500)}",
            parent=self,
        )
        self.run_child(assessment)
        if assessment.reports_issue:
            repair = self.state.factory.create("SelfRepair", assessment.output, parent=self)
            self.run_child(repair)

    def _select_agent(self) -> None:
        selector = self.state.factory.create(
            "AgentSelector",
            f"Mission: {self.state.mission.current}\nCurrent Output: {truncate(self.output or '', 500)}",
            parent=self,
        )
        self.run_child(selector)
        role = selector.selected_role
        if role is None or role in UNSELECTABLE_ROLES:
            return

        agent = self.state.factory.create(
            role,
            f"Auto-selected by AgentSelector for mission: {self.state.mission.current}",
            parent=self,
        )
        self.run_child(agent)

    def _adversarial_review(self) -> None:
        red_team = self.state.factory.create("RedTeam", self.output or "", parent=self)
        self.run_child(red_team)
        blue_team = self.state.factory.create("BlueTeam", red_team.output or "", parent=self)
        self.run_child(blue_team)
