"""Single-shot roles: each turns its input into one model reply."""

import logging
import os
import re
from typing import List, Optional

from ..prompts import (
    BOOTSTRAP_PROMPT,
    CHAOS_INSTRUCTION,
    CHAOS_PROMPT,
    DEBATE_PROMPT,
    IDEA_PROMPT,
    IDEA_USER_PROMPT,
    ROLE_SYSTEM_PROMPTS,
)
from ..utils.datetime_utils import now_utc
from ..utils.text import split_lines
from .cell import Cell, Classification
from .cell import reports_issue as mentions_issue
from .registry import register_cell, registered_roles

logger = logging.getLogger(__name__)


class PromptCell(Cell):
    """
    A cell that sends its input to the model under a fixed system prompt.

    Subclasses override `build_prompt` or `after_run` when they need more
    than the plain transform.
    """

    temperature: float = 0.3
    review_output: bool = False

    @property
    def system_prompt(self) -> str:
        return ROLE_SYSTEM_PROMPTS[self.role]

    def build_prompt(self) -> str:
        return self.input

    def after_run(self) -> None:
        pass

    def run(self) -> str:
        self.output = self.query(self.system_prompt, self.build_prompt(), self.temperature)
        self.mark_completed()
        logger.debug("%s output: %s", self.agent_name, self.output)
        self.after_run()
        if self.review_output:
            self.safety_review()
        return self.output


@register_cell("Idea")
class IdeaCell(PromptCell):
    """Proposes the next directive for a Director."""

    review_output = True

    @property
    def system_prompt(self) -> str:
        return IDEA_PROMPT

    def build_prompt(self) -> str:
        return f"{self.emotion_annotation()}\n{IDEA_USER_PROMPT.format(context=self.input)}"

    def after_run(self) -> None:
        logger.info("Generated idea: %s", self.output)


@register_cell("Evaluator")
class EvaluatorCell(PromptCell):
    pass


@register_cell("Verification")
class VerificationCell(PromptCell):
    """Checks a claim and classifies the result."""

    temperature = 0.0

    def __init__(self, state, input: str = ""):
        super().__init__(state, input)
        self.classification: Optional[Classification] = None

    def after_run(self) -> None:
        self.classification = Classification.from_text(self.output)
        logger.info("Verification classified as %s", self.classification.value)


@register_cell("Appeal")
class AppealCell(PromptCell):
    pass


@register_cell("Ethics")
class EthicsCell(PromptCell):
    pass


@register_cell("RedTeam")
class RedTeamCell(PromptCell):
    pass


@register_cell("BlueTeam")
class BlueTeamCell(PromptCell):
    pass


@register_cell("Curriculum")
class CurriculumCell(PromptCell):
    pass


@register_cell("Documentation")
class DocumentationCell(PromptCell):
    """Writes documentation and appends it to the documentation log."""

    def after_run(self) -> None:
        path = self.state.config.documentation_log_path
        if not path:
            return
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "a", encoding="utf-8") as f:
            f.write(f"[{now_utc().isoformat()}] {self.output}\n")


@register_cell("Negotiation")
class NegotiationCell(PromptCell):
    pass


@register_cell("Milestone")
class MilestoneCell(PromptCell):
    pass


@register_cell("MetaLogger")
class MetaLoggerCell(PromptCell):
    pass


@register_cell("Explainer")
class ExplainerCell(PromptCell):
    pass


@register_cell("KnowledgeDistillation")
class KnowledgeDistillationCell(PromptCell):
    pass


@register_cell("SelfRepair")
class SelfRepairCell(PromptCell):
    pass


@register_cell("MissionDebate")
class MissionDebateCell(PromptCell):
    """Binary Accept/Reject judgment of one proposal against the mission."""

    temperature = 0.0

    def __init__(self, state, input: str = "", current_mission: Optional[str] = None):
        super().__init__(state, input)
        self.proposal = input
        self.current_mission = (
            current_mission if current_mission is not None else state.mission.current
        )

    def build_prompt(self) -> str:
        return DEBATE_PROMPT.format(proposal=self.proposal, mission=self.current_mission)

    @property
    def accepted(self) -> bool:
        return (self.output or "").strip().lower().startswith("accept")


@register_cell("Chaos")
class ChaosCell(PromptCell):
    """Injects a disruptive, non-meta mission to break stagnation."""

    temperature = 0.9

    def __init__(self, state, input: str = ""):
        super().__init__(state, input or CHAOS_INSTRUCTION)

    def build_prompt(self) -> str:
        return CHAOS_PROMPT.format(
            instruction=self.input,
            mission=self.state.mission.current,
            memory="\n".join(self.state.memory.get_global_short_term()),
        )

    def after_run(self) -> None:
        logger.info("Chaos generated new mission: %s", self.output)


@register_cell("Curiosity")
class CuriosityCell(PromptCell):
    def __init__(self, state, input: str = ""):
        super().__init__(state, input or BOOTSTRAP_PROMPT)


@register_cell("SelfAssessment")
class SelfAssessmentCell(PromptCell):
    @property
    def reports_issue(self) -> bool:
        return mentions_issue(self.output)


@register_cell("AgentSelector")
class AgentSelectorCell(PromptCell):
    """Picks the role that should act next."""

    temperature = 0.0

    def build_prompt(self) -> str:
        return f"{self.input}\nAvailable roles: {', '.join(registered_roles())}"

    @property
    def selected_role(self) -> Optional[str]:
        """First registered role named in the reply, if any."""
        roles = set(registered_roles())
        for word in re.findall(r"[A-Za-z]+", self.output or ""):
            if word in roles:
                return word
            if word.endswith("Cell") and word[:-4] in roles:
                return word[:-4]
        return None


@register_cell("Team")
class TeamCell(Cell):
    """Runs a small team of Workers on one goal and joins their results."""

    def __init__(self, state, input: str = "", members: Optional[List[Cell]] = None, size: int = 3):
        super().__init__(state, input)
        self.goal = input
        self.members = list(members) if members is not None else None
        self.size = size

    def run(self) -> str:
        if self.members is None:
            self.members = [
                self.state.factory.create("Worker", f"Team subtask {i + 1} for: {self.goal}")
                for i in range(self.size)
            ]

        results = [f"Team working on: {self.goal}"]
        for member in self.members:
            results.append(self.run_child(member))
        self.output = "\n".join(results)
        self.mark_completed()
        return self.output


@register_cell("DataIngestion")
class DataIngestionCell(Cell):
    """Reads a local text file and records its lines as global facts."""

    def run(self) -> str:
        with open(self.input, "r", encoding="utf-8") as f:
            data = f.read()

        lines = split_lines(data)
        for line in lines:
            self.state.memory.add_global_fact(line)

        self.output = f"Ingested data from {self.input} ({len(data)} chars, {len(lines)} facts)"
        self.mark_completed()
        logger.info(self.output)
        return self.output
