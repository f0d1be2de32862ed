"""Project and Worker cells."""

import logging
import re
from typing import List, Optional

from ..models import ConsensusSession, ConsensusType, RetrievalMode
from ..prompts import PROJECT_MANAGER_PROMPT, WORKER_PROMPT
from ..utils.text import is_meta
from .cell import Cell, Classification
from .registry import register_cell

logger = logging.getLogger(__name__)

TEAM_MARKERS = re.compile(r"\b(?:teams?|teamwork|collaborat\w*)\b", re.IGNORECASE)
NEGOTIATION_THRESHOLD = 2
FRUSTRATION_ON_FAILURE = 0.2

_COMPLEX_TAG = re.compile(r"\[complex\]\s*", re.IGNORECASE)


def is_self_referential(directive: str) -> bool:
    """Empty directives, or ones asking to summarize the mission itself."""
    lowered = (directive or "").strip().lower()
    return not lowered or ("summarize" in lowered and "mission" in lowered)


@register_cell("Project")
class ProjectCell(Cell):
    """
    Turns one directive into a consensus answer, then verifies it.

    A project makes exactly one pass and completes.
    """

    def __init__(self, state, input: str = ""):
        super().__init__(state, input)
        self.sessions: List[ConsensusSession] = []
        self.classification: Optional[Classification] = None

    def run(self) -> str:
        state = self.state
        config = state.config
        memory = state.memory

        directive = self.input
        if is_self_referential(directive):
            chaos = state.factory.create("Chaos", parent=self)
            directive = self.run_child(chaos) or directive

        system_prompt = (
            f"{self.emotion_annotation()}\n{PROJECT_MANAGER_PROMPT}\n{config.concise_instruction}"
        )
        session = state.consensus.run(
            directive,
            endpoint=config.endpoint,
            model=config.model,
            system_prompt=system_prompt,
            consensus_type=ConsensusType.KNOWLEDGE,
            retrieval_mode=RetrievalMode.HYBRID,
            requester=self,
        )
        self.sessions.append(session)
        result = session.result

        if result:
            memory.add_fact(self.role, result)
            memory.compact(self.role, config.max_short_term, config.max_long_term)
            self._verify(result)

        if TEAM_MARKERS.search(directive):
            team = state.factory.create("Team", directive, parent=self)
            self.run_child(team)

        if session.distinct_answers > NEGOTIATION_THRESHOLD:
            negotiation = state.factory.create(
                "Negotiation", f"Resolve conflicting answers for: {directive}", parent=self
            )
            self.run_child(negotiation)

        output = result
        if output and is_meta(output):
            fact = state.completion.generate_fact(real=True)
            memory.add_fact(self.role, fact)
            output = f"{output}\n\nNew Fact: {fact}"
            memory.compact(self.role, config.max_short_term, config.max_long_term)

        self.output = output
        self.mark_completed()
        self.safety_review()
        return self.output

    def _verify(self, result: str) -> None:
        verifier = self.state.factory.create("Verification", result, parent=self)
        self.run_child(verifier)
        self.classification = verifier.classification

        if self.classification == Classification.FAILED:
            appeal = self.state.factory.create(
                "Appeal",
                f"Claim: {result}\nVerification: {verifier.output}",
                parent=verifier,
            )
            verifier.run_child(appeal)
            self.state.emotions.burst("frustration", FRUSTRATION_ON_FAILURE)


@register_cell("Worker")
class WorkerCell(Cell):
    """
    Executes one subtask.

    A complex subtask (flag or `[complex]` tag) is handed to exactly one
    plain sub-Worker whose result is wrapped.
    """

    def __init__(self, state, input: str = "", complex: bool = False):
        super().__init__(state, input)
        self.complex = complex or bool(_COMPLEX_TAG.search(self.input))

    def run(self) -> str:
        if self.complex:
            subtask = _COMPLEX_TAG.sub("", self.input).strip()
            sub_worker = self.state.factory.create(
                "Worker", f"Subtask for: {subtask}", parent=self, complex=False
            )
            sub_result = self.run_child(sub_worker)
            self.output = f"[SubWorker Result]: {sub_result}"
        else:
            self.output = self.perform_work()
            self.state.skills.add_skill(self.role, f"Completed: {self.input}")

        self.mark_completed()
        self.safety_review()
        return self.output

    def perform_work(self) -> str:
        skills = self.state.skills.describe(self.role)
        prompt = f"[Known Skills: {skills}]\n{self.emotion_annotation()}\n{self.input}"
        result = self.query(WORKER_PROMPT, prompt)
        logger.info("Worker performed subtask %r", self.input)
        return result
