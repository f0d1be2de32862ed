"""Reflection concert: competing proposals, a vote, maybe a new mission."""

import logging
from typing import TYPE_CHECKING, List

from ..models import AuditEntry
from ..prompts import EXPLAINER_PROMPT, NO_CHANGE_MARKER, REFLECTION_PROMPT
from ..utils.text import is_meta, levenshtein
from .mission import (
    MIN_EDIT_DISTANCE,
    format_word_diff,
    is_meaningful_change,
    reflection_slices,
    select_best_proposal,
    word_diff,
)

if TYPE_CHECKING:
    from .state import EngineState

logger = logging.getLogger(__name__)

FALLBACK_POOLS = ("Director", "Project")
PRIDE_ON_CHANGE = 0.1


def needs_chaos(mission: str, proposals: List[str]) -> bool:
    """True when every proposal is meta or a near-duplicate of the mission."""
    return all(
        is_meta(p) or levenshtein(p, mission) < MIN_EDIT_DISTANCE for p in proposals
    )


class ReflectionConcert:
    """
    Periodic meta-consensus over memory that may revise the mission.

    Debate verdicts are recorded for every proposal but do not change the
    mission; only a majority of proposals followed by a meaningful-change
    check can commit a new one.
    """

    def __init__(self, state: "EngineState"):
        self.state = state

    def memory_pool(self) -> List[str]:
        """Global short-term facts, falling back to the Director then Project pools."""
        memory = self.state.memory
        facts = memory.get_global_short_term()
        for key in FALLBACK_POOLS:
            if facts:
                break
            facts = memory.get_short_term(key)
        return facts

    def collect_proposals(self, mission: str) -> List[str]:
        count = self.state.config.reflection_count
        proposals = []
        for i, memory_slice in enumerate(reflection_slices(self.memory_pool(), count)):
            if not memory_slice:
                logger.warning("Reflection agent #%d: memory slice is empty", i + 1)

            evaluator = self.state.factory.create(
                "Evaluator",
                REFLECTION_PROMPT.format(
                    mission=mission,
                    agent_number=i + 1,
                    memory="\n".join(memory_slice),
                ),
            )
            reflection = (evaluator.run() or "").strip()
            self.state.audit.record_cell(evaluator, "Reflection")
            logger.info("Reflection agent #%d: %s", i + 1, reflection)

            if reflection and NO_CHANGE_MARKER not in reflection.lower():
                proposals.append(reflection)
        return proposals

    def debate(self, mission: str, proposals: List[str]) -> None:
        """Judge every proposal against the mission and audit each verdict."""
        for proposal in proposals:
            debate = self.state.factory.create(
                "MissionDebate", proposal, current_mission=mission
            )
            debate.run()
            step = "MissionDebateAccepted" if debate.accepted else "MissionDebateRejected"
            self.state.audit.record(
                AuditEntry(
                    step=step,
                    agent_name=debate.agent_name,
                    role=debate.role,
                    question=mission,
                    answer=proposal,
                    judge_verdict=debate.output,
                )
            )

    def run(self) -> bool:
        """
        Run one concert.

        Returns:
            True if the mission changed
        """
        state = self.state
        mission = state.mission.current

        proposals = self.collect_proposals(mission)
        votes = len(proposals)

        if needs_chaos(mission, proposals):
            chaos = state.factory.create("Chaos")
            chaos_mission = (chaos.run() or "").strip()
            state.audit.record_cell(chaos, "CellExecuted")
            if chaos_mission:
                proposals.append(chaos_mission)

        self.debate(mission, proposals)

        if votes < state.config.majority or not proposals:
            logger.info("No mission change: %d/%d votes", votes, state.config.reflection_count)
            return False

        new_mission = select_best_proposal(proposals)
        if not is_meaningful_change(mission, new_mission):
            logger.info("Proposed mission is not a meaningful change")
            return False

        rationales = [
            p for p in proposals if p.strip().lower() == new_mission.strip().lower()
        ]
        state.mission.commit(new_mission, rationales)
        logger.info("Mission diff: %s", format_word_diff(word_diff(mission, new_mission)))

        state.audit.record(
            AuditEntry(
                step="MissionChanged",
                agent_name="ReflectionConcert",
                role="Director",
                question=mission,
                answer=new_mission,
                expected_answer=" | ".join(rationales),
            )
        )
        state.audit.record(
            AuditEntry(
                step="MissionRedirection",
                agent_name="Machine",
                role="Director",
                question=mission,
                answer=new_mission,
                safety_notes="Redirection rationale: " + " | ".join(rationales),
            )
        )

        explainer = state.factory.create(
            "Explainer", EXPLAINER_PROMPT.format(old=mission, new=new_mission)
        )
        explainer.run()
        state.audit.record_cell(explainer, "CellExecuted")
        state.emotions.burst("pride", PRIDE_ON_CHANGE)
        return True
