"""Consensus engine: several sub-agents answer, a judge reduces."""

import logging
import re
from typing import TYPE_CHECKING, List, Optional

from ..exceptions import CompletionError, MalformedProposal
from ..models import (
    AuditEntry,
    ConsensusSession,
    ConsensusType,
    ResponderRecord,
    RetrievalMode,
)
from ..prompts import (
    DIVERSITY_HINTS,
    HYBRID_INSTRUCTION,
    HYBRID_MEMORY_PROMPT,
    JUDGE_SYSTEM_PROMPT,
    MEMORY_ONLY_INSTRUCTION,
    MODEL_ONLY_INSTRUCTION,
    REDUCTION_PROMPTS,
)
from ..utils.text import first_number, is_meta, split_lines

if TYPE_CHECKING:
    from .cell import Cell
    from .state import EngineState

logger = logging.getLogger(__name__)

MEMORY_BLOCK_LIMIT = 5
MIN_RELEVANT_FACTS = 3

_TRUE_WORDS = {"true", "yes", "y", "1"}
_FALSE_WORDS = {"false", "no", "n", "0"}


def build_agent_prompt(
    system_prompt: str,
    retrieval_mode: RetrievalMode,
    memory_block: str = "",
    agent_index: int = 0,
) -> str:
    """
    Build the system prompt for one responder.

    Args:
        system_prompt: Caller's base system prompt
        retrieval_mode: Where the responder may draw knowledge from
        memory_block: Relevant facts, may be empty
        agent_index: Zero-based responder index; selects the rotating hint

    Returns:
        System prompt for the responder
    """
    prompt = system_prompt
    if retrieval_mode == RetrievalMode.MEMORY_ONLY:
        prompt += f"\n{MEMORY_ONLY_INSTRUCTION}"
        if memory_block.strip():
            prompt += f"\nMEMORY:\n{memory_block}"
    elif retrieval_mode == RetrievalMode.HYBRID:
        if memory_block.strip():
            prompt = f"{system_prompt}\n{HYBRID_MEMORY_PROMPT.format(memory=memory_block)}"
        prompt += "\n" + HYBRID_INSTRUCTION.format(agent_number=agent_index + 1)
        prompt += f"\nHint: {DIVERSITY_HINTS[agent_index % len(DIVERSITY_HINTS)]}"
    else:
        prompt += f"\n{MODEL_ONLY_INSTRUCTION}"
    return prompt


def build_reduction_prompt(consensus_type: ConsensusType, answers: List[str]) -> str:
    return REDUCTION_PROMPTS[consensus_type.value].format(answers="\n".join(answers))


def parse_bool(text: str) -> str:
    """
    Normalize a judge reply to "True" or "False".

    Raises:
        MalformedProposal: If the reply names neither
    """
    words = re.findall(r"[a-z0-9]+", (text or "").lower())
    if words:
        if words[0] in _TRUE_WORDS:
            return "True"
        if words[0] in _FALSE_WORDS:
            return "False"
    if "true" in words or "yes" in words:
        return "True"
    if "false" in words or "no" in words:
        return "False"
    raise MalformedProposal(f"Not a boolean answer: {text!r}")


def normalize_result(raw: str, consensus_type: ConsensusType) -> str:
    """
    Coerce a judge reply into the requested shape.

    Unparsable replies degrade to the stripped reply itself.
    """
    text = (raw or "").strip()
    if not text:
        return ""

    if consensus_type == ConsensusType.BOOL:
        try:
            return parse_bool(text)
        except MalformedProposal as e:
            logger.warning("%s", e)
            return text
    if consensus_type == ConsensusType.NUMBER:
        return first_number(text) or text
    if consensus_type == ConsensusType.WORD:
        word = text.split()[0].strip(".,;:!?\"'()[]")
        return word or text
    lines = split_lines(text)
    return lines[0] if lines else text


class ConsensusEngine:
    """
    Runs consensus sessions against the shared memory and audit log.

    Responders are queried strictly one after another, in spawn order.
    """

    def __init__(self, state: "EngineState"):
        self.state = state

    def run_consensus(
        self,
        question: str,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        system_prompt: str = "",
        consensus_type: ConsensusType = ConsensusType.KNOWLEDGE,
        retrieval_mode: RetrievalMode = RetrievalMode.MODEL_ONLY,
        requester: Optional["Cell"] = None,
    ) -> str:
        """Run a session and return only its result string."""
        session = self.run(
            question,
            endpoint=endpoint,
            model=model,
            system_prompt=system_prompt,
            consensus_type=consensus_type,
            retrieval_mode=retrieval_mode,
            requester=requester,
        )
        return session.result

    def run(
        self,
        question: str,
        endpoint: Optional[str] = None,
        model: Optional[str] = None,
        system_prompt: str = "",
        consensus_type: ConsensusType = ConsensusType.KNOWLEDGE,
        retrieval_mode: RetrievalMode = RetrievalMode.MODEL_ONLY,
        requester: Optional["Cell"] = None,
    ) -> ConsensusSession:
        """
        Run one consensus session.

        Args:
            question: Question put to every responder
            endpoint: Completion endpoint (defaults to the configured one)
            model: Model name (defaults to the configured one)
            system_prompt: Base system prompt for responders
            consensus_type: Shape of the reduced answer
            retrieval_mode: Whether responders see memory
            requester: Cell on whose behalf the session runs (for audit depth)

        Returns:
            The finished session; `result` is always a string

        Raises:
            CompletionError: If a responder fails on both primary and fallback
                models, or the judge call fails
        """
        config = self.state.config
        memory = self.state.memory
        node_type = config.consensus_node_type
        endpoint = endpoint or config.endpoint
        model = model or config.model

        session = ConsensusSession(
            question=question,
            consensus_type=consensus_type,
            retrieval_mode=retrieval_mode,
        )
        logger.info(
            "Consensus on %r (%s, %s) with %d sub-agents",
            question,
            consensus_type.value,
            retrieval_mode.value,
            config.sub_agent_count,
        )

        if retrieval_mode.uses_memory:
            session.memory_block = self.gather_memory(node_type, question)

        for index in range(config.sub_agent_count):
            record = self._ask_responder(
                session, index, system_prompt, endpoint, model, requester
            )
            session.responders.append(record)
            if record.answer:
                memory.add_fact(node_type, record.answer)

        raw = self.state.completion.complete(
            [
                {"role": "system", "content": JUDGE_SYSTEM_PROMPT},
                {"role": "user", "content": build_reduction_prompt(consensus_type, session.answers)},
            ],
            endpoint=endpoint,
            model=model,
        )
        session.result = normalize_result(raw, consensus_type)

        if session.all_distinct:
            session.diverse = True
            logger.warning(
                "All %d sub-agent answers are unique; possible ambiguity or lack of consensus",
                len(session.answers),
            )

        if session.result:
            memory.add_fact(node_type, session.result)
            memory.add_global_fact(session.result)
            if is_meta(session.result):
                fact = self.state.completion.generate_fact(real=True)
                if fact:
                    memory.add_fact(node_type, fact)
                    memory.add_global_fact(fact)
        memory.compact(node_type, config.max_short_term, config.max_long_term)

        self.state.audit.record(
            AuditEntry(
                step="ConsensusReached",
                agent_name="ConsensusOrchestrator",
                role="Consensus",
                question=question,
                answer=session.result,
                parent_id=requester.id if requester is not None else None,
                judge_verdict=raw,
                retrieval_mode=retrieval_mode.value,
                chain_depth=requester.chain_depth + 1 if requester is not None else 0,
            )
        )
        logger.info("Consensus result: %s", session.result)
        return session

    def gather_memory(self, node_type: str, question: str) -> str:
        """
        Compose the memory block for a question.

        Falls back to promoted long-term facts when fewer than three relevant
        facts exist; returns "" when memory is empty.
        """
        memory = self.state.memory
        relevant = memory.search_relevant(node_type, question, MEMORY_BLOCK_LIMIT)

        if len(relevant) < MIN_RELEVANT_FACTS:
            memory.promote_to_shortterm(
                node_type, question, MEMORY_BLOCK_LIMIT - len(relevant)
            )
            relevant = memory.get_short_term(node_type)[:MEMORY_BLOCK_LIMIT]

        if not relevant:
            relevant = memory.get_long_term(node_type)[:MEMORY_BLOCK_LIMIT]
        return "\n".join(relevant)

    def _ask_responder(
        self,
        session: ConsensusSession,
        index: int,
        system_prompt: str,
        endpoint: str,
        model: str,
        requester: Optional["Cell"],
    ) -> ResponderRecord:
        config = self.state.config
        prompt = build_agent_prompt(
            system_prompt, session.retrieval_mode, session.memory_block, index
        )
        record = ResponderRecord(
            index=index,
            name=f"Consensus Responder {index + 1}",
            prompt=f"{prompt}\nYou are agent #{index + 1}.",
            endpoint=endpoint,
            model=model,
        )
        messages = [
            {"role": "system", "content": record.prompt},
            {"role": "user", "content": session.question},
        ]

        try:
            answer = self.state.completion.complete(
                messages, endpoint=record.endpoint, model=record.model
            )
        except CompletionError as e:
            logger.warning(
                "%s failed on %s (%s); falling back to %s",
                record.name,
                record.endpoint,
                e,
                config.fallback_model,
            )
            record.endpoint = config.fallback_endpoint
            record.model = config.fallback_model
            record.used_fallback = True
            answer = self.state.completion.complete(
                messages, endpoint=record.endpoint, model=record.model
            )

        record.answer = (answer or "").strip()
        logger.debug("%s answered: %s", record.name, record.answer)

        self.state.audit.record(
            AuditEntry(
                step="ConsensusResponder",
                agent_name=record.name,
                role="ConsensusResponder",
                question=session.question,
                answer=record.answer,
                parent_id=requester.id if requester is not None else None,
                retrieval_mode=session.retrieval_mode.value,
                chain_depth=requester.chain_depth + 1 if requester is not None else 0,
            )
        )
        return record
