"""Two-tier fact memory with compaction, compression and relevance retrieval."""

import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from ..exceptions import MalformedProposal
from ..prompts import (
    CLEANER_SYSTEM_PROMPT,
    CLEANING_PROMPT,
    COMPRESSION_PROMPT,
    COMPRESSOR_SYSTEM_PROMPT,
    DISTILLATION_SYSTEM_PROMPT,
    RELEVANCE_PROMPT,
    RELEVANCE_SYSTEM_PROMPT,
)
from ..utils.datetime_utils import (
    compressed_tag,
    is_fresh_compressed,
    now_utc,
    tag_fact,
)
from ..utils.llm import CompletionClient
from ..utils.text import dedupe_facts, first_number, split_lines
from .persistence import MappingStore

logger = logging.getLogger(__name__)

GLOBAL_KEY = "Global"

SHORT_TERM_KEY = "short_term_memory"
LONG_TERM_KEY = "long_term_memory"
COMPRESSION_MAPPING_KEY = "compression_mapping"


class MemoryStore:
    """
    Keyed short-term and long-term fact lists.

    Short-term is volatile working context; long-term holds distilled blobs,
    optionally tagged `[COMPRESSED|<iso ts>]`. `compression_mapping` records,
    for each synthesized blob, the raw facts it summarizes.

    Model calls made here are not retried beyond the completion client's own
    policy; failures propagate to the caller.
    """

    def __init__(
        self,
        completion: CompletionClient,
        store: Optional[MappingStore] = None,
        recompression_window_seconds: float = 3600,
        global_key: str = GLOBAL_KEY,
    ):
        """
        Initialize the memory store.

        Args:
            completion: Client used for scoring, distillation and compression
            store: Optional persistence backend for load()/save()
            recompression_window_seconds: Age below which tagged blobs are
                left alone by compress_long_term
            global_key: Node type of the global pool
        """
        self.completion = completion
        self.store = store
        self.recompression_window_seconds = recompression_window_seconds
        self.global_key = global_key

        self.short_term: Dict[str, List[str]] = {}
        self.long_term: Dict[str, List[str]] = {}
        self.compression_mapping: Dict[str, List[str]] = {}

    # --- Short-term tier ---

    def add_fact(self, node_type: str, fact: str) -> None:
        """Append a fact to the short-term list. No dedup at insert time."""
        self.short_term.setdefault(node_type, []).append(fact)
        logger.debug("Added short-term fact for '%s': %s", node_type, fact)

    def get_short_term(self, node_type: str) -> List[str]:
        return list(self.short_term.get(node_type, []))

    def set_short_term(self, node_type: str, facts: List[str]) -> None:
        self.short_term[node_type] = list(facts)

    def short_term_keys(self) -> List[str]:
        return list(self.short_term.keys())

    # --- Long-term tier ---

    def add_long_term(self, node_type: str, fact: str) -> None:
        self.long_term.setdefault(node_type, []).append(fact)
        logger.debug("Added long-term fact for '%s': %s", node_type, fact)

    def get_long_term(self, node_type: str) -> List[str]:
        return list(self.long_term.get(node_type, []))

    def set_long_term(self, node_type: str, facts: List[str]) -> None:
        self.long_term[node_type] = list(facts)

    def long_term_keys(self) -> List[str]:
        return list(self.long_term.keys())

    # --- Global pool ---

    def add_global_fact(self, fact: str) -> None:
        self.add_fact(self.global_key, fact)

    def get_global_short_term(self) -> List[str]:
        return self.get_short_term(self.global_key)

    def get_global_long_term(self) -> List[str]:
        return self.get_long_term(self.global_key)

    # --- Compaction ---

    def compact(
        self, node_type: str, max_short_term: int = 3, max_long_term: int = 10
    ) -> None:
        """
        Deduplicate short-term facts and move the overflow to long-term.

        The first `max_short_term` unique facts stay. Everything after the
        cutoff is distilled by one model call into a single tagged long-term
        blob. The long-term list for the same key is deduplicated too.

        Args:
            node_type: Memory key to compact
            max_short_term: Facts kept in short-term
            max_long_term: Long-term size above which a warning is logged
        """
        facts = dedupe_facts(self.short_term.get(node_type, []))

        if len(facts) > max_short_term:
            overflow = facts[max_short_term:]
            summary = self._distill(overflow)
            blob = tag_fact(summary)
            self.add_long_term(node_type, blob)
            self.compression_mapping[blob] = list(overflow)
            facts = facts[:max_short_term]
            logger.info(
                "Compacted '%s': %d fact(s) distilled to long-term",
                node_type,
                len(overflow),
            )

        if node_type in self.short_term:
            self.short_term[node_type] = facts

        if node_type in self.long_term:
            self.long_term[node_type] = dedupe_facts(self.long_term[node_type])
            if len(self.long_term[node_type]) > max_long_term:
                logger.warning(
                    "Long-term memory for '%s' holds %d facts (budget %d)",
                    node_type,
                    len(self.long_term[node_type]),
                    max_long_term,
                )

    def _distill(self, facts: List[str]) -> str:
        summary = self.completion.query(
            DISTILLATION_SYSTEM_PROMPT, "\n".join(facts), temperature=0.3
        )
        return summary or "; ".join(facts)

    # --- Compression ---

    def compress_long_term(
        self,
        node_type: str,
        max_blobs: int = 10,
        now: Optional[datetime] = None,
    ) -> bool:
        """
        Summarize stale long-term facts into at most `max_blobs` tagged blobs.

        Tagged blobs younger than the recompression window are kept as they
        are. Everything else is eligible; when there are more than `max_blobs`
        eligible facts they are replaced by the model's tagged summary lines.

        Returns:
            True if the eligible set was replaced
        """
        now = now or now_utc()
        fresh, eligible = self._partition_long_term(node_type, now)
        if len(eligible) <= max_blobs:
            return False

        prompt = COMPRESSION_PROMPT.format(
            max_blobs=max_blobs,
            tag=compressed_tag(now),
            facts="\n".join(eligible),
        )
        reply = self.completion.query(COMPRESSOR_SYSTEM_PROMPT, prompt, temperature=0.2)
        blobs = dedupe_facts(tag_fact(line, now) for line in split_lines(reply))
        blobs = [b for b in blobs if b not in fresh][:max_blobs]
        if not blobs:
            logger.warning("Compression of '%s' produced no output; keeping facts", node_type)
            return False

        for blob in blobs:
            self.compression_mapping[blob] = list(eligible)
            logger.debug("Compressed blob for '%s': %s", node_type, blob)

        self.long_term[node_type] = fresh + blobs
        logger.info(
            "Compressed long-term memory for '%s': %d -> %d blobs",
            node_type,
            len(eligible),
            len(blobs),
        )
        return True

    def _partition_long_term(
        self, node_type: str, now: datetime
    ) -> Tuple[List[str], List[str]]:
        fresh, eligible = [], []
        for fact in self.long_term.get(node_type, []):
            if is_fresh_compressed(fact, self.recompression_window_seconds, now):
                fresh.append(fact)
            else:
                eligible.append(fact)
        return fresh, eligible

    def compress_all_long_term(self, max_blobs: int = 10) -> None:
        """Compress long-term memory for every key."""
        for node_type in self.long_term_keys():
            self.compress_long_term(node_type, max_blobs)

    def clean_long_term(self, node_type: str, max_count: int = 10) -> None:
        """Merge an over-budget long-term list down to `max_count` facts."""
        if node_type not in self.long_term:
            return

        facts = dedupe_facts(self.long_term[node_type])
        if len(facts) > max_count:
            prompt = CLEANING_PROMPT.format(max_count=max_count, facts="\n".join(facts))
            reply = self.completion.query(CLEANER_SYSTEM_PROMPT, prompt, temperature=0.2)
            cleaned = split_lines(reply)[:max_count]
            if cleaned:
                facts = cleaned

        self.long_term[node_type] = dedupe_facts(facts)
        logger.info("Cleaned long-term memory for '%s'", node_type)

    # --- Retrieval ---

    def search_relevant(
        self, node_type: str, query: str, max_results: int = 5
    ) -> List[str]:
        """
        Top facts from both tiers by model-scored relevance to the query.

        Ties keep their original order, short-term before long-term.
        """
        facts = self.get_short_term(node_type) + self.get_long_term(node_type)
        scored = self.score_facts(query, facts)
        return [fact for fact, _ in scored[:max_results]]

    def promote_to_shortterm(
        self, node_type: str, mission: str, max_to_load: int = 5
    ) -> List[str]:
        """Copy the most relevant long-term facts into short-term."""
        if max_to_load <= 0:
            return []

        scored = self.score_facts(mission, self.get_long_term(node_type))
        relevant = [fact for fact, _ in scored[:max_to_load]]
        for fact in relevant:
            self.add_fact(node_type, fact)

        logger.info(
            "Loaded %d relevant long-term fact(s) into short-term for '%s'",
            len(relevant),
            node_type,
        )
        return relevant

    def score_facts(self, query: str, facts: List[str]) -> List[Tuple[str, int]]:
        """Score each fact 0-10 against the query, sorted descending (stable)."""
        scored = []
        for fact in facts:
            reply = self.completion.query(
                RELEVANCE_SYSTEM_PROMPT,
                RELEVANCE_PROMPT.format(query=query, fact=fact),
                temperature=0.0,
            )
            try:
                score = parse_score(reply)
            except MalformedProposal:
                logger.debug("Unparsable relevance score %r for fact %r", reply, fact)
                score = 0
            scored.append((fact, score))
        return sorted(scored, key=lambda item: item[1], reverse=True)

    # --- Snapshots and persistence ---

    def snapshot_short_term(self) -> Dict[str, List[str]]:
        """Deep copy of the short-term tier."""
        return {key: list(facts) for key, facts in self.short_term.items()}

    def restore_short_term(self, snapshot: Dict[str, List[str]]) -> None:
        self.short_term = {key: list(facts) for key, facts in snapshot.items()}
        logger.info("Short-term memory restored from snapshot")

    def load(self) -> None:
        """Reload both tiers and provenance from the persistence backend."""
        if self.store is None:
            return
        self.import_state(self.store)
        logger.debug("Memory tiers loaded")

    def save(self) -> None:
        """Persist both tiers and provenance."""
        if self.store is None:
            return
        self.export_state(self.store)
        logger.debug("Memory tiers saved")

    def export_state(self, target: MappingStore) -> None:
        """Write both tiers and provenance to any backend (a backup, say)."""
        target.save_mapping(SHORT_TERM_KEY, self.short_term)
        target.save_mapping(LONG_TERM_KEY, self.long_term)
        target.save_mapping(COMPRESSION_MAPPING_KEY, self.compression_mapping)

    def import_state(self, source: MappingStore) -> None:
        """
        Replace both tiers and provenance with what a backend holds.

        Keys the backend never saved come back empty.
        """
        self.short_term = source.load_mapping(SHORT_TERM_KEY)
        self.long_term = source.load_mapping(LONG_TERM_KEY)
        self.compression_mapping = source.load_mapping(COMPRESSION_MAPPING_KEY)

    # --- Analytics ---

    def get_stats(self) -> Dict[str, Any]:
        """Get memory statistics."""
        return {
            "short_term_keys": len(self.short_term),
            "long_term_keys": len(self.long_term),
            "short_term_facts": sum(len(v) for v in self.short_term.values()),
            "long_term_facts": sum(len(v) for v in self.long_term.values()),
            "compressed_blobs": len(self.compression_mapping),
        }

    def agent_profile(self) -> Dict[str, Dict[str, int]]:
        """Fact counts per node type and tier."""
        profile: Dict[str, Dict[str, int]] = {}
        for key in list(self.short_term) + list(self.long_term):
            profile[key] = {
                "short_term": len(self.short_term.get(key, [])),
                "long_term": len(self.long_term.get(key, [])),
            }
        return profile

    def export_analytics(self, path: Optional[str] = None) -> Dict[str, Any]:
        """
        Per-key fact counts for both tiers, stamped with the export time.

        Args:
            path: Optional JSON file to write the analytics to

        Returns:
            The analytics dict
        """
        analytics = {
            "short_term": {key: len(facts) for key, facts in self.short_term.items()},
            "long_term": {key: len(facts) for key, facts in self.long_term.items()},
            "timestamp": now_utc().isoformat(),
        }
        if path:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(analytics, f, indent=2, ensure_ascii=False)
            logger.info("Memory analytics exported to %s", path)
        return analytics

    def clear(self) -> None:
        """Clear all data (for testing)."""
        self.short_term.clear()
        self.long_term.clear()
        self.compression_mapping.clear()


def parse_score(reply: str) -> int:
    """
    Parse a 0-10 relevance score from a model reply.

    Raises:
        MalformedProposal: If the reply contains no number
    """
    number = first_number(reply)
    if not number:
        raise MalformedProposal(f"No numeric score in reply: {reply!r}")
    return max(0, min(10, int(float(number))))
