"""Current mission, its history and the rules for changing it."""

import difflib
import json
import logging
from collections import Counter
from typing import List, Optional, Sequence, Tuple

from ..config import DEFAULT_MISSION
from ..exceptions import InvalidRollbackIndex
from ..models import MissionRecord
from ..storage.persistence import MappingStore
from ..utils.datetime_utils import format_datetime
from ..utils.text import levenshtein, truncate

logger = logging.getLogger(__name__)

MISSION_KEY = "mission"
MISSION_HISTORY_KEY = "mission_history"

MIN_EDIT_DISTANCE = 20


def is_meaningful_change(old_mission: str, new_mission: str) -> bool:
    """
    True when the new mission differs enough from the old one.

    Case-insensitive equality is always rejected; otherwise the edit distance
    must reach max(20, len(old) // 10).
    """
    if old_mission.lower() == new_mission.lower():
        return False
    threshold = max(MIN_EDIT_DISTANCE, len(old_mission) // 10)
    return levenshtein(old_mission, new_mission) >= threshold


def select_best_proposal(proposals: Sequence[str]) -> str:
    """
    Most frequent proposal if any repeats, else the longest.

    Ties between equally long proposals keep the earliest.
    """
    if not proposals:
        raise ValueError("No proposals to choose from")

    counts = Counter(p.strip() for p in proposals)
    most_common, count = counts.most_common(1)[0]
    if count > 1:
        return most_common
    return max(proposals, key=len).strip()


def reflection_slices(facts: Sequence[str], count: int) -> List[List[str]]:
    """
    Split facts into `count` contiguous slices of even size.

    The last slice absorbs the remainder; slices may be empty.
    """
    size = max(1, len(facts) // count)
    slices = []
    for i in range(count):
        start = i * size
        end = len(facts) if i == count - 1 else start + size
        slices.append(list(facts[start:end]))
    return slices


def word_diff(old: str, new: str) -> List[Tuple[str, str]]:
    """
    Word-level diff as (op, word) pairs.

    op is "=" for kept words, "-" for removed and "+" for added.
    """
    old_words = old.split()
    new_words = new.split()
    diff = []
    matcher = difflib.SequenceMatcher(a=old_words, b=new_words, autojunk=False)
    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            diff.extend(("=", w) for w in old_words[i1:i2])
            continue
        diff.extend(("-", w) for w in old_words[i1:i2])
        diff.extend(("+", w) for w in new_words[j1:j2])
    return diff


def format_word_diff(diff: List[Tuple[str, str]]) -> str:
    """Render a word diff as `[-removed-] {+added+}` text."""
    parts = []
    for op, word in diff:
        if op == "-":
            parts.append(f"[-{word}-]")
        elif op == "+":
            parts.append(f"{{+{word}+}}")
        else:
            parts.append(word)
    return " ".join(parts)


class MissionState:
    """
    The single current mission plus its append-only change history.

    The mission is persisted under the `mission` key and the history under
    `mission_history` through a MappingStore.
    """

    def __init__(
        self,
        store: Optional[MappingStore] = None,
        initial_mission: str = DEFAULT_MISSION,
    ):
        self.store = store
        self.current = initial_mission
        self.history: List[MissionRecord] = []

    def load(self, store: Optional[MappingStore] = None) -> None:
        """
        Load the mission and history; absent keys keep the defaults.

        Args:
            store: Backend to read instead of the configured one
        """
        store = store or self.store
        if store is None:
            return

        mission = store.load_mapping(MISSION_KEY).get("current")
        if mission:
            self.current = mission[0]

        records = store.load_mapping(MISSION_HISTORY_KEY).get("records", [])
        self.history = [MissionRecord.from_dict(json.loads(r)) for r in records]
        logger.info("Mission loaded: %s", self.current)

    def save(self, store: Optional[MappingStore] = None) -> None:
        store = store or self.store
        if store is None:
            return
        store.save_mapping(MISSION_KEY, {"current": [self.current]})
        store.save_mapping(
            MISSION_HISTORY_KEY,
            {"records": [json.dumps(r.to_dict()) for r in self.history]},
        )

    def commit(self, new_mission: str, rationales: Sequence[str] = ()) -> MissionRecord:
        """Record and persist a mission change."""
        record = MissionRecord(
            old_mission=self.current,
            new_mission=new_mission,
            rationales=tuple(rationales),
        )
        self.history.append(record)
        self.current = new_mission
        self.save()
        logger.info("Mission changed: %s", new_mission)
        return record

    def set(self, mission: str, rationale: Optional[str] = None) -> Optional[MissionRecord]:
        """
        Replace the mission outside the reflection path.

        With a rationale the change is recorded in the history; without one
        (bootstrapping) it is not.
        """
        if rationale is not None:
            return self.commit(mission, (rationale,))
        self.current = mission
        self.save()
        return None

    def rollback(self, index: int) -> str:
        """
        Restore the mission that was replaced by history entry `index`.

        Raises:
            InvalidRollbackIndex: If index is out of range
        """
        if index < 0 or index >= len(self.history):
            raise InvalidRollbackIndex(index, len(self.history))

        self.current = self.history[index].old_mission
        self.save()
        logger.info("Mission rolled back to: %s", self.current)
        return self.current

    def history_summary(self) -> List[str]:
        """One line per history entry."""
        return [
            f"[{i}] {format_datetime(r.timestamp)} | Old: {truncate(r.old_mission, 40)} "
            f"| New: {truncate(r.new_mission, 40)}"
            for i, r in enumerate(self.history)
        ]
