"""Small text helpers shared by memory, consensus and mission evolution."""

import re
from typing import Iterable, List

META_MARKERS = ("summarize", "reflect")

_NUMBER_PATTERN = re.compile(r"-?\d+(?:\.\d+)?")


def dedupe_facts(facts: Iterable[str]) -> List[str]:
    """
    Exact deduplication: trimmed, case-insensitive, first occurrence wins.

    Empty and whitespace-only facts are dropped.
    """
    seen = set()
    deduped = []
    for fact in facts:
        trimmed = fact.strip()
        key = trimmed.casefold()
        if trimmed and key not in seen:
            seen.add(key)
            deduped.append(trimmed)
    return deduped


def split_lines(text: str) -> List[str]:
    """Non-empty, stripped lines of a model reply."""
    return [line.strip() for line in (text or "").splitlines() if line.strip()]


def is_meta(text: str) -> bool:
    """True for reflective output that talks about summarizing or reflecting."""
    lowered = (text or "").lower()
    return any(marker in lowered for marker in META_MARKERS)


def levenshtein(s: str, t: str) -> int:
    """Edit distance between two strings."""
    if not s:
        return len(t or "")
    if not t:
        return len(s)

    previous = list(range(len(t) + 1))
    for i, sc in enumerate(s, start=1):
        current = [i]
        for j, tc in enumerate(t, start=1):
            cost = 0 if sc == tc else 1
            current.append(
                min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
            )
        previous = current
    return previous[-1]


def first_number(text: str) -> str:
    """First number that appears in the text, or "" if there is none."""
    match = _NUMBER_PATTERN.search(text or "")
    return match.group(0) if match else ""


def truncate(text: str, max_length: int) -> str:
    """Truncate to max_length, marking the cut with '...'."""
    if not text or len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."
