"""Timezone-aware datetime utilities and the compressed-blob tag."""

import re
from datetime import datetime, timezone
from typing import Optional, Tuple

from dateutil import parser as date_parser

COMPRESSED_PREFIX = "[COMPRESSED"

_TAG_PATTERN = re.compile(r"^\s*\[COMPRESSED(?:\|([^\]]*))?\]\s*")


def now_utc() -> datetime:
    """Get current UTC time."""
    return datetime.now(timezone.utc)


def parse_datetime(dt_str: str) -> Optional[datetime]:
    """Parse a datetime string to a timezone-aware datetime, or None."""
    if not dt_str:
        return None

    try:
        parsed = date_parser.parse(dt_str)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    except (ValueError, TypeError, OverflowError):
        return None


def format_datetime(dt: datetime, format_str: str = "%Y-%m-%d %H:%M:%S") -> str:
    """Format a datetime to a string."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.strftime(format_str)


def compressed_tag(timestamp: Optional[datetime] = None) -> str:
    """Build the `[COMPRESSED|<iso>]` prefix for a long-term blob."""
    timestamp = timestamp or now_utc()
    return f"[COMPRESSED|{timestamp.isoformat()}]"


def tag_fact(fact: str, timestamp: Optional[datetime] = None) -> str:
    """Prefix a fact with a fresh compressed tag, replacing any existing tag."""
    _, body = split_compressed_tag(fact)
    return f"{compressed_tag(timestamp)} {body}"


def split_compressed_tag(fact: str) -> Tuple[Optional[str], str]:
    """
    Split a long-term fact into (raw tag timestamp, body).

    Returns (None, fact) when the fact carries no tag; the timestamp part is
    "" for a bare `[COMPRESSED]` tag.
    """
    match = _TAG_PATTERN.match(fact)
    if not match:
        return None, fact.strip()
    return match.group(1) or "", fact[match.end():].strip()


def compressed_at(fact: str) -> Optional[datetime]:
    """Timestamp carried by a compressed tag, or None if absent/unparsable."""
    raw, _ = split_compressed_tag(fact)
    if not raw:
        return None
    return parse_datetime(raw)


def is_fresh_compressed(
    fact: str, window_seconds: float, now: Optional[datetime] = None
) -> bool:
    """True when the fact is tagged and younger than the recompression window."""
    stamp = compressed_at(fact)
    if stamp is None:
        return False
    age = ((now or now_utc()) - stamp).total_seconds()
    return age < window_seconds
