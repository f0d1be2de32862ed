"""Tests for config loading and text/datetime helpers."""

from datetime import datetime, timezone

import pytest

from mission_cells.config import EngineConfig
from mission_cells.utils import (
    compressed_at,
    dedupe_facts,
    first_number,
    is_fresh_compressed,
    is_meta,
    levenshtein,
    split_compressed_tag,
    tag_fact,
    truncate,
)


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("MISSION_CELLS_MODEL", "env-model")
    monkeypatch.setenv("MISSION_CELLS_SUB_AGENTS", "7")

    config = EngineConfig.from_env(tick_delay=0.0)

    assert config.model == "env-model"
    assert config.sub_agent_count == 7
    assert config.tick_delay == 0.0
    assert config.majority == 3


def test_config_rejects_unknown_override():
    with pytest.raises(ValueError):
        EngineConfig.from_env(not_a_field=1)


def test_tag_fact_replaces_existing_tag():
    first = datetime(2024, 1, 1, tzinfo=timezone.utc)
    second = datetime(2024, 6, 1, tzinfo=timezone.utc)

    tagged = tag_fact("Solar is cheap", first)
    retagged = tag_fact(tagged, second)

    assert tagged == "[COMPRESSED|2024-01-01T00:00:00+00:00] Solar is cheap"
    assert split_compressed_tag(retagged) == ("2024-06-01T00:00:00+00:00", "Solar is cheap")
    assert compressed_at(retagged) == second


def test_untagged_and_bare_tags_are_never_fresh():
    now = datetime(2024, 1, 1, 0, 30, tzinfo=timezone.utc)

    assert split_compressed_tag("[COMPRESSED] old blob") == ("", "old blob")
    assert not is_fresh_compressed("[COMPRESSED] old blob", 3600, now)
    assert not is_fresh_compressed("plain fact", 3600, now)
    assert not is_fresh_compressed("[COMPRESSED|garbage] blob", 3600, now)
    assert is_fresh_compressed(
        "[COMPRESSED|2024-01-01T00:00:00+00:00] blob", 3600, now
    )


def test_text_helpers():
    assert dedupe_facts([" A ", "a", "", "b"]) == ["A", "b"]
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert first_number("about 3.5 units") == "3.5"
    assert first_number("none") == ""
    assert is_meta("Let me summarize")
    assert not is_meta("Build a wind farm")
    assert truncate("abcdefghij", 6) == "abc..."
