"""Tests for the two-tier memory store."""

import json
from datetime import timedelta

import pytest

from mission_cells.exceptions import MalformedProposal
from mission_cells.storage import MemoryStore
from mission_cells.storage.memory_store import parse_score
from mission_cells.utils import (
    CompletionClient,
    MockProvider,
    compressed_at,
    compressed_tag,
    now_utc,
    split_compressed_tag,
)
from tests.mock_db import MockMappingStore


def make_memory(responses=None, default="Distilled summary", store=None):
    client = CompletionClient(
        MockProvider(responses=responses, default=default),
        endpoint="http://localhost:1234/v1",
        model="test-model",
        retry_backoff=0.0,
    )
    return MemoryStore(client, store=store)


@pytest.fixture
def memory():
    return make_memory()


def test_compaction_keeps_first_facts_and_tags_overflow(memory):
    """15 facts with max_short_term=3 leave 3 short-term and a tagged blob."""
    facts = [f"Fact number {i}" for i in range(15)]
    for fact in facts:
        memory.add_fact("Project", fact)

    memory.compact("Project", max_short_term=3)

    assert memory.get_short_term("Project") == facts[:3]
    long_term = memory.get_long_term("Project")
    assert len(long_term) >= 1
    assert compressed_at(long_term[0]) is not None
    assert memory.compression_mapping[long_term[0]] == facts[3:]


def test_compaction_deduplicates_case_insensitively(memory):
    for fact in ["Solar is cheap", "  solar is CHEAP ", "Wind is variable", ""]:
        memory.add_fact("Worker", fact)

    memory.compact("Worker", max_short_term=5)

    assert memory.get_short_term("Worker") == ["Solar is cheap", "Wind is variable"]
    assert memory.get_long_term("Worker") == []


def test_compaction_falls_back_to_joined_facts_when_distillation_is_empty():
    memory = make_memory(default="")
    for fact in ["a", "b", "c", "d"]:
        memory.add_fact("Idea", fact)

    memory.compact("Idea", max_short_term=2)

    _, body = split_compressed_tag(memory.get_long_term("Idea")[0])
    assert body == "c; d"


def test_compaction_is_idempotent(memory):
    for fact in [f"Fact number {i}" for i in range(8)] + ["fact NUMBER 2", ""]:
        memory.add_fact("Project", fact)

    memory.compact("Project", max_short_term=3)
    short_term = memory.get_short_term("Project")
    long_term = memory.get_long_term("Project")

    memory.compact("Project", max_short_term=3)

    assert memory.get_short_term("Project") == short_term
    assert memory.get_long_term("Project") == long_term


def test_compaction_of_unknown_key_is_noop(memory):
    memory.compact("Nobody")

    assert "Nobody" not in memory.short_term
    assert "Nobody" not in memory.long_term


def test_compress_long_term_replaces_stale_facts():
    memory = make_memory(responses={"memory compressor": "Merged fact one\nMerged fact two"})
    now = now_utc()
    fresh = f"{compressed_tag(now - timedelta(minutes=5))} Recently compressed"
    memory.set_long_term("Project", [fresh] + [f"Old fact {i}" for i in range(12)])

    changed = memory.compress_long_term("Project", max_blobs=10, now=now)

    assert changed is True
    long_term = memory.get_long_term("Project")
    assert long_term[0] == fresh
    assert [split_compressed_tag(f)[1] for f in long_term[1:]] == [
        "Merged fact one",
        "Merged fact two",
    ]
    assert all(compressed_at(f) == now for f in long_term[1:])


def test_compress_long_term_within_budget_is_noop(memory):
    memory.set_long_term("Project", ["one", "two"])

    assert memory.compress_long_term("Project", max_blobs=10) is False
    assert memory.get_long_term("Project") == ["one", "two"]


def test_compress_long_term_keeps_facts_on_empty_reply():
    memory = make_memory(default="")
    facts = [f"Old fact {i}" for i in range(5)]
    memory.set_long_term("Project", facts)

    assert memory.compress_long_term("Project", max_blobs=2) is False
    assert memory.get_long_term("Project") == facts


def test_stale_tagged_blobs_are_eligible_again():
    memory = make_memory(responses={"memory compressor": "Merged"})
    now = now_utc()
    stale = f"{compressed_tag(now - timedelta(hours=2))} Stale blob"
    memory.set_long_term("Director", [stale, "raw fact"])

    assert memory.compress_long_term("Director", max_blobs=1, now=now) is True
    assert memory.get_long_term("Director") == [f"{compressed_tag(now)} Merged"]


def test_search_relevant_orders_by_score():
    def score(messages):
        return "9" if "solar" in messages[-1]["content"].lower() else "2"

    memory = make_memory(responses={"score relevance": score})
    memory.add_fact("Project", "Wind turbines need maintenance")
    memory.add_fact("Project", "Solar output peaks at noon")
    memory.add_long_term("Project", "Solar panels degrade slowly")

    results = memory.search_relevant("Project", "energy output", max_results=2)

    assert results == ["Solar output peaks at noon", "Solar panels degrade slowly"]


def test_unparsable_scores_count_as_zero():
    memory = make_memory(responses={"score relevance": "very relevant"})
    scored = memory.score_facts("query", ["a", "b"])

    assert scored == [("a", 0), ("b", 0)]


def test_promote_to_shortterm_copies_long_term_facts():
    memory = make_memory(responses={"score relevance": "5"})
    memory.set_long_term("Global", ["fact one", "fact two", "fact three"])

    promoted = memory.promote_to_shortterm("Global", "mission", max_to_load=2)

    assert promoted == ["fact one", "fact two"]
    assert memory.get_global_short_term() == ["fact one", "fact two"]


def test_parse_score():
    assert parse_score("7") == 7
    assert parse_score("Score: 12/10") == 10
    assert parse_score("-3") == 0
    with pytest.raises(MalformedProposal):
        parse_score("seven")


def test_snapshot_is_a_deep_copy(memory):
    memory.add_fact("Worker", "before")
    snapshot = memory.snapshot_short_term()
    memory.add_fact("Worker", "after")

    assert snapshot == {"Worker": ["before"]}

    memory.restore_short_term(snapshot)
    assert memory.get_short_term("Worker") == ["before"]


def test_save_and_load():
    store = MockMappingStore()
    memory = make_memory(store=store)
    memory.add_fact("Project", "kept fact")
    memory.add_long_term("Project", "long fact")
    memory.save()

    reloaded = make_memory(store=store)
    reloaded.load()

    assert reloaded.get_short_term("Project") == ["kept fact"]
    assert reloaded.get_long_term("Project") == ["long fact"]


def test_export_and_import_state_through_another_backend(memory):
    backup = MockMappingStore()
    memory.add_fact("Project", "kept fact")
    memory.add_long_term("Project", "long fact")
    memory.compression_mapping["long fact"] = ["raw a", "raw b"]

    memory.export_state(backup)
    restored = make_memory()
    restored.add_fact("Worker", "stale fact")
    restored.import_state(backup)

    assert restored.short_term == {"Project": ["kept fact"]}
    assert restored.get_long_term("Project") == ["long fact"]
    assert restored.compression_mapping == {"long fact": ["raw a", "raw b"]}


def test_import_state_from_empty_backend_clears_tiers(memory):
    memory.add_fact("Project", "fact")

    memory.import_state(MockMappingStore())

    assert memory.short_term == {}
    assert memory.long_term == {}


def test_export_analytics(memory, tmp_path):
    memory.add_fact("Project", "a")
    memory.add_fact("Project", "b")
    memory.add_long_term("Worker", "c")
    path = tmp_path / "exports" / "analytics.json"

    analytics = memory.export_analytics(str(path))

    assert analytics["short_term"] == {"Project": 2}
    assert analytics["long_term"] == {"Worker": 1}
    assert json.loads(path.read_text(encoding="utf-8")) == analytics


def test_get_stats(memory):
    for i in range(5):
        memory.add_fact("Project", f"fact {i}")
    memory.compact("Project", max_short_term=3)

    stats = memory.get_stats()

    assert stats["short_term_facts"] == 3
    assert stats["long_term_facts"] == 1
    assert stats["compressed_blobs"] == 1


def test_clean_long_term_merges_over_budget_facts():
    memory = make_memory(responses={"memory cleaner": "Merged A\nMerged B\nMerged C"})
    memory.set_long_term("Project", [f"fact {i}" for i in range(6)])

    memory.clean_long_term("Project", max_count=2)

    assert memory.get_long_term("Project") == ["Merged A", "Merged B"]
