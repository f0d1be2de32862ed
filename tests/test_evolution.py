"""Tests for mission state, history and the reflection concert."""

import pytest

from mission_cells.core import MissionState, ReflectionConcert
from mission_cells.core.evolution import needs_chaos
from mission_cells.core.mission import (
    format_word_diff,
    is_meaningful_change,
    reflection_slices,
    select_best_proposal,
    word_diff,
)
from mission_cells.exceptions import InvalidRollbackIndex
from tests.mock_db import MockMappingStore, make_state

PROPOSAL = (
    "Build an open dataset comparing the lifetime cost and output of solar, "
    "wind and hydro power"
)


def test_meaningful_change():
    mission = "Catalogue renewable energy sources"

    assert not is_meaningful_change(mission, mission.upper())
    assert not is_meaningful_change(mission, "Catalogue renewable energy resources")
    assert is_meaningful_change(mission, PROPOSAL)


def test_meaningful_change_scales_with_mission_length():
    mission = "x" * 400
    assert not is_meaningful_change(mission, "x" * 370)
    assert is_meaningful_change(mission, "x" * 360)


def test_select_best_proposal():
    assert select_best_proposal(["short", "a longer one", " short "]) == "short"
    assert select_best_proposal(["short", "the longest proposal", "medium one"]) == (
        "the longest proposal"
    )
    with pytest.raises(ValueError):
        select_best_proposal([])


def test_reflection_slices_last_absorbs_remainder():
    facts = [f"f{i}" for i in range(7)]

    slices = reflection_slices(facts, 3)

    assert slices == [["f0", "f1"], ["f2", "f3"], ["f4", "f5", "f6"]]


def test_reflection_slices_may_be_empty():
    slices = reflection_slices(["a", "b"], 5)

    assert slices == [["a"], ["b"], [], [], []]
    assert reflection_slices([], 3) == [[], [], []]


def test_word_diff():
    diff = word_diff("explore solar power", "explore wind power today")

    assert diff == [("=", "explore"), ("-", "solar"), ("+", "wind"), ("=", "power"), ("+", "today")]
    assert format_word_diff(diff) == "explore [-solar-] {+wind+} power {+today+}"


def test_needs_chaos():
    mission = "Catalogue renewable energy sources"

    assert needs_chaos(mission, [])
    assert needs_chaos(mission, ["Catalogue renewable energy source", "Please reflect on it"])
    assert not needs_chaos(mission, [PROPOSAL])


def test_rollback_restores_mission_byte_for_byte():
    store = MockMappingStore()
    mission = MissionState(store, initial_mission="  Original mission, with punctuation!  ")
    original = mission.current

    mission.commit("Second mission", ["because"])
    mission.commit("Third mission", ["again"])

    assert mission.rollback(0) == original
    assert mission.current == original
    assert len(mission.history) == 2

    reloaded = MissionState(store)
    reloaded.load()
    assert reloaded.current == original
    assert [r.new_mission for r in reloaded.history] == ["Second mission", "Third mission"]
    assert reloaded.history[0].rationales == ("because",)


def test_rollback_rejects_invalid_index():
    mission = MissionState(initial_mission="Only mission")

    with pytest.raises(InvalidRollbackIndex):
        mission.rollback(0)
    with pytest.raises(InvalidRollbackIndex):
        mission.rollback(-1)
    assert mission.current == "Only mission"


def test_set_without_rationale_is_not_recorded():
    mission = MissionState()

    mission.set("Bootstrapped mission")
    assert mission.history == []

    mission.set("Operator mission", rationale="operator")
    assert len(mission.history) == 1
    assert mission.history_summary()[0].startswith("[0] ")


def test_concert_commits_majority_proposal():
    state = make_state(
        responses={
            "memory slice for agent": PROPOSAL,
            "mission debate judge": "Accept: it is more concrete",
        }
    )
    old = state.mission.current
    pride = state.emotions.emotions["pride"]

    changed = ReflectionConcert(state).run()

    assert changed is True
    assert state.mission.current == PROPOSAL
    record = state.mission.history[-1]
    assert record.old_mission == old
    assert record.rationales == (PROPOSAL,) * 3

    steps = state.audit.steps()
    assert steps.count("Reflection") == 3
    assert steps.count("MissionDebateAccepted") == 3
    assert "MissionChanged" in steps
    assert "MissionRedirection" in steps
    assert state.emotions.emotions["pride"] > pride


def test_concert_without_majority_keeps_mission():
    state = make_state(
        responses={
            "memory slice for agent 1:": PROPOSAL,
            "memory slice for agent": "No change needed.",
            "mission debate judge": "Reject: not needed",
        }
    )
    old = state.mission.current

    changed = ReflectionConcert(state).run()

    assert changed is False
    assert state.mission.current == old
    assert state.mission.history == []
    assert state.audit.steps().count("MissionDebateRejected") == 1


def test_concert_injects_chaos_when_proposals_are_stale():
    state = make_state(
        responses={
            "memory slice for agent": "No change needed.",
            "agent of chaos": "Map every abandoned railway line in Europe for bike paths",
        }
    )

    changed = ReflectionConcert(state).run()

    assert changed is False
    assert "ChaosCell" in [e.agent_name for e in state.audit.load_all()]
    assert state.audit.steps().count("MissionDebateRejected") + state.audit.steps().count(
        "MissionDebateAccepted"
    ) == 1


def test_concert_memory_pool_falls_back_to_director_pool():
    state = make_state()
    state.memory.add_fact("Director", "Director fact")

    assert ReflectionConcert(state).memory_pool() == ["Director fact"]

    state.memory.add_global_fact("Global fact")
    assert ReflectionConcert(state).memory_pool() == ["Global fact"]
