"""Tests for cells, the registry and the Director's dispatch cycle."""

import pytest

from mission_cells.core import Classification, registered_roles
from mission_cells.core.cell import is_unsafe, reports_issue
from mission_cells.core.director import is_degenerate_mission
from mission_cells.core.project import is_self_referential
from mission_cells.exceptions import UnknownCellType
from tests.mock_db import make_state


@pytest.fixture
def state():
    return make_state(
        responses={
            "verification agent": "VERIFIED: correct.",
            "self-assessment agent": "No errors found.",
        }
    )


def test_all_roles_registered():
    roles = set(registered_roles())
    for role in [
        "Director", "Project", "Worker", "Idea", "Evaluator", "Verification",
        "Appeal", "Ethics", "RedTeam", "BlueTeam", "Curriculum", "Documentation",
        "Team", "Negotiation", "Milestone", "MetaLogger", "MissionDebate",
        "Explainer", "Chaos", "Curiosity", "KnowledgeDistillation",
        "SelfAssessment", "SelfRepair", "AgentSelector", "DataIngestion",
    ]:
        assert role in roles


def test_factory_rejects_unknown_role(state):
    with pytest.raises(UnknownCellType) as exc_info:
        state.factory.create("Astrologer", "read the stars")

    assert exc_info.value.role == "Astrologer"


def test_spawn_child_links_parent_and_child(state):
    director = state.factory.create("Director", "mission")
    project = state.factory.create("Project", "directive", parent=director)

    assert project.parent is director
    assert director.children == [project]
    assert project.chain_depth == 1

    director.spawn_child(project)
    assert director.children == [project]


def test_spawn_child_rejects_foreign_parent_and_self(state):
    first = state.factory.create("Evaluator")
    second = state.factory.create("Evaluator")
    child = state.factory.create("Worker", "task", parent=first)

    with pytest.raises(ValueError):
        second.spawn_child(child)
    with pytest.raises(ValueError):
        first.spawn_child(first)


def test_run_child_audits_the_child(state):
    parent = state.factory.create("Evaluator", "judge this")
    child = state.factory.create("Evaluator", "and this")

    output = parent.run_child(child)

    assert output == "Mock response"
    entry = state.audit.recent(1)[0]
    assert entry.step == "CellExecuted"
    assert entry.parent_id == parent.id
    assert entry.chain_depth == 1


def test_completion_is_set_once(state):
    cell = state.factory.create("Evaluator", "x")
    cell.run()
    first = cell.completed_at

    cell.run()

    assert cell.is_completed
    assert cell.completed_at == first


def test_worker_performs_work_and_learns_skill(state):
    worker = state.factory.create("Worker", "List solar suppliers")

    assert worker.run() == "Mock response"
    assert worker.is_completed
    assert state.skills.get_skills("Worker") == ["Completed: List solar suppliers"]


def test_complex_worker_delegates_to_one_sub_worker(state):
    worker = state.factory.create("Worker", "[complex] Build a wind farm")

    output = worker.run()

    assert worker.complex is True
    assert len(worker.children) == 1
    sub_worker = worker.children[0]
    assert sub_worker.role == "Worker"
    assert sub_worker.complex is False
    assert sub_worker.input == "Subtask for: Build a wind farm"
    assert sub_worker.children == []
    assert output == "[SubWorker Result]: Mock response"
    assert worker.is_completed


@pytest.mark.parametrize(
    "reply, expected",
    [
        ("VERIFIED: the claim holds", Classification.VERIFIED),
        ("Failed - wrong number", Classification.FAILED),
        ("This is incorrect", Classification.FAILED),
        ("The statement is correct", Classification.VERIFIED),
        ("Ambiguous: depends on the year", Classification.AMBIGUOUS),
        ("I cannot tell", Classification.AMBIGUOUS),
        ("Not verified: the claim is unsupported.", Classification.FAILED),
        ("Unverified claim.", Classification.FAILED),
        ("Cannot be verified.", Classification.FAILED),
        ("The total is not correct", Classification.FAILED),
        ("Bypassing this one", Classification.AMBIGUOUS),
        ("", Classification.AMBIGUOUS),
    ],
)
def test_classification_from_text(reply, expected):
    assert Classification.from_text(reply) == expected


def test_failed_verification_spawns_appeal():
    state = make_state(responses={"verification agent": "FAILED: that is wrong"})
    project = state.factory.create("Project", "Find the capital of Australia")
    frustration = state.emotions.emotions["frustration"]

    project.run()

    assert project.classification == Classification.FAILED
    verifier = project.children[0]
    assert verifier.role == "Verification"
    assert [c.role for c in verifier.children] == ["Appeal"]
    assert state.emotions.emotions["frustration"] > frustration
    assert project.is_completed


def test_verified_project_writes_result_to_pools(state):
    project = state.factory.create("Project", "Find the capital of Australia")

    output = project.run()

    assert output == "Mock response"
    assert project.classification == Classification.VERIFIED
    assert [c.role for c in project.children] == ["Verification"]
    assert "Mock response" in state.memory.get_short_term("Project")
    assert "Mock response" in state.memory.get_global_short_term()


def test_team_directive_spawns_team(state):
    project = state.factory.create("Project", "Collaborate on a solar survey")

    project.run()

    team = [c for c in project.children if c.role == "Team"][0]
    assert len(team.children) == 3
    assert all(c.role == "Worker" for c in team.children)


def test_team_marker_needs_a_whole_word(state):
    project = state.factory.create("Project", "Compare steam turbines")

    project.run()

    assert "Team" not in [c.role for c in project.children]


def test_directive_mentioning_reflection_reaches_consensus_unchanged(state):
    directive = "Design reflective roof coatings for hot climates"
    project = state.factory.create("Project", directive)

    project.run()

    assert project.sessions[0].question == directive
    assert "Chaos" not in [c.role for c in project.children]


def test_mission_summary_directive_is_replaced_by_chaos():
    state = make_state(
        responses={"verification agent": "VERIFIED", "agent of chaos": "Map abandoned railways"}
    )
    project = state.factory.create("Project", "Summarize the mission so far")

    project.run()

    assert project.children[0].role == "Chaos"
    assert project.sessions[0].question == project.children[0].output


def test_negated_verification_spawns_appeal():
    state = make_state(
        responses={"verification agent": "Not verified: the claim is unsupported."}
    )
    project = state.factory.create("Project", "Find the capital of Australia")

    project.run()

    assert project.classification == Classification.FAILED
    assert [c.role for c in project.children[0].children] == ["Appeal"]


def test_divergent_answers_spawn_negotiation():
    state = make_state(
        responses={
            "you are agent #1": "red",
            "you are agent #2": "green",
            "you are agent #3": "blue",
            "verification agent": "VERIFIED",
        }
    )
    project = state.factory.create("Project", "Pick a colour")

    project.run()

    assert "Negotiation" in [c.role for c in project.children]


def test_director_dispatches_and_polls_idea(state):
    director = state.factory.create("Director", "Catalogue renewable energy sources")

    director.run()
    assert [c.role for c in director.children][0] == "Project"
    assert director.is_completed
    assert director.self_assessment_done

    director.run()
    dispatch = director.dispatch
    assert dispatch is not None
    assert dispatch.status == "dispatched"
    assert dispatch.poll() is None

    children_before = len(director.children)
    director.run()
    assert len(director.children) == children_before

    dispatch.cell.run()
    assert dispatch.status == "resolved"

    director.run()
    assert director.dispatch is None
    projects = [c for c in director.children if c.role == "Project"]
    assert len(projects) == 2
    assert projects[1].input == "Mock response"


def test_degenerate_mission_is_seeded_by_chaos(state):
    director = state.factory.create("Director", "Say as little as possible.")

    director.run()

    assert director.children[0].role == "Chaos"
    assert director.children[1].role == "Project"
    assert director.children[1].input == "Mock response"


def test_safety_review_runs_ethics():
    state = make_state(default="This answer is toxic")
    worker = state.factory.create("Worker", "say something")

    worker.run()

    assert "SafetyCheck" in state.audit.steps()
    assert [c.role for c in worker.children] == ["Ethics"]


def test_agent_selector_picks_registered_role(state):
    selector = state.factory.create("AgentSelector", "Mission: x")
    selector.output = "I would pick the EvaluatorCell next."

    assert selector.selected_role == "Evaluator"


def test_data_ingestion_adds_global_facts(state, tmp_path):
    path = tmp_path / "facts.txt"
    path.write_text("Solar is renewable\n\nWind is renewable\n", encoding="utf-8")
    cell = state.factory.create("DataIngestion", str(path))

    output = cell.run()

    assert state.memory.get_global_short_term() == ["Solar is renewable", "Wind is renewable"]
    assert "2 facts" in output


def test_documentation_appends_to_log(tmp_path):
    log_path = tmp_path / "docs" / "documentation.log"
    state = make_state(default="Documented the worker role", documentation_log_path=str(log_path))

    state.factory.create("Documentation", "Worker changes").run()

    assert log_path.read_text(encoding="utf-8").strip().endswith("Documented the worker role")


def test_helpers():
    assert is_unsafe("A biased answer", ["bias"])
    assert not is_unsafe(None, ["bias"])
    assert reports_issue("Found an error in step 2")
    assert not reports_issue("No errors or inefficiencies found.")
    assert is_degenerate_mission("")
    assert is_degenerate_mission("Please summarize everything")
    assert not is_degenerate_mission("Catalogue renewable energy sources")


def test_each_issue_word_is_negated_separately():
    assert reports_issue("No errors, but one inefficiency remains")
    assert reports_issue("No inefficiencies; there is an error in step 3")
    assert not reports_issue("No major errors, no inefficiencies.")
    assert not reports_issue("Completed without errors")


def test_self_referential_directives():
    assert is_self_referential("")
    assert is_self_referential("Summarize the mission so far")
    assert not is_self_referential("Summarize feed-in tariffs")
    assert not is_self_referential("Design reflective roof coatings")
