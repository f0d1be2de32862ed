#!/usr/bin/env python3
"""
Interactive demo for the mission cell engine.

Demonstrates:
1. Bootstrapping a Director and running scheduler ticks
2. Multi-agent consensus with typed answers
3. Tiered memory compaction
4. Mission changes, history and rollback
5. Live control: hot swap and snapshots

Runs against a scripted mock model by default; pass --live to use an
OpenAI-compatible endpoint (MISSION_CELLS_ENDPOINT / MISSION_CELLS_MODEL).
"""

import argparse
import logging

from mission_cells import EngineConfig, EngineState, Machine
from mission_cells.models import ConsensusType, RetrievalMode
from mission_cells.utils import MockProvider


def print_header(title: str) -> None:
    """Print a formatted header."""
    print("\n" + "=" * 60)
    print(f"  {title}")
    print("=" * 60)


def print_section(title: str) -> None:
    """Print a section header."""
    print(f"\n--- {title} ---")


def scripted_provider() -> MockProvider:
    """Mock model with just enough behaviour to drive every cell type."""
    return MockProvider(
        responses={
            "verification agent": "VERIFIED: the result answers the directive.",
            "mission debate judge": "Accept: it is more concrete.",
            "memory slice for agent": "Catalogue three renewable energy sources and compare their costs.",
            "single word that is the answer": "Paris",
            "output either 'true' or 'false'": "True",
            "score relevance 0-10": "7",
            "self-assessment agent": "No errors or inefficiencies found.",
        },
        default="Collected notes on renewable energy sources.",
    )


def build_state(live: bool, data_dir: str) -> EngineState:
    config = EngineConfig.from_env(
        data_dir=data_dir,
        initial_mission="Compare renewable energy sources",
        sub_agent_count=3,
        reflection_count=3,
        tick_delay=0.0,
        retry_backoff=0.0,
    )
    provider = None if live else scripted_provider()
    return EngineState.create(config=config, provider=provider)


def demo_ticks(machine: Machine, ticks: int) -> None:
    """Demo: Bootstrap and run a few ticks."""
    print_header("Demo 1: Scheduler Ticks")

    machine.bootstrap()
    machine.run(max_ticks=ticks)

    status = machine.status()
    print(f"\nMission: {status['mission']}")
    print(f"Ticks run: {status['tick']}")
    print_section("Active Cells")
    for cell in status["active_cells"]:
        state = "completed" if cell["completed"] else "active"
        print(f"  {cell['role']:<14} {cell['id'][:8]}  {state}  children={cell['children']}")


def demo_consensus(state: EngineState) -> None:
    """Demo: Typed consensus across sub-agents."""
    print_header("Demo 2: Consensus")

    session = state.consensus.run(
        "What is the capital of France?",
        system_prompt="Answer with a single word.",
        consensus_type=ConsensusType.WORD,
        retrieval_mode=RetrievalMode.MODEL_ONLY,
    )
    for responder in session.responders:
        print(f"  Agent {responder.index + 1}: {responder.answer}")
    print(f"\n  Consensus ({session.consensus_type.value}): {session.result}")

    session = state.consensus.run(
        "Is the statement true: water boils at 100C at sea level?",
        consensus_type=ConsensusType.BOOL,
        retrieval_mode=RetrievalMode.HYBRID,
    )
    print(f"  Consensus ({session.consensus_type.value}): {session.result}")


def demo_memory(state: EngineState) -> None:
    """Demo: Short-term overflow distilled into long-term memory."""
    print_header("Demo 3: Memory Compaction")

    for i in range(8):
        state.memory.add_fact("Demo", f"Observation {i + 1} about solar panel efficiency")
    state.memory.compact("Demo", max_short_term=3)

    print_section("Short-term")
    for fact in state.memory.get_short_term("Demo"):
        print(f"  - {fact}")
    print_section("Long-term")
    for fact in state.memory.get_long_term("Demo"):
        print(f"  - {fact}")
    print(f"\nStats: {state.memory.get_stats()}")


def demo_mission(machine: Machine) -> None:
    """Demo: Operator mission changes and rollback."""
    print_header("Demo 4: Mission History")

    original = machine.state.mission.current
    machine.set_mission("Design a community solar co-op for a small town")
    print(f"  Mission set to: {machine.state.mission.current}")

    for line in machine.state.mission.history_summary():
        print(f"  {line}")

    last = len(machine.state.mission.history) - 1
    machine.rollback_mission(last)
    print(f"\n  Rolled back to: {machine.state.mission.current}")
    print(f"  Matches the original: {machine.state.mission.current == original}")

    print(f"  Invalid rollback accepted: {machine.rollback_mission(99)}")


def demo_control(machine: Machine) -> None:
    """Demo: Hot swap and snapshots."""
    print_header("Demo 5: Live Control")

    worker = machine.create_agent("Worker", "List three wind turbine suppliers")
    swapped = machine.hot_swap(worker.id, "Evaluator")
    print(f"  Swapped {worker.agent_name} for {swapped.agent_name} (input kept: {swapped.input!r})")

    snapshot = machine.snapshot()
    machine.state.memory.add_fact("Demo", "A fact added after the snapshot")
    machine.restore(snapshot)
    print(f"  Short-term restored: {machine.snapshot() == snapshot}")


def main():
    """Run all demos."""
    parser = argparse.ArgumentParser(description="Mission cell engine demo")
    parser.add_argument("--live", action="store_true", help="Use a real completion endpoint")
    parser.add_argument("--ticks", type=int, default=3, help="Scheduler ticks to run")
    parser.add_argument("--data-dir", default="./demo_data", help="Where state is persisted")
    parser.add_argument("--verbose", action="store_true", help="Show engine logs")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("\n" + "=" * 60)
    print("  Mission Cells - Interactive Demo")
    print("=" * 60)

    try:
        state = build_state(args.live, args.data_dir)
        machine = Machine(state)

        demo_ticks(machine, args.ticks)
        demo_consensus(state)
        demo_memory(state)
        demo_mission(machine)
        demo_control(machine)

        print_header("Demo Complete!")
        print(f"\nAudit entries recorded: {len(state.audit)}")

    except Exception as e:
        print(f"\nError during demo: {e}")
        import traceback

        traceback.print_exc()


if __name__ == "__main__":
    main()
