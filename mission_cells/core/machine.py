"""The Machine: tick scheduler over the active set of cells."""

import json
import logging
import os
import threading
import traceback
import weakref
from typing import Any, Dict, List, Optional

from ..exceptions import InvalidRollbackIndex
from ..models import AuditEntry
from ..prompts import BOOTSTRAP_PROMPT, BOOTSTRAP_SYSTEM_PROMPT
from ..storage import MappingStore
from .cell import Cell
from .director import DirectorCell, IdeaDispatch
from .evolution import ReflectionConcert
from .state import EngineState

logger = logging.getLogger(__name__)

JOY_PER_TICK = 0.1
RECENT_EVENTS = 10


class Machine:
    """
    Drives cells tick by tick.

    The active set always holds exactly one Director after a tick. Control
    calls (create_agent, hot_swap, set_mission, ...) share a lock with
    tick(), so they land between ticks, never during one.
    """

    def __init__(self, state: EngineState):
        self.state = state
        self.active: List[Cell] = []
        self.tick_count = 0
        self.concert = ReflectionConcert(state)
        self._stop = threading.Event()
        self._lock = threading.RLock()
        self._running = False

    # --- Lifecycle ---

    def bootstrap(self) -> None:
        """Load persisted state, make sure a mission exists and seed a Director."""
        state = self.state
        with self._lock:
            state.mission.load()
            state.memory.load()
            state.skills.load()
            state.audit.load()

            if not state.mission.current.strip():
                logger.info("No mission found; bootstrapping with the model")
                first = state.completion.query(
                    BOOTSTRAP_SYSTEM_PROMPT, BOOTSTRAP_PROMPT, temperature=0.3
                )
                state.mission.set(first.strip())

            if not state.mission.current.strip():
                curiosity = state.factory.create("Curiosity")
                answer = (curiosity.run() or "").strip()
                state.audit.record_cell(curiosity)
                state.mission.set(answer)
                logger.info("Curiosity set mission: %s", answer)

            if not self.directors():
                self.active.append(state.factory.create("Director", state.mission.current))
            logger.info("Machine bootstrapped with mission: %s", state.mission.current)

    def run(self, max_ticks: Optional[int] = None) -> int:
        """
        Tick until stop() is called (or max_ticks ticks have run).

        Returns:
            Number of ticks run

        Raises:
            Exception: Any unrecovered tick failure, after it is logged and
                recorded as a MachineCrash audit entry
        """
        self._stop.clear()
        self._running = True
        if not self.active:
            self.bootstrap()

        ticks = 0
        try:
            while not self._stop.is_set():
                self.tick()
                ticks += 1
                if max_ticks is not None and ticks >= max_ticks:
                    break
                self._stop.wait(self.state.config.tick_delay)
        except Exception as e:
            logger.exception("Machine crashed on tick %d", self.tick_count)
            self.state.audit.record(
                AuditEntry(
                    step="MachineCrash",
                    agent_name="Machine",
                    role="Machine",
                    question=self.state.mission.current,
                    answer=f"{type(e).__name__}: {e}",
                    safety_notes=traceback.format_exc(),
                )
            )
            self.state.audit.flush()
            raise
        finally:
            self._running = False

        self.persist()
        logger.info("Machine stopped after %d tick(s)", ticks)
        return ticks

    def stop(self) -> None:
        """Ask run() to return after the current tick."""
        self._stop.set()

    @property
    def running(self) -> bool:
        return self._running

    # --- Tick ---

    def tick(self) -> bool:
        """
        Run one full tick.

        Returns:
            True if the mission changed during the tick
        """
        with self._lock:
            state = self.state
            config = state.config
            memory = state.memory
            self.tick_count += 1

            # Heavy compaction, persisted and reloaded
            for key in memory.short_term_keys():
                memory.compact(key, config.heavy_max_short_term, config.max_long_term)
            memory.save()
            memory.load()

            memory.compress_all_long_term(config.max_long_term_blobs)

            logger.info("Tick %d: %d active cell(s)", self.tick_count, len(self.active))

            spawned, still_active = self._run_active_cells()
            for cell in spawned:
                parent = cell.parent
                logger.info(
                    "Spawned %s (%s) under %s",
                    cell.agent_name,
                    cell.id,
                    parent.agent_name if parent is not None else None,
                )
            if not spawned:
                logger.info("No new cells spawned this tick")

            self._update_active_set(still_active)

            if state.emotions.exceeds(config.emotion_thresholds):
                for director in self.directors():
                    if not director.is_completed:
                        logger.info("Emotion thresholds exceeded; running self-assessment")
                        director.assess()

            changed = self.concert.run()
            if changed:
                logger.info("Mission changed and saved: %s", state.mission.current)

            self._reflect()

            self.persist()
            return changed

    def _run_active_cells(self):
        """Run eligible cells in order; return (spawned this tick, active children)."""
        state = self.state
        config = state.config
        spawned: List[Cell] = []
        still_active: List[Cell] = []

        for cell in list(self.active):
            if isinstance(cell, DirectorCell) or not cell.is_completed:
                before = len(cell.children)
                cell.run()
                spawned.extend(cell.children[before:])
                state.audit.record_cell(cell, "CellExecuted")

                if cell.output and cell.output.strip():
                    state.memory.add_fact(cell.role, cell.output)
                    state.memory.compact(cell.role, config.max_short_term, config.max_long_term)

            for child in cell.children:
                if not child.is_completed and not _contains(still_active, child):
                    still_active.append(child)

        return spawned, still_active

    def _update_active_set(self, still_active: List[Cell]) -> None:
        self.active = [
            c for c in self.active if isinstance(c, DirectorCell) or not c.is_completed
        ]
        for cell in still_active:
            if not _contains(self.active, cell):
                self.active.append(cell)
        self._ensure_single_director()

    def _ensure_single_director(self) -> None:
        directors = self.directors()
        if not directors:
            director = self.state.factory.create("Director", self.state.mission.current)
            self.active.insert(0, director)
            logger.info("Director missing; created %s", director.id)
        elif len(directors) > 1:
            keep = directors[0]
            self.active = [
                c for c in self.active if not isinstance(c, DirectorCell) or c is keep
            ]
            logger.warning("Dropped %d extra Director(s)", len(directors) - 1)

    def _reflect(self) -> None:
        """Milestone and MetaLogger every tick, Curriculum every Nth tick."""
        state = self.state
        recent = "\n".join(
            f"{e.step}: {e.agent_name} - {e.answer}"
            for e in state.audit.recent(RECENT_EVENTS)
        )

        milestone = state.factory.create(
            "Milestone", f"Mission: {state.mission.current}\nRecent events: {recent}"
        )
        milestone.run()
        state.audit.record_cell(milestone)

        state.emotions.spread("joy", JOY_PER_TICK, self.active)
        state.emotions.record_history()

        meta_logger = state.factory.create("MetaLogger", recent)
        meta_logger.run()
        state.audit.record_cell(meta_logger)

        if self.tick_count % state.config.curriculum_every == 0:
            for director in self.directors():
                if not director.is_completed:
                    curriculum = state.factory.create(
                        "Curriculum",
                        f"Learning plan for mission: {state.mission.current}",
                        parent=director,
                    )
                    director.run_child(curriculum)

    def persist(self) -> None:
        self.state.memory.save()
        self.state.skills.save()
        self.state.audit.flush()

    def directors(self) -> List[DirectorCell]:
        return [c for c in self.active if isinstance(c, DirectorCell)]

    # --- Control surface ---

    def create_agent(self, role: str, input: str = "") -> Cell:
        """
        Add a new cell to the active set.

        A new Director replaces the current one.
        """
        with self._lock:
            cell = self.state.factory.create(role, input)
            if isinstance(cell, DirectorCell):
                self.active = [c for c in self.active if not isinstance(c, DirectorCell)]
                self.active.insert(0, cell)
            else:
                self.active.append(cell)
            self.state.audit.record_cell(cell, "AgentCreated")
            logger.info("Created %s (%s)", cell.agent_name, cell.id)
            return cell

    def hot_swap(self, old_id: str, new_role: str) -> Optional[Cell]:
        """
        Replace an active cell with a new cell of another role.

        The new cell takes over the old cell's input, children and parent,
        including its slot in the parent's children and any Idea dispatch
        handle pointing at it. The old cell is detached and never scheduled
        again.

        Returns:
            The new cell, or None if no active cell has old_id
        """
        with self._lock:
            index = next((i for i, c in enumerate(self.active) if c.id == old_id), None)
            if index is None:
                logger.warning("Hot swap: no active cell with id %s", old_id)
                return None

            old = self.active[index]
            new = self.state.factory.create(new_role, old.input)
            new.children = list(old.children)
            for child in new.children:
                child._parent_ref = weakref.ref(new)
            parent = old.parent
            if parent is not None:
                new._parent_ref = weakref.ref(parent)
                slot = next(i for i, c in enumerate(parent.children) if c is old)
                parent.children[slot] = new
                if isinstance(parent, DirectorCell) and parent.dispatch is not None:
                    if parent.dispatch.cell is old:
                        parent.dispatch = IdeaDispatch(new)
            old._parent_ref = None
            self.active[index] = new
            self._ensure_single_director()

            if old.version != new.version:
                logger.info("Upgrading agent from v%s to v%s", old.version, new.version)
            self.state.audit.record(
                AuditEntry(
                    step="HotSwap",
                    agent_name=new.agent_name,
                    role=new.role,
                    question=old.id,
                    answer=new.id,
                    parent_id=new.parent.id if new.parent is not None else None,
                    chain_depth=new.chain_depth,
                )
            )
            logger.info(
                "Swapped %s (%s) with %s (%s)", old.agent_name, old.id, new.agent_name, new.id
            )
            return new

    def set_mission(self, mission: str) -> None:
        with self._lock:
            old = self.state.mission.current
            self.state.mission.set(mission, rationale="Set by operator")
            self.state.audit.record(
                AuditEntry(
                    step="MissionSet",
                    agent_name="Machine",
                    role="Director",
                    question=old,
                    answer=mission,
                )
            )

    def snapshot(self) -> Dict[str, List[str]]:
        """Deep copy of short-term memory."""
        with self._lock:
            return self.state.memory.snapshot_short_term()

    def restore(self, snapshot: Dict[str, List[str]]) -> None:
        with self._lock:
            self.state.memory.restore_short_term(snapshot)

    def rollback_mission(self, index: int) -> bool:
        """
        Restore the mission replaced by history entry `index`.

        Returns:
            False (with a warning) for an invalid index
        """
        with self._lock:
            try:
                restored = self.state.mission.rollback(index)
            except InvalidRollbackIndex as e:
                logger.warning("%s", e)
                return False

            self.state.audit.record(
                AuditEntry(
                    step="MissionRollback",
                    agent_name="Machine",
                    role="Director",
                    question=str(index),
                    answer=restored,
                )
            )
            return True

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "running": self._running,
                "tick": self.tick_count,
                "mission": self.state.mission.current,
                "active_cells": [
                    {
                        "id": c.id,
                        "role": c.role,
                        "completed": c.is_completed,
                        "children": len(c.children),
                    }
                    for c in self.active
                ],
                "memory": self.state.memory.get_stats(),
                "agent_profile": self.state.memory.agent_profile(),
                "skills": self.state.skills.analytics(),
                "emotions": self.state.emotions.snapshot(),
                "motivation": self.state.emotions.motivation,
                "mission_history": self.state.mission.history_summary(),
            }

    # --- Export ---

    def export_hierarchy(self, path: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Flatten every cell tree reachable from the active set, depth first.

        Roots are active cells without a parent. Each node lists its
        children's ids, so the tree can be rebuilt from the flat list.
        """
        with self._lock:
            nodes: List[Dict[str, Any]] = []
            seen = set()

            def visit(cell: Cell) -> None:
                if cell.id in seen:
                    return
                seen.add(cell.id)
                parent = cell.parent
                nodes.append(
                    {
                        "id": cell.id,
                        "role": cell.role,
                        "input": cell.input,
                        "output": cell.output,
                        "parent_id": parent.id if parent is not None else None,
                        "completed": cell.is_completed,
                        "children": [child.id for child in cell.children],
                    }
                )
                for child in cell.children:
                    visit(child)

            for cell in self.active:
                if cell.parent is None:
                    visit(cell)

        if path:
            _write_json(path, nodes)
            logger.info("Agent hierarchy exported to %s", path)
        return nodes

    def export_trace(self, path: Optional[str] = None) -> Dict[str, Any]:
        """Audit log, both memory tiers and emotion history in one document."""
        with self._lock:
            memory = self.state.memory
            return self.state.audit.export_trace(
                path,
                short_term_memory=memory.snapshot_short_term(),
                long_term_memory={k: memory.get_long_term(k) for k in memory.long_term_keys()},
                emotion_history=list(self.state.emotions.history),
            )

    def export_state(self, target: MappingStore) -> None:
        """Copy memory, mission and mission history into another backend."""
        with self._lock:
            self.state.memory.export_state(target)
            self.state.mission.save(target)
            logger.info("System state exported")

    def import_state(self, source: MappingStore) -> None:
        """Replace memory, mission and mission history from another backend."""
        with self._lock:
            self.state.memory.import_state(source)
            self.state.mission.load(source)
            logger.info("System state imported")


def _write_json(path: str, data: Any) -> None:
    directory = os.path.dirname(path)
    if directory:
        os.makedirs(directory, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


def _contains(cells: List[Cell], cell: Cell) -> bool:
    return any(c is cell for c in cells)
