"""Append-only audit sink."""

import json
import logging
import os
import threading
from typing import Any, Dict, List, Optional

from ..models import AuditEntry

logger = logging.getLogger(__name__)


class AuditLog:
    """
    Ordered, append-only record of everything the engine does.

    Entries are immutable once appended. Appends and file writes share one
    lock so an outside reader (a status endpoint, say) can flush concurrently.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._entries: List[AuditEntry] = []
        self._lock = threading.Lock()

    def record(self, entry: AuditEntry) -> AuditEntry:
        with self._lock:
            self._entries.append(entry)
        logger.debug("Audit %s by %s", entry.step, entry.agent_name)
        return entry

    def record_cell(self, cell, step: str = "CellExecuted", **fields) -> AuditEntry:
        """Record an entry describing a cell's input and output."""
        parent = cell.parent
        entry = AuditEntry(
            step=step,
            agent_name=cell.agent_name,
            role=cell.role,
            question=cell.input,
            answer=cell.output,
            parent_id=parent.id if parent is not None else None,
            chain_depth=cell.chain_depth,
            **fields,
        )
        return self.record(entry)

    def recent(self, n: int = 10) -> List[AuditEntry]:
        """Last n entries, oldest first."""
        with self._lock:
            return list(self._entries[-n:]) if n > 0 else []

    def steps(self) -> List[str]:
        with self._lock:
            return [entry.step for entry in self._entries]

    def load_all(self) -> List[AuditEntry]:
        """All entries in append order."""
        with self._lock:
            return list(self._entries)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def flush(self) -> None:
        """Write the whole log to the configured JSON file, if any."""
        if not self.path:
            return

        with self._lock:
            data = [entry.to_dict() for entry in self._entries]
            directory = os.path.dirname(self.path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
        logger.debug("Audit log flushed to %s (%d entries)", self.path, len(data))

    def export_trace(self, path: Optional[str] = None, **sections: Any) -> Dict[str, Any]:
        """
        Bundle the full audit log with other engine state into one trace.

        Args:
            path: Optional JSON file to write the trace to
            **sections: Extra JSON-serializable sections (memory tiers,
                emotion history, ...) stored next to `audit_log`

        Returns:
            The trace dict
        """
        with self._lock:
            trace: Dict[str, Any] = {"audit_log": [entry.to_dict() for entry in self._entries]}
        trace.update(sections)

        if path:
            directory = os.path.dirname(path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(path, "w", encoding="utf-8") as f:
                json.dump(trace, f, indent=2, ensure_ascii=False)
            logger.info("Full trace exported to %s", path)
        return trace

    def load(self) -> None:
        """Replace in-memory entries with the contents of the JSON file."""
        if not self.path or not os.path.exists(self.path):
            logger.info("No audit log file found")
            return

        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        with self._lock:
            self._entries = [AuditEntry.from_dict(item) for item in data]
        logger.info("Audit log loaded from %s", self.path)
