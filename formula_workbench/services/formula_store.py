"""In-process canonical formula holder with undo history."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from threading import Lock

from .scaling.types import Formula

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


class FormulaNotFoundError(RuntimeError):
    """Raised when a formula id has never been stored."""

    def __init__(self, formula_id: str):
        super().__init__(f"Formula {formula_id!r} not found")
        self.formula_id = formula_id


class FormulaRevisionConflictError(RuntimeError):
    """Raised when a replace targets a revision that is no longer current."""

    def __init__(self, formula_id: str, expected_revision: int, actual_revision: int):
        super().__init__(
            f"Formula {formula_id!r} is at revision {actual_revision}, expected {expected_revision}"
        )
        self.formula_id = formula_id
        self.expected_revision = expected_revision
        self.actual_revision = actual_revision


@dataclass(frozen=True)
class HistoryEntry:
    formula: Formula
    message: str
    recorded_at: datetime

    def to_dict(self) -> dict:
        return {
            "revision": self.formula.revision,
            "message": self.message,
            "recorded_at": self.recorded_at.isoformat(),
        }


class FormulaStore:
    """Thread-safe formula map; every mutation swaps a whole formula value."""

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        self._formulas: dict[str, Formula] = {}
        self._history: dict[str, list[HistoryEntry]] = {}
        self._history_limit = max(0, int(history_limit))
        self._lock = Lock()

    def put(self, formula: Formula) -> Formula:
        """Load a snapshot from outside; clears that formula's undo history."""
        with self._lock:
            existing = self._formulas.get(formula.id)
            if existing is not None:
                formula = replace(formula, revision=existing.revision + 1)
            self._formulas[formula.id] = formula
            self._history[formula.id] = []
        logger.debug("Stored formula %s at revision %s", formula.id, formula.revision)
        return formula

    def get(self, formula_id: str) -> Formula:
        with self._lock:
            formula = self._formulas.get(formula_id)
        if formula is None:
            raise FormulaNotFoundError(formula_id)
        return formula

    def replace(
        self,
        formula_id: str,
        new_formula: Formula,
        audit_message: str,
        *,
        expected_revision: int | None = None,
    ) -> Formula:
        """Swap in a committed formula and remember the previous one for undo."""
        with self._lock:
            current = self._formulas.get(formula_id)
            if current is None:
                raise FormulaNotFoundError(formula_id)
            if expected_revision is not None and expected_revision != current.revision:
                raise FormulaRevisionConflictError(formula_id, expected_revision, current.revision)
            stored = replace(new_formula, id=formula_id, revision=current.revision + 1)
            self._push_history(formula_id, current, audit_message)
            self._formulas[formula_id] = stored
        logger.info(
            "Formula %s replaced (revision %s -> %s): %s",
            formula_id,
            current.revision,
            stored.revision,
            audit_message,
        )
        return stored

    def history(self, formula_id: str) -> list[HistoryEntry]:
        """Newest entry first."""
        with self._lock:
            if formula_id not in self._formulas:
                raise FormulaNotFoundError(formula_id)
            return list(self._history.get(formula_id, ()))

    def can_undo(self, formula_id: str) -> bool:
        return bool(self.history(formula_id))

    def undo(self, formula_id: str) -> tuple[Formula, HistoryEntry] | None:
        """Restore the most recent snapshot; returns None when nothing to undo.

        The restored formula gets a fresh revision so previews computed against
        the undone state are rejected as stale.
        """
        with self._lock:
            current = self._formulas.get(formula_id)
            if current is None:
                raise FormulaNotFoundError(formula_id)
            entries = self._history.get(formula_id) or []
            if not entries:
                return None
            entry = entries.pop(0)
            restored = replace(entry.formula, revision=current.revision + 1)
            self._formulas[formula_id] = restored
        logger.info("Undid %r on formula %s (now revision %s)", entry.message, formula_id, restored.revision)
        return restored, entry

    def _push_history(self, formula_id: str, snapshot: Formula, message: str) -> None:
        if self._history_limit == 0:
            return
        entries = self._history.setdefault(formula_id, [])
        entries.insert(0, HistoryEntry(formula=snapshot, message=message, recorded_at=datetime.now(timezone.utc)))
        del entries[self._history_limit:]


__all__ = [
    "DEFAULT_HISTORY_LIMIT",
    "FormulaNotFoundError",
    "FormulaRevisionConflictError",
    "FormulaStore",
    "HistoryEntry",
]
