"""Compliance evaluation for scaled rows.

Synopsis:
Flags rows whose post-scaling share of the formula exceeds their configured
maximum percentage. Runs after reconciliation and only appends warnings.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Mapping

from ._policy import ROW_WARNING_MAX_PERCENTAGE, WARNING_MAX_PERCENTAGE
from .types import FormulaRow, RowChange


@dataclass(frozen=True)
class ComplianceOutcome:
    row_changes: tuple[RowChange, ...]
    warnings: tuple[str, ...]


def _format_limit(limit: float) -> str:
    return f"{limit:g}"


# --- Compliance evaluator ---
# Purpose: Attach max-percentage breaches to rows and the formula warning list.
# Inputs: Reconciled row changes, source rows by id, warnings so far.
# Outputs: Row changes with compliance_warning set, earlier warnings followed
#          by one warning per breaching row.
def evaluate_compliance(
    row_changes: Iterable[RowChange],
    rows_by_id: Mapping[str, FormulaRow],
    warnings: Iterable[str] = (),
) -> ComplianceOutcome:
    collected = list(warnings)
    evaluated: list[RowChange] = []

    for change in row_changes:
        row = rows_by_id.get(change.row_id)
        limit = row.max_percentage if row else None
        if limit is not None and change.new_percentage > limit:
            change = replace(
                change,
                compliance_warning=ROW_WARNING_MAX_PERCENTAGE.format(limit=_format_limit(limit)),
            )
            collected.append(WARNING_MAX_PERCENTAGE.format(name=change.ingredient_name))
        evaluated.append(change)

    return ComplianceOutcome(row_changes=tuple(evaluated), warnings=tuple(collected))


__all__ = ["ComplianceOutcome", "evaluate_compliance"]
