"""Preview/commit projection.

Synopsis:
Folds reconciled row changes into a new formula value and decides whether a
preview may be committed at all.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from ._reconcile import percentage_of
from .types import Formula, FormulaRow, RowChange


def can_commit(
    row_changes: Sequence[RowChange],
    normalizable_count: int,
    scale_factor: float,
) -> bool:
    return bool(row_changes) and normalizable_count > 0 and scale_factor > 0


# --- Formula projector ---
# Purpose: Build the committed formula without touching the source value.
# Inputs: Source formula, row changes, optional new batch size.
# Outputs: New Formula; unmatched items (group markers) pass through in order.
def project_formula(
    formula: Formula,
    row_changes: Sequence[RowChange],
    batch_size: float | None = None,
) -> Formula:
    by_id = {change.row_id: change for change in row_changes}
    new_total = sum(change.new_quantity for change in row_changes)

    items = []
    for item in formula.items:
        change = by_id.get(item.id) if isinstance(item, FormulaRow) else None
        if change is None:
            items.append(item)
            continue
        items.append(
            item.with_quantity(
                change.new_quantity,
                percentage_of(change.new_quantity, new_total),
            )
        )

    return replace(
        formula,
        items=tuple(items),
        batch_size=batch_size if batch_size is not None else formula.batch_size,
    )


__all__ = ["can_commit", "project_formula"]
