"""Residual reconciliation onto a single balancing row.

Synopsis:
After per-row rounding the formula total drifts from the exact target. The
whole residual is absorbed by one balancing row so the formula-level total is
exact. This is the only step that departs from strict proportional scaling:
one row trades its own precision for the formula's total.

Glossary:
- Residual: target total minus the sum of rounded row quantities.
- Balancing row: Normalizable row chosen to absorb the residual. In auto mode
  it is the largest row by current quantity, first encountered on ties.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Iterable, Sequence

from ._policy import (
    RESIDUAL_EPSILON,
    WARNING_BALANCING_ROW_NOT_NORMALIZABLE,
    WARNING_BALANCING_ROW_ZERO,
)
from .types import BalancingMode, BalancingPolicy, FormulaRow, RowChange


@dataclass(frozen=True)
class ReconcileOutcome:
    row_changes: tuple[RowChange, ...]
    residual: float
    adjusted: bool = False
    warnings: tuple[str, ...] = ()


def percentage_of(amount: float, total: float) -> float:
    if total == 0:
        return 0.0
    return (amount / total) * 100.0


# --- Balancing row selector ---
# Purpose: Resolve which row absorbs the residual.
# Inputs: Normalizable rows in formula order and the balancing policy.
# Outputs: Row id, or None when nothing can balance.
def select_balancing_row(
    normalizable: Iterable[FormulaRow],
    policy: BalancingPolicy,
) -> str | None:
    if policy.mode == BalancingMode.MANUAL and policy.row_id:
        return policy.row_id

    largest: FormulaRow | None = None
    for row in normalizable:
        # Strict comparison keeps the first row on ties.
        if largest is None or row.quantity > largest.quantity:
            largest = row
    return largest.id if largest else None


# --- Residual reconciler ---
# Purpose: Push the rounding residual onto the balancing row.
# Inputs: Row changes after rounding, exact target total, balancing row id,
#         and the ids allowed to absorb it (normalizable rows).
# Outputs: ReconcileOutcome with adjusted changes, pre-adjustment residual,
#          and any feasibility warnings.
def reconcile_residual(
    row_changes: Sequence[RowChange],
    target_total: float,
    balancing_row_id: str | None,
    normalizable_ids: Iterable[str] | None = None,
) -> ReconcileOutcome:
    changes = list(row_changes)
    residual = target_total - sum(change.new_quantity for change in changes)

    if abs(residual) <= RESIDUAL_EPSILON or not balancing_row_id:
        return ReconcileOutcome(row_changes=tuple(changes), residual=residual)

    allowed = frozenset(normalizable_ids) if normalizable_ids is not None else None
    index = next(
        (i for i, change in enumerate(changes) if change.row_id == balancing_row_id),
        None,
    )
    if (
        index is None
        or changes[index].is_anchor
        or (allowed is not None and balancing_row_id not in allowed)
    ):
        return ReconcileOutcome(
            row_changes=tuple(changes),
            residual=residual,
            warnings=(WARNING_BALANCING_ROW_NOT_NORMALIZABLE.format(row_id=balancing_row_id),),
        )

    balancing = changes[index]
    new_quantity = max(0.0, balancing.new_quantity + residual)
    changes[index] = replace(
        balancing,
        new_quantity=new_quantity,
        delta=new_quantity - balancing.old_quantity,
        new_percentage=percentage_of(new_quantity, target_total),
    )

    warnings: tuple[str, ...] = ()
    if new_quantity <= 0:
        warnings = (WARNING_BALANCING_ROW_ZERO,)

    return ReconcileOutcome(
        row_changes=tuple(changes),
        residual=residual,
        adjusted=True,
        warnings=warnings,
    )


__all__ = [
    "ReconcileOutcome",
    "percentage_of",
    "reconcile_residual",
    "select_balancing_row",
]
