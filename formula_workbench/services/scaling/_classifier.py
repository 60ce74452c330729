"""Row classification for formula scaling.

Synopsis:
Partitions a formula's ingredient rows into anchors (held fixed by policy),
normalizable rows (scaled), held rows (valid but outside the selected scope),
and excluded rows (missing ingredient data).

Glossary:
- Anchor: Locked or compliance-overridden row that the engine never mutates.
- Held row: Row outside a selected-rows scope; fixed, but not an anchor.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .types import AnchorPolicy, FormulaRow, Scope


@dataclass(frozen=True)
class RowClassification:
    anchors: tuple[FormulaRow, ...]
    normalizable: tuple[FormulaRow, ...]
    held: tuple[FormulaRow, ...] = ()
    excluded: tuple[FormulaRow, ...] = ()

    @property
    def anchor_ids(self) -> frozenset[str]:
        return frozenset(row.id for row in self.anchors)

    @property
    def normalizable_ids(self) -> frozenset[str]:
        return frozenset(row.id for row in self.normalizable)

    @property
    def anchor_sum(self) -> float:
        return sum(row.quantity for row in self.anchors)

    @property
    def fixed_sum(self) -> float:
        return self.anchor_sum + sum(row.quantity for row in self.held)

    @property
    def normalizable_sum(self) -> float:
        return sum(row.quantity for row in self.normalizable)


def is_anchor(row: FormulaRow, policy: AnchorPolicy) -> bool:
    if policy.treat_locked_as_anchor and row.is_locked:
        return True
    if policy.treat_compliance_override_as_anchor and row.has_compliance_override:
        return True
    return False


# --- Row classifier ---
# Purpose: Split rows into anchor/normalizable/held/excluded buckets.
# Inputs: Ingredient rows (group markers already removed), anchor policy,
#         scope, and the selected row ids.
# Outputs: RowClassification preserving input order inside each bucket.
def classify_rows(
    rows: Iterable[FormulaRow],
    policy: AnchorPolicy,
    scope: Scope,
    selected_ids: Iterable[str] = (),
) -> RowClassification:
    selected = frozenset(selected_ids)
    anchors: list[FormulaRow] = []
    normalizable: list[FormulaRow] = []
    held: list[FormulaRow] = []
    excluded: list[FormulaRow] = []

    for row in rows:
        if not row.has_valid_ingredient:
            excluded.append(row)
        elif is_anchor(row, policy):
            anchors.append(row)
        elif scope == Scope.SELECTED_ROWS and row.id not in selected:
            held.append(row)
        else:
            normalizable.append(row)

    return RowClassification(
        anchors=tuple(anchors),
        normalizable=tuple(normalizable),
        held=tuple(held),
        excluded=tuple(excluded),
    )


__all__ = ["RowClassification", "classify_rows", "is_anchor"]
