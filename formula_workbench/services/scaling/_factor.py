"""Scale factor calculation.

Synopsis:
Derives the single multiplier applied to every normalizable row, given the
target total and the fixed contribution of rows that do not scale.
"""

from __future__ import annotations

from dataclasses import dataclass

from ._policy import WARNING_NON_POSITIVE_FACTOR, WARNING_ZERO_NORMALIZABLE_SUM


@dataclass(frozen=True)
class ScaleFactorOutcome:
    factor: float
    feasible: bool
    warnings: tuple[str, ...] = ()


# --- Scale factor calculator ---
# Purpose: Compute (target - fixed) / normalizable with feasibility signals.
# Inputs: Target total, fixed (anchor) sum, normalizable sum.
# Outputs: Factor plus warnings. A zero normalizable sum returns the no-op
#          factor 1 with feasible=False so no division result ever escapes.
def compute_scale_factor(
    target_total: float,
    anchor_sum: float,
    normalizable_sum: float,
) -> ScaleFactorOutcome:
    if normalizable_sum == 0:
        return ScaleFactorOutcome(
            factor=1.0,
            feasible=False,
            warnings=(WARNING_ZERO_NORMALIZABLE_SUM,),
        )

    factor = (target_total - anchor_sum) / normalizable_sum
    if factor <= 0:
        # Non-fatal: the preview still renders so the user can diagnose it.
        return ScaleFactorOutcome(
            factor=factor,
            feasible=True,
            warnings=(WARNING_NON_POSITIVE_FACTOR,),
        )
    return ScaleFactorOutcome(factor=factor, feasible=True)


__all__ = ["ScaleFactorOutcome", "compute_scale_factor"]
