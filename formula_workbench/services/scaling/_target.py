"""Target total resolution for Normalize and Yield.

Synopsis:
Converts the selected target mode and value into one target total in base
unit grams.

Glossary:
- Loss factor: Percentage inflation applied to a yield target to compensate
  for expected process loss.
"""

from __future__ import annotations

import logging

from ._policy import UNIT_FACTORS
from .types import TargetMode

logger = logging.getLogger(__name__)


def to_base_amount(value: float, unit: str) -> float:
    factor = UNIT_FACTORS.get(unit)
    if factor is None:
        logger.debug("Unknown target unit %r; treating value as grams", unit)
        factor = 1.0
    return float(value) * factor


# --- Target resolver ---
# Purpose: Resolve the formula-level target total for a scaling request.
# Inputs: Target mode, value and unit, current total, loss factor, and the
#         caller-supplied batch value (batch mode only).
# Outputs: Target total in grams-equivalent; never raises.
def resolve_target(
    mode: TargetMode,
    value: float,
    unit: str,
    current_total: float,
    loss_factor_percent: float = 0.0,
    batch_value: float | None = None,
) -> float:
    if mode == TargetMode.ABSOLUTE_AMOUNT:
        return to_base_amount(value, unit)
    if mode == TargetMode.BATCH_VALUE:
        if batch_value is not None and batch_value > 0:
            return float(batch_value)
        return float(current_total)
    if mode == TargetMode.YIELD:
        return to_base_amount(value, unit) * (1.0 + (loss_factor_percent or 0.0) / 100.0)
    # Percentage mode renormalizes composition without changing total mass.
    return float(current_total)


__all__ = ["resolve_target", "to_base_amount"]
