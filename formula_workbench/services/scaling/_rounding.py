"""Decimal-safe rounding for scaled ingredient quantities.

Synopsis:
Rounds a quantity to a granularity step with half-up, floor, or
round-half-to-even semantics without binary float drift at halfway points.

Glossary:
- Step: Rounding granularity in base units (0.01 g, 0.1 g, 1 g).
- Step index: value / step; the integer the mode rounds to.
"""

from __future__ import annotations

from decimal import ROUND_FLOOR, ROUND_HALF_EVEN, ROUND_HALF_UP, Decimal

from .types import RoundingMode

_DECIMAL_ROUNDING = {
    RoundingMode.HALF_UP: ROUND_HALF_UP,
    RoundingMode.DOWN: ROUND_FLOOR,
    RoundingMode.BANKERS: ROUND_HALF_EVEN,
}


# --- Decimal normalize ---
# Purpose: Route floats through their shortest repr so 0.135 stays 0.135.
def _to_decimal(value: object) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if value is None:
        return Decimal("0")
    return Decimal(str(value))


# --- Exact scaling ---
# Purpose: Multiply a quantity by the scale factor without binary float drift.
def scale_quantity(quantity: float, factor: float) -> Decimal:
    return _to_decimal(quantity) * _to_decimal(factor)


# --- Quantity rounding ---
# Purpose: Round one value to a step with the requested mode.
# Inputs: Raw value (float or Decimal), positive step (None disables
#         rounding), rounding mode.
# Outputs: Rounded float; callers clamp negatives to zero.
def round_quantity(value: float | Decimal, step: float | None, mode: RoundingMode | str) -> float:
    if step is None:
        return float(value)
    if step <= 0:
        raise ValueError("Rounding step must be positive")

    resolved = RoundingMode.coerce(mode, RoundingMode.HALF_UP)
    step_dec = _to_decimal(step)
    scaled = _to_decimal(value) / step_dec
    index = scaled.to_integral_value(rounding=_DECIMAL_ROUNDING[resolved])
    return float(index * step_dec)


__all__ = ["round_quantity", "scale_quantity"]
