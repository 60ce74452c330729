"""Formula scaling policy constants shared by the engine and the workbench UI.

Synopsis:
Centralizes the unit equivalence table, reconciliation tolerance, warning
texts, and per-workflow defaults so the frontend consumes backend-owned values
instead of hardcoding them.

Glossary:
- Mass equivalence: Liters are treated 1:1 with kilograms. This is a deliberate
  simplification for fragrance work, not a density-aware conversion.
- Workflow defaults: Initial modal settings for Normalize and Yield.
"""

from __future__ import annotations

# Base unit is grams; L is mass-equivalent on purpose.
UNIT_FACTORS = {"g": 1.0, "kg": 1000.0, "L": 1000.0}

RESIDUAL_EPSILON = 1e-3

ROUNDING_STEP_CHOICES = (0.001, 0.01, 0.1, 1.0)

WARNING_NO_NORMALIZABLE_ROWS = "No rows available for normalization. All rows are anchored."
WARNING_ZERO_NORMALIZABLE_SUM = "Cannot normalize: sum of normalizable rows is zero."
WARNING_NON_POSITIVE_FACTOR = "Scale factor is zero or negative. Target amount may be too small."
WARNING_BALANCING_ROW_ZERO = "Balancing row would become zero. Consider different parameters."
WARNING_BALANCING_ROW_NOT_NORMALIZABLE = (
    "Balancing row {row_id} is not a normalizable row; rounding residual was not reconciled."
)
WARNING_MAX_PERCENTAGE = "{name} exceeds maximum percentage limit"
ROW_WARNING_MAX_PERCENTAGE = "Exceeds max {limit}%"
DATA_QUALITY_MISSING_INGREDIENT = (
    "Row {row_id} has invalid or incomplete ingredient data and cannot be normalized."
)

WORKFLOW_NORMALIZE = "normalize"
WORKFLOW_YIELD = "yield"

WORKFLOW_DEFAULTS = {
    WORKFLOW_NORMALIZE: {
        "mode": "percentage",
        "scope": "allUnlocked",
        "treat_locked_as_anchor": True,
        "treat_compliance_override_as_anchor": True,
        "rounding_step": 0.01,
        "rounding_mode": "halfUp",
    },
    WORKFLOW_YIELD: {
        "mode": "yield",
        "scope": "allUnlocked",
        "treat_locked_as_anchor": False,
        "treat_compliance_override_as_anchor": False,
        "rounding_step": 0.1,
        "rounding_mode": "halfUp",
    },
}


# --- Frontend policy payload builder ---
# Purpose: Serialize scaling policy constants for the workbench modals.
# Inputs: None.
# Outputs: JSON-safe policy dictionary.
def get_scaling_policy() -> dict:
    return {
        "unit_factors": UNIT_FACTORS,
        "residual_epsilon": RESIDUAL_EPSILON,
        "rounding_step_choices": ROUNDING_STEP_CHOICES,
        "rounding_modes": ("halfUp", "down", "bankers"),
        "target_modes": ("percentage", "absoluteAmount", "batchValue", "yield"),
        "workflow_defaults": WORKFLOW_DEFAULTS,
    }


__all__ = [
    "UNIT_FACTORS",
    "RESIDUAL_EPSILON",
    "WORKFLOW_DEFAULTS",
    "WORKFLOW_NORMALIZE",
    "WORKFLOW_YIELD",
    "get_scaling_policy",
]
