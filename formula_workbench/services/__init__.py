from .formula_store import FormulaNotFoundError, FormulaRevisionConflictError, FormulaStore
from .scaling import FormulaScalingService, ScalingWorkflow

__all__ = [
    "FormulaNotFoundError",
    "FormulaRevisionConflictError",
    "FormulaScalingService",
    "FormulaStore",
    "ScalingWorkflow",
]
