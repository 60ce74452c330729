"""Formula scaling computation package.

Synopsis:
Provides the Normalize and Yield scaling engine: a chain of pure stages
(classify, resolve target, factor, round, reconcile, evaluate, project)
behind one orchestration service and a small workflow state machine.

Glossary:
- Formula scaling: Recomputing every row quantity for a new formula total.
"""

from ._classifier import RowClassification, classify_rows
from ._compliance import evaluate_compliance
from ._core import FormulaScalingService
from ._factor import ScaleFactorOutcome, compute_scale_factor
from ._policy import WORKFLOW_NORMALIZE, WORKFLOW_YIELD, get_scaling_policy
from ._projector import can_commit, project_formula
from ._reconcile import reconcile_residual, select_balancing_row
from ._rounding import round_quantity, scale_quantity
from ._target import resolve_target
from ._workflow import ScalingWorkflow, WorkflowState, build_request, describe_request
from .errors import (
    CommitNotAllowedError,
    ScalingCommitError,
    StaleScalingResultError,
    WarningsNotAcknowledgedError,
)
from .types import (
    AnchorPolicy,
    BalancingMode,
    BalancingPolicy,
    Formula,
    FormulaRow,
    GroupMarker,
    IngredientRef,
    RoundingMode,
    RoundingPolicy,
    RowChange,
    ScalingRequest,
    ScalingResult,
    Scope,
    TargetMode,
    Totals,
)

__all__ = [
    "AnchorPolicy",
    "BalancingMode",
    "BalancingPolicy",
    "CommitNotAllowedError",
    "Formula",
    "FormulaRow",
    "FormulaScalingService",
    "GroupMarker",
    "IngredientRef",
    "RoundingMode",
    "RoundingPolicy",
    "RowChange",
    "RowClassification",
    "ScaleFactorOutcome",
    "ScalingCommitError",
    "ScalingRequest",
    "ScalingResult",
    "ScalingWorkflow",
    "Scope",
    "StaleScalingResultError",
    "TargetMode",
    "Totals",
    "WORKFLOW_NORMALIZE",
    "WORKFLOW_YIELD",
    "WarningsNotAcknowledgedError",
    "WorkflowState",
    "build_request",
    "describe_request",
    "can_commit",
    "classify_rows",
    "compute_scale_factor",
    "evaluate_compliance",
    "get_scaling_policy",
    "project_formula",
    "reconcile_residual",
    "resolve_target",
    "round_quantity",
    "scale_quantity",
    "select_balancing_row",
]
