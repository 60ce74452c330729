"""Normalize/Yield workflow state machine.

Synopsis:
Tracks one modal session: Idle -> Configuring -> PreviewComputed ->
(Warned | Ready) -> Committed. Every configuration edit recomputes the preview
from scratch; a commit is terminal for the cycle, and the next edit starts a
fresh cycle against the committed formula.

Glossary:
- Workflow: "normalize" or "yield"; selects defaults and the target mode.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Mapping

from ._core import FormulaScalingService
from ._policy import WORKFLOW_DEFAULTS, WORKFLOW_NORMALIZE, WORKFLOW_YIELD
from .errors import ScalingCommitError
from .types import Formula, ScalingRequest, ScalingResult, TargetMode

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    CONFIGURING = "configuring"
    PREVIEW_COMPUTED = "preview_computed"
    WARNED = "warned"
    READY = "ready"
    COMMITTED = "committed"


# --- Request builder ---
# Purpose: Build a ScalingRequest for a workflow from raw UI payload.
# Inputs: Workflow name, raw payload, optional default overrides (app config).
# Outputs: ScalingRequest; Yield always resolves in yield mode and Normalize
#          never does.
def build_request(
    workflow: str,
    payload: Mapping[str, Any] | None,
    overrides: Mapping[str, Any] | None = None,
) -> ScalingRequest:
    if workflow not in WORKFLOW_DEFAULTS:
        raise ValueError(f"Unknown scaling workflow: {workflow!r}")
    defaults = dict(WORKFLOW_DEFAULTS[workflow])
    defaults.update({key: value for key, value in (overrides or {}).items() if value is not None})

    request = ScalingRequest.from_payload(payload, defaults)
    if workflow == WORKFLOW_YIELD and request.mode != TargetMode.YIELD:
        request = replace(request, mode=TargetMode.YIELD)
    elif workflow == WORKFLOW_NORMALIZE and request.mode == TargetMode.YIELD:
        request = replace(request, mode=TargetMode.PERCENTAGE)
    return request


def describe_request(workflow: str, request: ScalingRequest) -> str:
    """Human-readable audit line for a committed scaling request."""
    step = "none" if request.rounding.step is None else f"{request.rounding.step:g}"
    if workflow == WORKFLOW_YIELD:
        return (
            f"Yielded to {request.target_value:g}{request.target_unit.lower()}, "
            f"loss={request.loss_factor_percent:g}%, rounding={step}, scope={request.scope.value}"
        )
    if request.mode == TargetMode.ABSOLUTE_AMOUNT:
        target = f"{request.target_value:g}{request.target_unit.lower()}"
    elif request.mode == TargetMode.BATCH_VALUE:
        target = "batch size"
    else:
        target = "current total"
    return (
        f"Normalized to {target}, rounding={step} ({request.rounding.mode.value}), "
        f"scope={request.scope.value}, balancing={request.balancing.mode.value}"
    )


class ScalingWorkflow:
    """One Normalize or Yield session over a formula snapshot."""

    def __init__(self, formula: Formula, workflow: str = WORKFLOW_NORMALIZE):
        if workflow not in WORKFLOW_DEFAULTS:
            raise ValueError(f"Unknown scaling workflow: {workflow!r}")
        self.workflow = workflow
        self.formula = formula
        self.state = WorkflowState.IDLE
        self.request: ScalingRequest | None = None
        self.result: ScalingResult | None = None
        self.committed_formula: Formula | None = None

    def reset(self, formula: Formula | None = None) -> None:
        if formula is not None:
            self.formula = formula
        self.state = WorkflowState.IDLE
        self.request = None
        self.result = None

    def configure(self, request: ScalingRequest | Mapping[str, Any]) -> ScalingResult:
        if self.state == WorkflowState.COMMITTED:
            self.reset(self.committed_formula)

        if not isinstance(request, ScalingRequest):
            request = build_request(self.workflow, request)

        self.state = WorkflowState.CONFIGURING
        self.request = request
        self.result = FormulaScalingService.preview(self.formula, request)
        self.state = WorkflowState.PREVIEW_COMPUTED

        # Blocked previews stay in PreviewComputed; nothing can be committed.
        if not self.result.blocked:
            self.state = WorkflowState.WARNED if self.result.warnings else WorkflowState.READY
        return self.result

    def commit(self, *, acknowledge_warnings: bool = False) -> Formula:
        if self.result is None or self.state not in (WorkflowState.WARNED, WorkflowState.READY):
            raise ScalingCommitError(
                f"No committable preview for the {self.workflow} workflow (state: {self.state.value})."
            )
        committed = FormulaScalingService.commit(
            self.formula,
            self.result,
            acknowledge_warnings=acknowledge_warnings,
        )
        self.committed_formula = committed
        self.state = WorkflowState.COMMITTED
        logger.debug("Workflow %s committed for formula %s", self.workflow, self.formula.id)
        return committed


__all__ = ["ScalingWorkflow", "WorkflowState", "build_request", "describe_request"]
