"""Formula scaling orchestration service.

Synopsis:
Runs the full Normalize/Yield pipeline (classify, resolve target, compute
factor, round, reconcile, evaluate compliance) into one ScalingResult, and
folds a confirmed result into a new formula value.

Glossary:
- Preview: Side-effect-free recomputation on every configuration edit.
- Commit: Explicit confirmation that projects a preview into a new formula.
"""

from __future__ import annotations

import logging
from typing import Iterable

from ._classifier import RowClassification, classify_rows
from ._compliance import evaluate_compliance
from ._factor import compute_scale_factor
from ._policy import DATA_QUALITY_MISSING_INGREDIENT, WARNING_NO_NORMALIZABLE_ROWS
from ._projector import can_commit, project_formula
from ._reconcile import percentage_of, reconcile_residual, select_balancing_row
from ._rounding import round_quantity, scale_quantity
from ._target import resolve_target, to_base_amount
from .errors import (
    CommitNotAllowedError,
    StaleScalingResultError,
    WarningsNotAcknowledgedError,
)
from .types import (
    Formula,
    FormulaRow,
    RowChange,
    ScalingRequest,
    ScalingResult,
    TargetMode,
    Totals,
)

logger = logging.getLogger(__name__)


def _totals(rows: Iterable[FormulaRow]) -> Totals:
    amount = 0.0
    cost = 0.0
    for row in rows:
        amount += row.quantity
        cost += row.quantity * row.cost_per_unit
    return Totals(amount=amount, cost=cost)


def _new_totals(row_changes: Iterable[RowChange], rows_by_id: dict[str, FormulaRow]) -> Totals:
    amount = 0.0
    cost = 0.0
    for change in row_changes:
        row = rows_by_id.get(change.row_id)
        amount += change.new_quantity
        cost += change.new_quantity * (row.cost_per_unit if row else 0.0)
    return Totals(amount=amount, cost=cost)


# --- Row change builder ---
# Purpose: Scale and round every row; fixed rows carry their quantity through.
# Inputs: Rows in formula order, classification, factor, request, target total.
# Outputs: Row changes before reconciliation.
def _build_row_changes(
    rows: Iterable[FormulaRow],
    classification: RowClassification,
    factor: float,
    request: ScalingRequest,
    target_total: float,
) -> list[RowChange]:
    anchor_ids = classification.anchor_ids
    normalizable_ids = classification.normalizable_ids
    changes: list[RowChange] = []
    for row in rows:
        if row.id in normalizable_ids:
            raw = scale_quantity(row.quantity, factor)
            new_quantity = max(
                0.0,
                round_quantity(raw, request.rounding.step, request.rounding.mode),
            )
        else:
            new_quantity = row.quantity
        changes.append(
            RowChange(
                row_id=row.id,
                ingredient_name=row.name,
                old_quantity=row.quantity,
                new_quantity=new_quantity,
                delta=new_quantity - row.quantity,
                new_percentage=percentage_of(new_quantity, target_total),
                is_anchor=row.id in anchor_ids,
            )
        )
    return changes


# --- Formula scaling orchestrator ---
# Purpose: Provide one canonical entrypoint for Normalize and Yield previews
#          and commits.
# Inputs: Formula snapshot and scaling request (preview); formula, result and
#         acknowledgment flag (commit).
# Outputs: ScalingResult (preview) or a new Formula (commit).
class FormulaScalingService:
    @classmethod
    def preview(cls, formula: Formula, request: ScalingRequest) -> ScalingResult:
        rows = formula.scalable_rows
        current_totals = _totals(rows)

        invalid = formula.invalid_rows
        if invalid:
            logger.debug(
                "Formula %s has %d rows without valid ingredient data; scaling blocked",
                formula.id,
                len(invalid),
            )
            return cls._no_op_result(
                formula,
                request,
                target_total=current_totals.amount,
                current_totals=current_totals,
                data_quality_errors=tuple(
                    DATA_QUALITY_MISSING_INGREDIENT.format(row_id=row.id) for row in invalid
                ),
            )

        classification = classify_rows(
            rows,
            request.anchor_policy,
            request.scope,
            request.selected_ids,
        )
        target_total = resolve_target(
            request.mode,
            request.target_value,
            request.target_unit,
            current_totals.amount,
            request.loss_factor_percent,
            request.batch_value if request.batch_value is not None else formula.batch_size,
        )

        if not classification.normalizable:
            return cls._no_op_result(
                formula,
                request,
                target_total=target_total,
                current_totals=current_totals,
                warnings=(WARNING_NO_NORMALIZABLE_ROWS,),
            )

        factor_outcome = compute_scale_factor(
            target_total,
            classification.fixed_sum,
            classification.normalizable_sum,
        )
        warnings: list[str] = list(factor_outcome.warnings)
        if not factor_outcome.feasible:
            return cls._no_op_result(
                formula,
                request,
                target_total=target_total,
                current_totals=current_totals,
                warnings=tuple(warnings),
                normalizable_count=len(classification.normalizable),
            )

        factor = factor_outcome.factor
        changes = _build_row_changes(rows, classification, factor, request, target_total)

        balancing_row_id = select_balancing_row(classification.normalizable, request.balancing)
        reconciled = reconcile_residual(
            changes,
            target_total,
            balancing_row_id,
            classification.normalizable_ids,
        )
        warnings.extend(reconciled.warnings)

        rows_by_id = formula.row_by_id()
        evaluated = evaluate_compliance(reconciled.row_changes, rows_by_id, warnings)

        normalizable_count = len(classification.normalizable)
        result = ScalingResult(
            formula_id=formula.id,
            source_revision=formula.revision,
            mode=request.mode,
            target_total=target_total,
            scale_factor=factor,
            row_changes=evaluated.row_changes,
            current_totals=current_totals,
            new_totals=_new_totals(evaluated.row_changes, rows_by_id),
            warnings=evaluated.warnings,
            residual=reconciled.residual,
            balancing_row_id=balancing_row_id,
            normalizable_count=normalizable_count,
            can_commit=can_commit(evaluated.row_changes, normalizable_count, factor),
            batch_size=cls._committed_batch_size(request),
        )
        logger.debug(
            "Scaling preview for formula %s: mode=%s target=%.4f factor=%.6f residual=%.6f warnings=%d",
            formula.id,
            request.mode.value,
            target_total,
            factor,
            reconciled.residual,
            len(result.warnings),
        )
        return result

    @classmethod
    def commit(
        cls,
        formula: Formula,
        result: ScalingResult,
        *,
        acknowledge_warnings: bool = False,
    ) -> Formula:
        if result.formula_id != formula.id or result.source_revision != formula.revision:
            logger.warning(
                "Rejected stale scaling commit for formula %s (preview revision %s, current %s)",
                formula.id,
                result.source_revision,
                formula.revision,
            )
            raise StaleScalingResultError(
                formula_id=formula.id,
                expected_revision=result.source_revision,
                actual_revision=formula.revision,
            )
        if not result.can_commit:
            logger.warning(
                "Rejected non-committable %s scaling for formula %s (factor=%.6f, blocked=%s)",
                result.mode.value,
                formula.id,
                result.scale_factor,
                result.blocked,
            )
            raise CommitNotAllowedError(
                formula_id=formula.id,
                scale_factor=result.scale_factor,
                row_change_count=len(result.row_changes),
            )
        if result.warnings and not acknowledge_warnings:
            logger.warning(
                "Rejected %s scaling for formula %s: %d unacknowledged warnings",
                result.mode.value,
                formula.id,
                len(result.warnings),
            )
            raise WarningsNotAcknowledgedError(warnings=result.warnings)

        committed = project_formula(formula, result.row_changes, batch_size=result.batch_size)
        logger.info(
            "Committed %s scaling for formula %s (factor=%.6f, total=%.4f)",
            result.mode.value,
            formula.id,
            result.scale_factor,
            result.new_totals.amount,
        )
        return committed

    @staticmethod
    def _committed_batch_size(request: ScalingRequest) -> float | None:
        # Yield sets the batch size to the requested yield, before loss.
        if request.mode == TargetMode.YIELD:
            return to_base_amount(request.target_value, request.target_unit)
        return None

    @staticmethod
    def _no_op_result(
        formula: Formula,
        request: ScalingRequest,
        *,
        target_total: float,
        current_totals: Totals,
        warnings: tuple[str, ...] = (),
        normalizable_count: int = 0,
        data_quality_errors: tuple[str, ...] = (),
    ) -> ScalingResult:
        return ScalingResult(
            formula_id=formula.id,
            source_revision=formula.revision,
            mode=request.mode,
            target_total=target_total,
            scale_factor=1.0,
            row_changes=(),
            current_totals=current_totals,
            new_totals=current_totals,
            warnings=warnings,
            normalizable_count=normalizable_count,
            data_quality_errors=data_quality_errors,
            can_commit=False,
        )


__all__ = ["FormulaScalingService"]
