import pytest

from formula_workbench.services.scaling import (
    ScalingCommitError,
    ScalingWorkflow,
    TargetMode,
    WarningsNotAcknowledgedError,
    WorkflowState,
    build_request,
    describe_request,
)

from .factories import build_formula, row_payload


def test_workflow_starts_idle_and_settles_ready():
    formula = build_formula([row_payload('a', 60), row_payload('b', 40)])
    workflow = ScalingWorkflow(formula, 'normalize')
    assert workflow.state == WorkflowState.IDLE

    result = workflow.configure({'mode': 'absoluteAmount', 'targetValue': 200})
    assert workflow.state == WorkflowState.READY
    assert result.can_commit


def test_every_edit_recomputes_from_the_same_snapshot():
    formula = build_formula([row_payload('a', 60), row_payload('b', 40)])
    workflow = ScalingWorkflow(formula)
    workflow.configure({'mode': 'absoluteAmount', 'targetValue': 200})
    second = workflow.configure({'mode': 'absoluteAmount', 'targetValue': 50})

    assert second.change_for('a').old_quantity == 60
    assert second.change_for('a').new_quantity == 30


def test_warnings_require_acknowledgment_before_commit():
    formula = build_formula([row_payload('a', 50, maxPercentage=40), row_payload('b', 50)])
    workflow = ScalingWorkflow(formula)
    workflow.configure({'mode': 'percentage'})
    assert workflow.state == WorkflowState.WARNED

    with pytest.raises(WarningsNotAcknowledgedError):
        workflow.commit()
    assert workflow.state == WorkflowState.WARNED

    workflow.commit(acknowledge_warnings=True)
    assert workflow.state == WorkflowState.COMMITTED


def test_commit_without_preview_is_rejected():
    workflow = ScalingWorkflow(build_formula([row_payload('a', 1)]))
    with pytest.raises(ScalingCommitError):
        workflow.commit()


def test_blocked_preview_cannot_be_committed():
    formula = build_formula([row_payload('a', 50), {'id': 'x', 'quantity': 5}])
    workflow = ScalingWorkflow(formula)
    result = workflow.configure({'mode': 'absoluteAmount', 'targetValue': 100})

    assert result.blocked
    assert workflow.state == WorkflowState.PREVIEW_COMPUTED
    with pytest.raises(ScalingCommitError):
        workflow.commit(acknowledge_warnings=True)


def test_configure_after_commit_starts_fresh_cycle_on_committed_formula():
    formula = build_formula([row_payload('a', 60), row_payload('b', 40)])
    workflow = ScalingWorkflow(formula)
    workflow.configure({'mode': 'absoluteAmount', 'targetValue': 200})
    committed = workflow.commit()

    result = workflow.configure({'mode': 'percentage'})
    assert workflow.formula is committed
    assert result.change_for('a').old_quantity == 120
    assert workflow.state == WorkflowState.READY


def test_yield_workflow_forces_yield_mode():
    request = build_request('yield', {'mode': 'absoluteAmount', 'targetValue': 100})
    assert request.mode == TargetMode.YIELD
    assert request.rounding.step == 0.1
    assert not request.anchor_policy.treat_locked_as_anchor


def test_normalize_workflow_never_runs_in_yield_mode():
    request = build_request('normalize', {'mode': 'yield', 'targetValue': 100})
    assert request.mode == TargetMode.PERCENTAGE
    assert request.anchor_policy.treat_locked_as_anchor


def test_unknown_workflow_is_rejected():
    with pytest.raises(ValueError):
        ScalingWorkflow(build_formula([]), 'dilute')


def test_audit_messages_describe_the_request():
    yield_request = build_request('yield', {'targetValue': 2, 'targetUnit': 'kg', 'lossFactorPercent': 5})
    assert describe_request('yield', yield_request) == (
        'Yielded to 2kg, loss=5%, rounding=0.1, scope=allUnlocked'
    )

    normalize_request = build_request('normalize', {'mode': 'absoluteAmount', 'targetValue': 250})
    assert describe_request('normalize', normalize_request).startswith('Normalized to 250g, rounding=0.01')
