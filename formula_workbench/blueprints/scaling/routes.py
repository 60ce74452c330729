import logging

from flask import current_app, jsonify, request

from ...services.formula_store import (
    FormulaNotFoundError,
    FormulaRevisionConflictError,
    FormulaStore,
)
from ...services.scaling import (
    WORKFLOW_NORMALIZE,
    WORKFLOW_YIELD,
    CommitNotAllowedError,
    Formula,
    FormulaScalingService,
    ScalingCommitError,
    StaleScalingResultError,
    WarningsNotAcknowledgedError,
    build_request,
    describe_request,
    get_scaling_policy,
)
from . import scaling_bp

logger = logging.getLogger(__name__)


def _store() -> FormulaStore:
    return current_app.extensions["formula_store"]


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else None


def _error(message: str, status: int, **extra):
    return jsonify({'success': False, 'error': message, **extra}), status


def _request_defaults(workflow: str) -> dict:
    """App-level overrides for the Normalize modal; Yield keeps its own defaults."""
    if workflow != WORKFLOW_NORMALIZE:
        return {}
    config = current_app.config
    overrides = {
        'treat_locked_as_anchor': config.get('SCALING_LOCKED_AS_ANCHOR'),
        'treat_compliance_override_as_anchor': config.get('SCALING_OVERRIDE_AS_ANCHOR'),
        'rounding_mode': config.get('SCALING_DEFAULT_ROUNDING_MODE'),
    }
    if 'SCALING_DEFAULT_ROUNDING_STEP' in config:
        # None means "no rounding" and must survive the None filter in build_request.
        step = config['SCALING_DEFAULT_ROUNDING_STEP']
        overrides['rounding_step'] = 'none' if step is None else step
    return overrides


def _expected_revision(data: dict):
    raw = data.get('revision', data.get('source_revision', data.get('sourceRevision')))
    if raw is None:
        return None
    if isinstance(raw, int) and not isinstance(raw, bool):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    if isinstance(raw, str) and raw.strip().isdigit():
        return int(raw.strip())
    raise ValueError('revision must be an integer')


@scaling_bp.route('/scaling/policy', methods=['GET'])
def scaling_policy():
    return jsonify({'success': True, 'data': get_scaling_policy()})


@scaling_bp.route('/formulas/<formula_id>', methods=['PUT'])
def put_formula(formula_id):
    data = _json_body()
    if data is None:
        return _error('A JSON object body is required', 400)
    payload = data.get('formula') if isinstance(data.get('formula'), dict) else data
    formula = Formula.from_payload({**payload, 'id': formula_id})
    stored = _store().put(formula)
    return jsonify({'success': True, 'data': stored.to_dict()})


@scaling_bp.route('/formulas/<formula_id>', methods=['GET'])
def get_formula(formula_id):
    try:
        formula = _store().get(formula_id)
    except FormulaNotFoundError as exc:
        return _error(str(exc), 404)
    return jsonify({'success': True, 'data': formula.to_dict()})


@scaling_bp.route('/formulas/<formula_id>/normalize/preview', methods=['POST'])
def normalize_preview(formula_id):
    return _preview(formula_id, WORKFLOW_NORMALIZE)


@scaling_bp.route('/formulas/<formula_id>/normalize/commit', methods=['POST'])
def normalize_commit(formula_id):
    return _commit(formula_id, WORKFLOW_NORMALIZE)


@scaling_bp.route('/formulas/<formula_id>/yield/preview', methods=['POST'])
def yield_preview(formula_id):
    return _preview(formula_id, WORKFLOW_YIELD)


@scaling_bp.route('/formulas/<formula_id>/yield/commit', methods=['POST'])
def yield_commit(formula_id):
    return _commit(formula_id, WORKFLOW_YIELD)


@scaling_bp.route('/formulas/<formula_id>/history', methods=['GET'])
def formula_history(formula_id):
    store = _store()
    try:
        formula = store.get(formula_id)
        entries = store.history(formula_id)
    except FormulaNotFoundError as exc:
        return _error(str(exc), 404)
    return jsonify({
        'success': True,
        'data': {
            'formula_id': formula_id,
            'revision': formula.revision,
            'can_undo': bool(entries),
            'entries': [entry.to_dict() for entry in entries],
        },
    })


@scaling_bp.route('/formulas/<formula_id>/undo', methods=['POST'])
def undo_formula(formula_id):
    try:
        outcome = _store().undo(formula_id)
    except FormulaNotFoundError as exc:
        return _error(str(exc), 404)
    if outcome is None:
        return _error('Nothing to undo', 409)
    restored, entry = outcome
    return jsonify({
        'success': True,
        'data': {'formula': restored.to_dict(), 'undone': entry.message},
    })


def _preview(formula_id: str, workflow: str):
    data = _json_body()
    if data is None:
        return _error('A JSON object body is required', 400)
    try:
        formula = _store().get(formula_id)
    except FormulaNotFoundError as exc:
        return _error(str(exc), 404)

    scaling_request = build_request(workflow, data, _request_defaults(workflow))
    result = FormulaScalingService.preview(formula, scaling_request)
    return jsonify({
        'success': True,
        'data': {**result.to_dict(), 'request': scaling_request.to_dict()},
    })


def _commit(formula_id: str, workflow: str):
    """Recompute the preview server-side and fold it into the stored formula."""
    data = _json_body()
    if data is None:
        return _error('A JSON object body is required', 400)
    try:
        expected_revision = _expected_revision(data)
    except ValueError as exc:
        return _error(str(exc), 400)

    store = _store()
    try:
        formula = store.get(formula_id)
        if expected_revision is not None and expected_revision != formula.revision:
            raise StaleScalingResultError(
                formula_id=formula_id,
                expected_revision=expected_revision,
                actual_revision=formula.revision,
            )
        scaling_request = build_request(workflow, data, _request_defaults(workflow))
        result = FormulaScalingService.preview(formula, scaling_request)
        committed = FormulaScalingService.commit(
            formula,
            result,
            acknowledge_warnings=bool(data.get('acknowledge_warnings', data.get('acknowledgeWarnings', False))),
        )
        audit_message = describe_request(workflow, scaling_request)
        stored = store.replace(
            formula_id,
            committed,
            audit_message,
            expected_revision=formula.revision,
        )
    except FormulaNotFoundError as exc:
        return _error(str(exc), 404)
    except (StaleScalingResultError, FormulaRevisionConflictError) as exc:
        logger.warning("Rejected stale %s commit for formula %s: %s", workflow, formula_id, exc)
        return _error(str(exc), 409, code='stale_preview')
    except WarningsNotAcknowledgedError as exc:
        return _error(str(exc), 422, code=exc.code, warnings=list(exc.warnings))
    except CommitNotAllowedError as exc:
        return _error(
            str(exc),
            422,
            code=exc.code,
            warnings=list(result.warnings),
            data_quality_errors=list(result.data_quality_errors),
        )
    except ScalingCommitError as exc:
        return _error(str(exc), 422, code=exc.code)

    return jsonify({
        'success': True,
        'data': {
            'formula': stored.to_dict(),
            'result': result.to_dict(),
            'audit_message': audit_message,
        },
    })
