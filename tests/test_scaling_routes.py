import pytest

from .factories import row_payload


@pytest.fixture
def loaded(client, sample_payload):
    response = client.put('/api/formulas/rose', json=sample_payload)
    assert response.status_code == 200
    return response.get_json()['data']


def test_put_and_get_formula(client, loaded):
    assert loaded['id'] == 'rose'
    assert loaded['revision'] == 0
    assert [item['id'] for item in loaded['items']] == ['a', 'b', 'c', 'grp']

    response = client.get('/api/formulas/rose')
    body = response.get_json()
    assert response.status_code == 200
    assert body['success'] is True
    assert body['data']['items'][3]['type'] == 'formulaGroup'


def test_group_marker_round_trips_unchanged(client, sample_payload):
    group = {
        'id': 'grp',
        'type': 'formulaGroup',
        'formulaId': 'musk-base',
        'formulaName': 'Musk base',
        'ingredients': [{**row_payload('m1', 5.0), 'ingredient': {'name': 'Habanolide', 'cas': '111879-80-2', 'ifraCategory': 4}}],
        'metadata': {'author': 'lab', 'version': 3},
        'isExpanded': True,
    }
    sample_payload['items'][3] = group
    client.put('/api/formulas/rose', json=sample_payload)

    stored = client.get('/api/formulas/rose').get_json()['data']['items'][3]
    assert stored == group

    response = client.post('/api/formulas/rose/normalize/commit', json={'mode': 'absoluteAmount', 'targetValue': 200})
    assert response.status_code == 200
    assert response.get_json()['data']['formula']['items'][3] == group


def test_put_uses_url_id(client):
    response = client.put('/api/formulas/from-url', json={'formula': {'id': 'ignored', 'items': []}})
    assert response.get_json()['data']['id'] == 'from-url'


def test_unknown_formula_returns_404(client):
    response = client.get('/api/formulas/nope')
    assert response.status_code == 404
    assert response.get_json()['success'] is False

    response = client.post('/api/formulas/nope/normalize/preview', json={})
    assert response.status_code == 404


def test_malformed_body_returns_400(client, loaded):
    response = client.post(
        '/api/formulas/rose/normalize/preview',
        data='not json',
        content_type='application/json',
    )
    assert response.status_code == 400
    assert response.get_json()['success'] is False

    response = client.put('/api/formulas/rose', json=['not', 'an', 'object'])
    assert response.status_code == 400


def test_normalize_preview_returns_result(client, loaded):
    response = client.post('/api/formulas/rose/normalize/preview', json={
        'mode': 'absoluteAmount', 'targetValue': 200, 'targetUnit': 'g',
    })
    body = response.get_json()
    assert response.status_code == 200
    data = body['data']
    assert data['blocked'] is False
    assert data['can_commit'] is True
    assert data['scale_factor'] == pytest.approx(190 / 90)
    assert data['request']['rounding'] == {'step': 0.01, 'mode': 'halfUp'}
    locked = next(change for change in data['row_changes'] if change['row_id'] == 'c')
    assert locked['new_quantity'] == 10
    assert locked['is_anchor'] is True


def test_preview_is_blocked_by_missing_ingredient_data(client):
    client.put('/api/formulas/bad', json={'items': [row_payload('a', 10), {'id': 'x', 'quantity': 4}]})
    response = client.post('/api/formulas/bad/normalize/preview', json={'mode': 'percentage'})

    assert response.status_code == 200
    data = response.get_json()['data']
    assert data['blocked'] is True
    assert data['can_commit'] is False
    assert data['row_changes'] == []
    assert data['data_quality_errors']


def test_normalize_commit_replaces_formula_and_records_history(client, loaded):
    response = client.post('/api/formulas/rose/normalize/commit', json={
        'mode': 'absoluteAmount', 'targetValue': 200, 'revision': 0,
    })
    body = response.get_json()
    assert response.status_code == 200
    formula = body['data']['formula']
    assert formula['revision'] == 1
    assert sum(item['quantity'] for item in formula['items'] if item.get('type') != 'formulaGroup') == pytest.approx(200)
    assert body['data']['audit_message'].startswith('Normalized to 200g')

    history = client.get('/api/formulas/rose/history').get_json()['data']
    assert history['revision'] == 1
    assert history['can_undo'] is True
    assert history['entries'][0]['message'] == body['data']['audit_message']


def test_commit_with_stale_revision_returns_409(client, loaded):
    client.post('/api/formulas/rose/normalize/commit', json={'mode': 'absoluteAmount', 'targetValue': 150})
    response = client.post('/api/formulas/rose/normalize/commit', json={
        'mode': 'absoluteAmount', 'targetValue': 300, 'revision': 0,
    })
    assert response.status_code == 409
    assert response.get_json()['code'] == 'stale_preview'


def test_commit_with_bad_revision_returns_400(client, loaded):
    response = client.post('/api/formulas/rose/normalize/commit', json={'revision': 'abc'})
    assert response.status_code == 400


@pytest.mark.parametrize('revision', [1.9, 0.5, True, '1.5', [0]])
def test_commit_with_non_integer_revision_returns_400(client, loaded, revision):
    response = client.post('/api/formulas/rose/normalize/commit', json={
        'mode': 'absoluteAmount', 'targetValue': 200, 'revision': revision,
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == 'revision must be an integer'

    assert client.get('/api/formulas/rose').get_json()['data']['revision'] == 0


def test_unacknowledged_warnings_return_422(client):
    client.put('/api/formulas/mx', json={'items': [
        row_payload('a', 50, name='Oakmoss', maxPercentage=40),
        row_payload('b', 50),
    ]})
    response = client.post('/api/formulas/mx/normalize/commit', json={'mode': 'percentage'})
    body = response.get_json()
    assert response.status_code == 422
    assert body['code'] == 'warnings_not_acknowledged'
    assert body['warnings'] == ['Oakmoss exceeds maximum percentage limit']

    response = client.post('/api/formulas/mx/normalize/commit', json={
        'mode': 'percentage', 'acknowledge_warnings': True,
    })
    assert response.status_code == 200


def test_non_committable_preview_returns_422(client):
    client.put('/api/formulas/locked', json={'items': [row_payload('a', 10, isLocked=True)]})
    response = client.post('/api/formulas/locked/normalize/commit', json={
        'mode': 'absoluteAmount', 'targetValue': 100, 'acknowledgeWarnings': True,
    })
    body = response.get_json()
    assert response.status_code == 422
    assert body['code'] == 'not_committable'
    assert body['warnings']


def test_yield_commit_sets_batch_size(client, loaded):
    response = client.post('/api/formulas/rose/yield/commit', json={
        'targetValue': 1, 'targetUnit': 'kg', 'lossFactorPercent': 10,
    })
    body = response.get_json()
    assert response.status_code == 200
    formula = body['data']['formula']
    assert formula['batch_size'] == 1000
    rows = [item for item in formula['items'] if item.get('type') != 'formulaGroup']
    assert sum(row['quantity'] for row in rows) == pytest.approx(1100)
    assert body['data']['audit_message'] == 'Yielded to 1kg, loss=10%, rounding=0.1, scope=allUnlocked'


def test_yield_preview_scales_locked_rows_by_default(client, loaded):
    response = client.post('/api/formulas/rose/yield/preview', json={'targetValue': 200})
    data = response.get_json()['data']
    assert data['mode'] == 'yield'
    locked = next(change for change in data['row_changes'] if change['row_id'] == 'c')
    assert locked['new_quantity'] == 20
    assert locked['is_anchor'] is False


def test_undo_restores_previous_formula(client, loaded):
    client.post('/api/formulas/rose/normalize/commit', json={'mode': 'absoluteAmount', 'targetValue': 500})
    response = client.post('/api/formulas/rose/undo')
    body = response.get_json()
    assert response.status_code == 200
    assert body['data']['formula']['items'][0]['quantity'] == 60
    assert body['data']['formula']['revision'] == 2
    assert body['data']['undone'].startswith('Normalized to 500g')

    response = client.post('/api/formulas/rose/undo')
    assert response.status_code == 409


def test_config_defaults_apply_to_normalize(app, client, loaded):
    app.config['SCALING_DEFAULT_ROUNDING_STEP'] = None
    app.config['SCALING_LOCKED_AS_ANCHOR'] = False
    response = client.post('/api/formulas/rose/normalize/preview', json={'mode': 'absoluteAmount', 'targetValue': 300})
    data = response.get_json()['data']
    assert data['request']['rounding']['step'] is None
    assert data['request']['anchor_policy']['treat_locked_as_anchor'] is False
    assert data['scale_factor'] == pytest.approx(3.0)


def test_policy_endpoint_exposes_workflow_defaults(client):
    data = client.get('/api/scaling/policy').get_json()['data']
    assert data['unit_factors'] == {'g': 1.0, 'kg': 1000.0, 'L': 1000.0}
    assert data['workflow_defaults']['yield']['rounding_step'] == 0.1


def test_health_endpoint(client):
    response = client.get('/health')
    assert response.status_code == 200
    assert response.get_json()['success'] is True
