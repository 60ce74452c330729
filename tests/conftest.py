"""
Pytest configuration and shared fixtures for formula workbench tests.
"""
import pytest

from formula_workbench import create_app
from formula_workbench.services.scaling import Formula

from .factories import row_payload


@pytest.fixture(scope='function')
def app():
    """Create and configure a new app instance for each test."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'LOG_LEVEL': 'DEBUG',
        'SCALING_DEFAULT_ROUNDING_STEP': 0.01,
        'SCALING_DEFAULT_ROUNDING_MODE': 'halfUp',
        'SCALING_HISTORY_LIMIT': 10,
        'SCALING_LOCKED_AS_ANCHOR': True,
        'SCALING_OVERRIDE_AS_ANCHOR': True,
    })
    yield app


@pytest.fixture
def client(app):
    """A test client for the app."""
    return app.test_client()


@pytest.fixture
def store(app):
    return app.extensions['formula_store']


@pytest.fixture
def sample_payload():
    """Rose accord: two free rows, one locked fixative, one group marker."""
    return {
        'id': 'rose',
        'name': 'Rose accord',
        'batch_size': 100,
        'items': [
            row_payload('a', 60.0, name='Phenyl ethyl alcohol', cost=0.05),
            row_payload('b', 30.0, name='Citronellol', cost=0.12),
            row_payload('c', 10.0, name='Iso E Super', cost=0.08, isLocked=True),
            {
                'id': 'grp',
                'type': 'formulaGroup',
                'formulaId': 'musk-base',
                'formulaName': 'Musk base',
                'ingredients': [row_payload('m1', 5.0)],
            },
        ],
    }


@pytest.fixture
def sample_formula(sample_payload):
    return Formula.from_payload(sample_payload)
