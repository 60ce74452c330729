import pytest

from formula_workbench.config import (
    EnvReader,
    resolve_environment,
    resolve_rounding_mode,
    resolve_rounding_step,
)


def test_env_reader_typed_values():
    reader = EnvReader({'A': ' 42 ', 'B': '0.5', 'C': 'yes', 'D': ''})
    assert reader.int('A') == 42
    assert reader.float('B') == 0.5
    assert reader.bool('C') is True
    assert reader.str('D', 'fallback') == 'fallback'
    assert reader.warnings == []


def test_env_reader_collects_warnings_instead_of_raising():
    reader = EnvReader({'SCALING_HISTORY_LIMIT': 'many', 'SCALING_LOCKED_AS_ANCHOR': 'maybe'})
    assert reader.int('SCALING_HISTORY_LIMIT', 10) == 10
    assert reader.bool('SCALING_LOCKED_AS_ANCHOR', True) is True
    assert len(reader.warnings) == 2


def test_invalid_flask_env_is_rejected():
    with pytest.raises(RuntimeError):
        resolve_environment(EnvReader({'FLASK_ENV': 'qa'}))


def test_flask_env_defaults_to_development():
    info = resolve_environment(EnvReader({}))
    assert info.name == 'development'


def test_rounding_step_setting():
    assert resolve_rounding_step(EnvReader({})) == 0.01
    assert resolve_rounding_step(EnvReader({'SCALING_DEFAULT_ROUNDING_STEP': '0.1'})) == 0.1
    assert resolve_rounding_step(EnvReader({'SCALING_DEFAULT_ROUNDING_STEP': 'none'})) is None

    reader = EnvReader({'SCALING_DEFAULT_ROUNDING_STEP': '-1'})
    assert resolve_rounding_step(reader) == 0.01
    assert reader.warnings


def test_rounding_mode_setting():
    assert resolve_rounding_mode(EnvReader({'SCALING_DEFAULT_ROUNDING_MODE': 'bankers'})) == 'bankers'
    reader = EnvReader({'SCALING_DEFAULT_ROUNDING_MODE': 'ceiling'})
    assert resolve_rounding_mode(reader) == 'halfUp'
    assert reader.warnings


def test_app_uses_configured_history_limit(app):
    assert app.extensions['formula_store']._history_limit == 10
