from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

_DEFAULT_ENV = "development"
_ENV_KEY = "FLASK_ENV"
_VALID_ENVS = {"development", "testing", "staging", "production"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}
_NO_ROUNDING_VALUES = {"none", "off", "exact"}
_ROUNDING_MODES = {"halfup", "half_up", "down", "floor", "bankers", "half_even", "halfeven"}


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    source: str
    raw_value: str


class EnvReader:
    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(os.environ if data is None else data)
        self.warnings: list[str] = []

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def _value(self, key: str) -> str | None:
        value = self._data.get(key)
        if value is None:
            return None
        stripped = value.strip()
        return stripped if stripped else None

    def str(self, key: str, default: str | None = None) -> str | None:
        value = self._value(key)
        return value if value is not None else default

    def int(self, key: str, default: int = 0) -> int:
        value = self._value(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            self.warn(f"{key} expected integer but received {value!r}; falling back to {default}.")
            return default

    def float(self, key: str, default: float = 0.0) -> float:
        value = self._value(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            self.warn(f"{key} expected float but received {value!r}; falling back to {default}.")
            return default

    def bool(self, key: str, default: bool = False) -> bool:
        value = self._value(key)
        if value is None:
            return default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        self.warn(f"{key} expected boolean but received {value!r}; falling back to {default}.")
        return default


def _normalized_env(value: str | None, *, default: str = _DEFAULT_ENV) -> str:
    if not value:
        return default
    return value.strip().lower() or default


def resolve_environment(reader: EnvReader) -> EnvironmentInfo:
    raw_value = reader.str(_ENV_KEY, _DEFAULT_ENV) or _DEFAULT_ENV
    normalized = _normalized_env(raw_value)
    if normalized not in _VALID_ENVS:
        raise RuntimeError(
            f"Invalid {_ENV_KEY}={raw_value!r}. Expected one of {sorted(_VALID_ENVS)}."
        )
    return EnvironmentInfo(name=normalized, source=_ENV_KEY, raw_value=raw_value)


def resolve_rounding_step(reader: EnvReader, default: float | None = 0.01) -> float | None:
    """Positive float, or None for "no rounding"; bad values warn and fall back."""
    key = "SCALING_DEFAULT_ROUNDING_STEP"
    value = reader.str(key)
    if value is None:
        return default
    if value.lower() in _NO_ROUNDING_VALUES:
        return None
    step = reader.float(key, default if default is not None else 0.0)
    if step <= 0:
        reader.warn(f"{key} must be positive but received {value!r}; falling back to {default}.")
        return default
    return step


def resolve_rounding_mode(reader: EnvReader, default: str = "halfUp") -> str:
    key = "SCALING_DEFAULT_ROUNDING_MODE"
    value = reader.str(key)
    if value is None:
        return default
    if value.lower() not in _ROUNDING_MODES:
        reader.warn(f"{key} expected one of halfUp, down, bankers but received {value!r}; falling back to {default}.")
        return default
    return value


env = EnvReader()
ENV_INFO = resolve_environment(env)


class BaseConfig:
    FLASK_ENV = ENV_INFO.name
    SECRET_KEY = env.str('SECRET_KEY') or env.str('FLASK_SECRET_KEY', 'devkey-please-change-in-production')
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024

    LOG_LEVEL = env.str('LOG_LEVEL', 'WARNING') or 'WARNING'

    SCALING_DEFAULT_ROUNDING_STEP = resolve_rounding_step(env)
    SCALING_DEFAULT_ROUNDING_MODE = resolve_rounding_mode(env)
    SCALING_HISTORY_LIMIT = max(0, env.int('SCALING_HISTORY_LIMIT', 10))
    SCALING_LOCKED_AS_ANCHOR = env.bool('SCALING_LOCKED_AS_ANCHOR', True)
    SCALING_OVERRIDE_AS_ANCHOR = env.bool('SCALING_OVERRIDE_AS_ANCHOR', True)


class DevelopmentConfig(BaseConfig):
    ENV = 'development'
    DEBUG = True
    DEVELOPMENT = True
    LOG_LEVEL = env.str('LOG_LEVEL', 'DEBUG') or 'DEBUG'


class TestingConfig(BaseConfig):
    ENV = 'testing'
    TESTING = True


class StagingConfig(BaseConfig):
    ENV = 'staging'
    DEBUG = False
    TESTING = False
    LOG_LEVEL = env.str('LOG_LEVEL', 'INFO') or 'INFO'


class ProductionConfig(BaseConfig):
    ENV = 'production'
    DEBUG = False
    TESTING = False
    LOG_LEVEL = env.str('LOG_LEVEL', 'INFO') or 'INFO'


config_map = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'staging': StagingConfig,
    'production': ProductionConfig,
}


Config = config_map[ENV_INFO.name]
ENV_DIAGNOSTICS = {
    'active': ENV_INFO.name,
    'source': ENV_INFO.source,
    'variables': {ENV_INFO.source: ENV_INFO.raw_value},
    'warnings': tuple(env.warnings),
}
