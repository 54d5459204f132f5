from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

_DEFAULT_ENV = "development"
_ENV_KEY = "FLASK_ENV"
_VALID_ENVS = {"development", "testing", "staging", "production"}
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EnvironmentInfo:
    name: str
    source: str
    raw_value: str


class EnvReader:
    """Typed environment lookups that record warnings instead of failing."""

    def __init__(self, data: Mapping[str, str] | None = None):
        self._data = dict(data if data is not None else os.environ)
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


def resolve_environment(reader: EnvReader) -> EnvironmentInfo:
    raw_value = reader.str(_ENV_KEY, _DEFAULT_ENV) or _DEFAULT_ENV
    normalized = raw_value.strip().lower() or _DEFAULT_ENV
    if normalized not in _VALID_ENVS:
        raise RuntimeError(
            f"Invalid {_ENV_KEY}={raw_value!r}. Expected one of {sorted(_VALID_ENVS)}."
        )
    return EnvironmentInfo(name=normalized, source=_ENV_KEY, raw_value=raw_value)


env = EnvReader()
ENV_INFO = resolve_environment(env)


class BaseConfig:
    ENV = ENV_INFO.name
    FLASK_ENV = ENV_INFO.name
    SECRET_KEY = env.str("FLASK_SECRET_KEY", "devkey-please-change-in-production")
    JSON_SORT_KEYS = False

    LOG_LEVEL = env.str("LOG_LEVEL", "INFO")

    # Snapshot persistence; export/import is the only durability boundary.
    FEATURE_SNAPSHOT_PATH = env.str("FEATURE_SNAPSHOT_PATH", "instance/feature_snapshot.json")
    FEATURE_SNAPSHOT_AUTOLOAD = env.bool("FEATURE_SNAPSHOT_AUTOLOAD", False)
    FEATURE_SNAPSHOT_AUTOSAVE = env.bool("FEATURE_SNAPSHOT_AUTOSAVE", False)

    RATELIMIT_ENABLED = env.bool("RATELIMIT_ENABLED", True)
    RATELIMIT_STORAGE_URI = env.str("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = env.str("RATELIMIT_DEFAULT", "5000 per hour;1000 per minute")
    FEATURE_WRITE_RATE_LIMIT = env.str("FEATURE_WRITE_RATE_LIMIT", "120 per minute")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = env.str("LOG_LEVEL", "DEBUG")


class TestingConfig(BaseConfig):
    TESTING = True
    RATELIMIT_ENABLED = False
    FEATURE_SNAPSHOT_AUTOLOAD = False
    FEATURE_SNAPSHOT_AUTOSAVE = False


class StagingConfig(BaseConfig):
    DEBUG = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    FEATURE_SNAPSHOT_AUTOLOAD = env.bool("FEATURE_SNAPSHOT_AUTOLOAD", True)
    FEATURE_SNAPSHOT_AUTOSAVE = env.bool("FEATURE_SNAPSHOT_AUTOSAVE", True)


config_map = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "staging": StagingConfig,
    "production": ProductionConfig,
}

Config = config_map.get(ENV_INFO.name, DevelopmentConfig)

ENV_DIAGNOSTICS = {
    "active": ENV_INFO.name,
    "source": ENV_INFO.source,
    "warnings": tuple(env.warnings),
}
