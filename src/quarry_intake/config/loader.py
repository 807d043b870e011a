from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

"""Config loader for config/intake.yml.

Responsibilities:
- Load YAML
- Validate against the packaged JSON schema (config_schema.json)
- Apply defaults for every optional key
- Let QUARRY_API_BASE_URL override api.base_url (read after .env is loaded)
"""

__all__ = [
    "ApiConfig",
    "ConfigError",
    "DEFAULT_EXTENSIONS",
    "FAIL_CLOSED",
    "FAIL_OPEN",
    "IntakeConfig",
    "LockCheckConfig",
    "default_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")

BASE_URL_ENV = "QUARRY_API_BASE_URL"
FAIL_OPEN = "fail_open"
FAIL_CLOSED = "fail_closed"
DEFAULT_EXTENSIONS = (".xlsx", ".xls")


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class ApiConfig:
    base_url: str = "http://localhost:8080"
    timeout_seconds: float = 30.0
    token_env: str | None = None  # env var holding a bearer token


@dataclass(frozen=True)
class LockCheckConfig:
    on_failure: str = FAIL_OPEN  # fail_open | fail_closed


@dataclass(frozen=True)
class IntakeConfig:
    api: ApiConfig = field(default_factory=ApiConfig)
    lock_check: LockCheckConfig = field(default_factory=LockCheckConfig)
    file_extensions: tuple[str, ...] = DEFAULT_EXTENSIONS
    domains: dict[str, dict[str, int]] = field(default_factory=dict)  # layout overrides


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against the packaged JSON schema.

    Raises:
        ConfigError: schema file missing or invalid, or the data violates it
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _apply_env(api: ApiConfig) -> ApiConfig:
    base_url = os.getenv(BASE_URL_ENV)
    if base_url:
        return ApiConfig(base_url=base_url, timeout_seconds=api.timeout_seconds, token_env=api.token_env)
    return api


def default_config() -> IntakeConfig:
    """Configuration used when no config file is present."""
    return IntakeConfig(api=_apply_env(ApiConfig()))


def load_config(path: Path) -> IntakeConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config validation failed: top level must be a mapping")

    _validate_config_schema(data)

    api_raw = data.get("api", {})
    api = ApiConfig(
        base_url=api_raw.get("base_url", ApiConfig.base_url),
        timeout_seconds=float(api_raw.get("timeout_seconds", ApiConfig.timeout_seconds)),
        token_env=api_raw.get("token_env"),
    )
    lock_raw = data.get("lock_check", {})
    extensions = tuple(e.lower() for e in data.get("file_extensions", DEFAULT_EXTENSIONS))
    return IntakeConfig(
        api=_apply_env(api),
        lock_check=LockCheckConfig(on_failure=lock_raw.get("on_failure", FAIL_OPEN)),
        file_extensions=extensions,
        domains={name: dict(layout) for name, layout in data.get("domains", {}).items()},
    )
