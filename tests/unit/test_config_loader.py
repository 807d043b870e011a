from __future__ import annotations

from pathlib import Path

import pytest

from quarry_intake.config.loader import (
    DEFAULT_EXTENSIONS,
    ConfigError,
    IntakeConfig,
    default_config,
    load_config,
)


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert isinstance(cfg, IntakeConfig)
    assert cfg.api.base_url == "http://backend.test"
    assert cfg.api.timeout_seconds == 5.0
    assert cfg.lock_check.on_failure == "fail_open"
    assert cfg.file_extensions == (".xlsx", ".xls")
    assert cfg.domains == {}


def test_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError, match="not found"):
        load_config(temp_workdir / "config" / "missing.yml")


def test_invalid_yaml(temp_workdir: Path):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text("api: [unclosed", encoding="utf-8")
    with pytest.raises(ConfigError, match="invalid yaml"):
        load_config(p)


def test_empty_file_uses_defaults(temp_workdir: Path):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text("", encoding="utf-8")
    cfg = load_config(p)
    assert cfg.api.base_url == "http://localhost:8080"
    assert cfg.file_extensions == DEFAULT_EXTENSIONS


def test_extensions_are_lowercased(temp_workdir: Path):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text("file_extensions: [.XLSX]\n", encoding="utf-8")
    assert load_config(p).file_extensions == (".xlsx",)


def test_domain_layouts(temp_workdir: Path):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text("domains:\n  sales: {sheet_index: 2, first_row: 3}\n", encoding="utf-8")
    assert load_config(p).domains == {"sales": {"sheet_index": 2, "first_row": 3}}


def test_env_overrides_base_url(write_config: Path, monkeypatch):
    monkeypatch.setenv("QUARRY_API_BASE_URL", "http://override.test")
    assert load_config(write_config).api.base_url == "http://override.test"
    assert default_config().api.base_url == "http://override.test"


@pytest.mark.parametrize(
    "text",
    [
        "unknown_key: 1\n",
        "api: {timeout_seconds: 5}\n",
        "api: {base_url: http://x, timeout_seconds: 0}\n",
        "lock_check: {on_failure: sometimes}\n",
        "file_extensions: [xlsx]\n",
        "domains: {payroll: {sheet_index: 0}}\n",
        "domains: {sales: {sheet_index: -1}}\n",
        "domains: {sales: {first_row: 0}}\n",
    ],
)
def test_schema_violations(temp_workdir: Path, text: str):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError, match="config validation failed"):
        load_config(p)


def test_top_level_must_be_mapping(temp_workdir: Path):
    p = temp_workdir / "config" / "intake.yml"
    p.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(p)
