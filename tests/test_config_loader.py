from __future__ import annotations

import json
from pathlib import Path

import pytest

from adaptive_tutor.config.loader import OVERRIDES_ENV_VAR, load_settings, merge_dicts


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch) -> Path:
    """Empty working directory with no default config and no env overrides."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(OVERRIDES_ENV_VAR, raising=False)
    return tmp_path


def test_builtin_defaults_without_config_file(workdir):
    settings = load_settings()

    assert settings.cache.ttl_seconds == 1800
    assert settings.cache.key_length == 100
    assert settings.retry.max_retries == 2
    assert settings.throttle.min_delay_seconds == 1.0
    assert settings.progress.review_ratio == 0.8


def test_default_file_is_read_when_present(workdir):
    config_dir = workdir / "config"
    config_dir.mkdir()
    (config_dir / "default.yaml").write_text("cache:\n  max_size: 50\nlogging:\n  level: debug\n")

    settings = load_settings()

    assert settings.cache.max_size == 50
    assert settings.cache.ttl_seconds == 1800, "Unset keys keep their defaults"
    assert settings.logging.level == "DEBUG"


def test_explicit_missing_file_raises(workdir):
    with pytest.raises(FileNotFoundError):
        load_settings(workdir / "missing.yaml")


def test_env_overrides_are_merged(workdir, monkeypatch):
    path = workdir / "tutor.yaml"
    path.write_text("retry:\n  max_retries: 4\n  backoff_base_seconds: 1.5\n")
    monkeypatch.setenv(OVERRIDES_ENV_VAR, json.dumps({"retry": {"max_retries": 3}}))

    settings = load_settings(path)

    assert settings.retry.max_retries == 3
    assert settings.retry.backoff_base_seconds == 1.5


def test_malformed_overrides_raise(workdir, monkeypatch):
    monkeypatch.setenv(OVERRIDES_ENV_VAR, "{not json")
    with pytest.raises(ValueError):
        load_settings()


def test_invalid_values_raise_value_error(workdir):
    path = workdir / "bad.yaml"
    path.write_text("cache:\n  max_size: 0\n")

    with pytest.raises(ValueError, match="Invalid configuration"):
        load_settings(path)


def test_merge_dicts_is_recursive():
    merged = merge_dicts({"a": {"b": 1, "c": 2}, "d": 1}, {"a": {"b": 5}})
    assert merged == {"a": {"b": 5, "c": 2}, "d": 1}
