"""Tests for environment-backed settings."""

import dataclasses

import pytest

from config import OVERPASS_ENDPOINTS, Settings, load_settings
from orchestrator.errors import ConfigurationError

ENV_VARS = (
    "OPENAI_API_KEY", "OPENAI_MODEL", "OPENAI_TEMPERATURE", "LLM_TIMEOUT_SECONDS", "MAX_ITERATIONS",
    "TOOL_WORKERS", "NOMINATIM_URL", "OVERPASS_ENDPOINTS", "OPEN_ELEVATION_URL", "HTTP_USER_AGENT", "LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()

    assert settings.openai_api_key is None
    assert settings.max_iterations == 6
    assert settings.overpass_endpoints == OVERPASS_ENDPOINTS
    assert len(settings.overpass_endpoints) == 3


def test_env_overrides(clean_env):
    clean_env.setenv("OPENAI_API_KEY", "sk-x")
    clean_env.setenv("MAX_ITERATIONS", "4")
    clean_env.setenv("OVERPASS_ENDPOINTS", " http://a , ,http://b ")
    clean_env.setenv("HTTP_USER_AGENT", "Tester/2")

    settings = load_settings()

    assert settings.openai_api_key == "sk-x"
    assert settings.max_iterations == 4
    assert settings.overpass_endpoints == ("http://a", "http://b")
    assert settings.user_agent == "Tester/2"


def test_bad_number_is_configuration_error(clean_env):
    clean_env.setenv("MAX_ITERATIONS", "many")

    with pytest.raises(ConfigurationError):
        load_settings()


def test_settings_are_read_only():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Settings().openai_model = "other"


@pytest.mark.parametrize("kwargs", [
    {},
    {"openai_api_key": "k", "overpass_endpoints": ()},
    {"openai_api_key": "k", "max_iterations": 0},
])
def test_validate_rejects_incomplete_settings(kwargs):
    with pytest.raises(ConfigurationError):
        Settings(**kwargs).validate()


def test_validate_accepts_complete_settings():
    Settings(openai_api_key="k").validate()
