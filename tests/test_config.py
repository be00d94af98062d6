"""Tests for configuration management."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from govservices.config import DEFAULT_USER_AGENTS, GovServicesSettings, get_settings


def test_settings_defaults() -> None:
    """Test default settings values."""
    with patch.dict(os.environ, {}, clear=True):
        settings = GovServicesSettings(_env_file=None)

        assert settings.cache_enabled is True
        assert settings.cache_ttl_ms == 900_000
        assert settings.cache_ttl_seconds == 900.0
        assert settings.max_concurrent_requests == 5
        assert settings.default_language == "en"
        assert settings.classification_threshold == 0.7
        assert settings.batch_timeout_seconds == 60.0
        assert settings.request_delay_ms == 2000
        assert settings.request_delay_seconds == 2.0
        assert settings.request_timeout_seconds == 30.0
        assert settings.user_agents == DEFAULT_USER_AGENTS
        assert settings.proxy_servers == []
        assert settings.catalog_file is None
        assert settings.response_providers == ["catalog"]
        assert settings.log_level == "INFO"
        assert settings.log_json is False


def test_settings_from_env() -> None:
    """Test settings loaded from prefixed environment variables."""
    env_vars = {
        "GOVSERVICES_CACHE_ENABLED": "false",
        "GOVSERVICES_CACHE_TTL_MS": "1000",
        "GOVSERVICES_MAX_CONCURRENT_REQUESTS": "2",
        "GOVSERVICES_DEFAULT_LANGUAGE": "ar",
        "GOVSERVICES_LOG_LEVEL": "debug",
        "GOVSERVICES_PROXY_SERVERS": '["http://proxy-1:8080"]',
        "GOVSERVICES_RESPONSE_PROVIDERS": '["catalog", "static"]',
    }

    with patch.dict(os.environ, env_vars, clear=True):
        settings = GovServicesSettings(_env_file=None)

        assert settings.cache_enabled is False
        assert settings.cache_ttl_seconds == 1.0
        assert settings.max_concurrent_requests == 2
        assert settings.default_language == "ar"
        assert settings.log_level == "DEBUG"
        assert settings.proxy_servers == ["http://proxy-1:8080"]
        assert settings.response_providers == ["catalog", "static"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"max_concurrent_requests": 0},
        {"default_language": "fr"},
        {"log_level": "LOUD"},
        {"user_agents": []},
        {"classification_threshold": 1.5},
    ],
)
def test_invalid_settings_rejected(overrides) -> None:
    with patch.dict(os.environ, {}, clear=True):
        with pytest.raises(ValidationError):
            GovServicesSettings(_env_file=None, **overrides)


def test_get_settings_is_cached() -> None:
    get_settings.cache_clear()
    try:
        assert get_settings() is get_settings()
    finally:
        get_settings.cache_clear()
