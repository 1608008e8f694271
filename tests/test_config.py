"""
Unit tests for environment configuration and logging setup.
"""

import logging
import os
import sys

import pytest

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from entitycaps.config.provider import APIConfig, DiscoveryConfig, EnvConfigProvider
from entitycaps.logging_config import HealthCheckFilter, get_logging_config

ENV_VARS = [
    "ENTITYCAPS_QUERY_TIMEOUT",
    "ENTITYCAPS_MAX_RETRIES",
    "ENTITYCAPS_RETRY_ON_ERROR",
    "ENTITYCAPS_SWEEP_INTERVAL",
    "ENTITYCAPS_DIAGNOSTICS_HISTORY",
    "ENTITYCAPS_MAX_QUERIES_PER_FETCH",
    "API_HOST",
    "API_PORT",
    "LOG_LEVEL",
    "ENTITYCAPS_LOG_LEVELS",
    "DEBUG",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# =============================================================================
# Discovery Config Tests
# =============================================================================


class TestDiscoveryConfig:
    def test_defaults(self, clean_env):
        config = EnvConfigProvider().get_discovery_config()

        assert config == DiscoveryConfig()
        assert config.query_timeout is None
        assert config.expiry_enabled is False

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("ENTITYCAPS_QUERY_TIMEOUT", "45")
        clean_env.setenv("ENTITYCAPS_MAX_RETRIES", "2")
        clean_env.setenv("ENTITYCAPS_RETRY_ON_ERROR", "TRUE")
        clean_env.setenv("ENTITYCAPS_SWEEP_INTERVAL", "0.5")
        clean_env.setenv("ENTITYCAPS_DIAGNOSTICS_HISTORY", "20")
        clean_env.setenv("ENTITYCAPS_MAX_QUERIES_PER_FETCH", "50")

        config = EnvConfigProvider().get_discovery_config()

        assert config.query_timeout == 45.0
        assert config.max_retries == 2
        assert config.retry_on_error is True
        assert config.sweep_interval == 0.5
        assert config.diagnostics_history == 20
        assert config.max_queries_per_fetch == 50
        assert config.expiry_enabled is True

    def test_zero_timeout_means_no_expiry(self, clean_env):
        clean_env.setenv("ENTITYCAPS_QUERY_TIMEOUT", "0")

        assert EnvConfigProvider().get_discovery_config().query_timeout is None

    @pytest.mark.parametrize(
        "name, value",
        [
            ("ENTITYCAPS_QUERY_TIMEOUT", "soon"),
            ("ENTITYCAPS_QUERY_TIMEOUT", "-1"),
            ("ENTITYCAPS_MAX_RETRIES", "1.5"),
            ("ENTITYCAPS_SWEEP_INTERVAL", "0"),
            ("ENTITYCAPS_DIAGNOSTICS_HISTORY", "0"),
            ("ENTITYCAPS_MAX_QUERIES_PER_FETCH", "0"),
        ],
    )
    def test_invalid_values(self, clean_env, name, value):
        clean_env.setenv(name, value)

        with pytest.raises(ValueError, match=name):
            EnvConfigProvider().get_discovery_config()


# =============================================================================
# API Config Tests
# =============================================================================


class TestAPIConfig:
    def test_defaults(self, clean_env):
        assert EnvConfigProvider().get_api_config() == APIConfig()

    def test_values_from_environment(self, clean_env):
        clean_env.setenv("API_HOST", "127.0.0.1")
        clean_env.setenv("API_PORT", "9090")
        clean_env.setenv("DEBUG", "true")
        clean_env.setenv("LOG_LEVEL", "debug")

        config = EnvConfigProvider().get_api_config()

        assert config.host == "127.0.0.1"
        assert config.port == 9090
        assert config.debug is True
        assert config.log_level == "DEBUG"

    def test_module_log_levels_from_environment(self, clean_env):
        clean_env.setenv("ENTITYCAPS_LOG_LEVELS", "tracker=debug, diagnostics=WARNING,")

        config = EnvConfigProvider().get_api_config()

        assert config.module_log_levels == {"tracker": "DEBUG", "diagnostics": "WARNING"}

    @pytest.mark.parametrize("value", ["tracker", "tracker=LOUD", "=DEBUG"])
    def test_invalid_module_log_levels(self, clean_env, value):
        clean_env.setenv("ENTITYCAPS_LOG_LEVELS", value)

        with pytest.raises(ValueError, match="ENTITYCAPS_LOG_LEVELS"):
            EnvConfigProvider().get_api_config()

    def test_invalid_port(self, clean_env):
        clean_env.setenv("API_PORT", "http")

        with pytest.raises(ValueError, match="API_PORT"):
            EnvConfigProvider().get_api_config()


# =============================================================================
# Logging Config Tests
# =============================================================================


def access_record(message):
    return logging.LogRecord("uvicorn.access", logging.INFO, __file__, 0, message, None, None)


class TestLoggingConfig:
    def test_health_checks_are_filtered(self):
        health_filter = HealthCheckFilter()

        assert health_filter.filter(access_record('"GET /healthz HTTP/1.1" 200')) is False
        assert health_filter.filter(access_record('"GET /health HTTP/1.1" 200')) is False
        assert health_filter.filter(access_record('"GET /metrics HTTP/1.1" 200')) is False
        assert health_filter.filter(access_record('"GET /capabilities HTTP/1.1" 200')) is True

    def test_other_loggers_are_not_filtered(self):
        record = logging.LogRecord(
            "entitycaps.api", logging.INFO, __file__, 0, "GET /health", None, None
        )
        assert HealthCheckFilter().filter(record) is True

    def test_level_applies_to_package_logger(self):
        config = get_logging_config("DEBUG")

        assert config["loggers"]["entitycaps"]["level"] == "DEBUG"
        assert config["handlers"]["access"]["filters"] == ["health_check_filter"]

    def test_no_module_levels_by_default(self):
        loggers = get_logging_config()["loggers"]

        assert not [name for name in loggers if name.startswith("entitycaps.")]

    def test_module_levels_override_package_level(self):
        config = get_logging_config(
            "INFO", {"tracker": "DEBUG", "entitycaps.diagnostics": "WARNING"}
        )
        loggers = config["loggers"]

        assert loggers["entitycaps"]["level"] == "INFO"
        assert loggers["entitycaps.tracker"] == {"level": "DEBUG"}
        assert loggers["entitycaps.diagnostics"] == {"level": "WARNING"}
