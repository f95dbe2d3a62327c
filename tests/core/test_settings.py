"""Tests for RelaySettings and the settings singleton."""

import pytest
from pydantic import ValidationError

from agent_relay.core import settings as settings_module
from agent_relay.core.settings import RelaySettings, get_settings, reload_settings
from agent_relay.delegation.types import DelegationConfig


@pytest.fixture(autouse=True)
def restore_settings():
    original = settings_module.settings
    yield
    settings_module.settings = original


class TestRelaySettingsDefaults:
    """Defaults match the documented delegation lifecycle values."""

    def test_defaults(self, monkeypatch):
        for name in (
            "AGENT_RELAY_LOG_LEVEL",
            "AGENT_RELAY_DELEGATION_TIMEOUT_SECONDS",
            "AGENT_RELAY_ORPHAN_MAX_IDLE_SECONDS",
            "AGENT_RELAY_REPORT_RETENTION_SECONDS",
            "AGENT_RELAY_MAX_AGENTS",
        ):
            monkeypatch.delenv(name, raising=False)
        s = RelaySettings(_env_file=None)
        assert s.delegation_timeout_seconds == 300.0
        assert s.orphan_max_idle_seconds == 3600.0
        assert s.report_retention_seconds == 3600.0
        assert s.max_agents == 20
        assert s.log_level == "INFO"


class TestRelaySettingsEnvironment:
    """Values are read from AGENT_RELAY_* environment variables."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("AGENT_RELAY_DELEGATION_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("AGENT_RELAY_LOG_LEVEL", "debug")
        s = RelaySettings(_env_file=None)
        assert s.delegation_timeout_seconds == 12.5
        assert s.log_level == "DEBUG"

    def test_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("AGENT_RELAY_MAX_AGENTS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("AGENT_RELAY_MAX_AGENTS=5\n")
        s = reload_settings(env_file=env_file)
        assert s.max_agents == 5
        assert get_settings() is s


class TestRelaySettingsValidation:
    """Invalid values are rejected."""

    @pytest.mark.parametrize(
        "field",
        ["delegation_timeout_seconds", "orphan_max_idle_seconds", "report_retention_seconds"],
    )
    def test_non_positive_duration_rejected(self, field):
        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None, **{field: 0})

    def test_non_positive_max_agents_rejected(self):
        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None, max_agents=0)

    def test_unknown_log_level_rejected(self):
        with pytest.raises(ValidationError):
            RelaySettings(_env_file=None, log_level="chatty")


class TestDelegationConfigFromSettings:
    """DelegationConfig is built from settings."""

    def test_from_settings(self):
        s = RelaySettings(
            _env_file=None,
            delegation_timeout_seconds=5,
            orphan_max_idle_seconds=60,
            report_retention_seconds=30,
        )
        config = DelegationConfig.from_settings(s)
        assert config.timeout_seconds == 5
        assert config.orphan_max_idle_seconds == 60
        assert config.report_retention_seconds == 30

    def test_overrides_win(self):
        s = RelaySettings(_env_file=None, delegation_timeout_seconds=5)
        assert DelegationConfig.from_settings(s, timeout_seconds=1).timeout_seconds == 1

    def test_invalid_config_rejected(self):
        with pytest.raises(ValueError, match="timeout_seconds"):
            DelegationConfig(timeout_seconds=0)
