"""
Unit tests for collector settings and target construction.
"""
import pytest

from meraki_collector.config import (
    DEFAULT_METRICSETS,
    CollectionSettings,
    CollectorSettings,
    DashboardAPISettings,
)
from meraki_collector.exceptions import TerminalUpstreamError
from meraki_collector.target import OrganizationTarget, build_targets


class TestSettings:
    """Test settings defaults and validation."""

    def test_api_defaults(self, monkeypatch):
        monkeypatch.delenv("MERAKI_API_KEY", raising=False)
        settings = DashboardAPISettings()

        assert settings.base_url == "https://api.meraki.com"
        assert settings.max_attempts == 5
        assert settings.requests_per_second == 10.0

    def test_collection_defaults(self):
        settings = CollectionSettings()

        assert settings.period == 60.0
        assert settings.window_margin == 10.0
        assert settings.max_concurrent_organizations is None
        assert settings.metricsets == DEFAULT_METRICSETS

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("MERAKI_COLLECTION_PERIOD", "300")
        monkeypatch.setenv("MERAKI_MAX_ATTEMPTS", "3")

        assert CollectionSettings().period == 300.0
        assert DashboardAPISettings().max_attempts == 3

    def test_validate_settings(self):
        settings = CollectorSettings(
            organizations=[],
            api=DashboardAPISettings(api_key=None),
            collection=CollectionSettings(metricsets=["device_status", "bogus"]),
        )

        errors = settings.validate_settings()

        assert "No organizations configured" in errors
        assert "MERAKI_API_KEY is not set" in errors
        assert "Unknown metricsets: bogus" in errors

    def test_window_settings(self):
        settings = CollectionSettings()

        assert settings.max_window == 300.0
        assert settings.late_arrival_grace == 10.0
        assert settings.skip_disabled_organizations is True

    def test_period_beyond_max_window_rejected(self):
        settings = CollectorSettings(
            organizations=["org1"],
            api=DashboardAPISettings(api_key="key"),
            collection=CollectionSettings(period=295, window_margin=10),
        )

        assert settings.validate_settings() == [
            "Collection period plus window margin exceeds max_window"
        ]

    def test_valid_settings(self):
        settings = CollectorSettings(
            organizations=["org1"],
            api=DashboardAPISettings(api_key="key"),
        )

        assert settings.validate_settings() == []


class TestTargets:
    """Test target construction."""

    def test_build_targets(self):
        settings = CollectorSettings(
            organizations=["org1", "org2"],
            api=DashboardAPISettings(api_key="secret", base_url="https://n1.meraki.com"),
            collection=CollectionSettings(period=120),
        )

        targets = build_targets(settings)

        assert [t.organization_id for t in targets] == ["org1", "org2"]
        assert targets[0].base_url == "https://n1.meraki.com"
        assert targets[0].api_key == "secret"
        assert targets[0].period == 120.0

    def test_repr_hides_api_key(self):
        target = OrganizationTarget("org1", "https://api.meraki.com", "secret", 60.0)

        assert "secret" not in repr(target)


class TestExceptions:
    """Test error reporting."""

    def test_terminal_error_message(self):
        error = TerminalUpstreamError("GET", "https://x/api/v1/a", 429, 5, reason="HTTP 429")

        assert error.message == "GET https://x/api/v1/a failed after 5 attempt(s): HTTP 429 (HTTP 429)"
        assert error.to_dict()["error"] == "TERMINAL_UPSTREAM"
        assert error.to_dict()["details"]["attempts"] == 5

    @pytest.mark.parametrize("status", [None, 404])
    def test_terminal_error_status(self, status):
        assert TerminalUpstreamError("GET", "u", status).status_code == status
