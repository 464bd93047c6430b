"""Tests for configuration parsing."""

import json

import pytest

from instructor_portal.config import Settings, parse_rate_table
from instructor_portal.services.rates import DEFAULT_RATE_TABLE


def test_settings_defaults(settings: Settings) -> None:
    assert settings.join_lead_minutes == 10
    assert settings.summary_min_length == 10
    assert settings.summary_max_length == 500
    assert settings.badge_approval_threshold == 2
    assert settings.badge_id == "debug-detective"
    assert settings.rate_table_json is None


def test_settings_read_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "env-key")
    monkeypatch.setenv("ADMIN_TOKEN", "env-admin")
    monkeypatch.setenv("BADGE_SERVICE_URL", "https://badges.env")
    monkeypatch.setenv("JOIN_LEAD_MINUTES", "15")

    settings = Settings()

    assert settings.supabase_url == "https://env.supabase.co"
    assert settings.join_lead_minutes == 15


def test_parse_rate_table_defaults_when_unset() -> None:
    assert parse_rate_table(None) is DEFAULT_RATE_TABLE
    assert parse_rate_table("  ") is DEFAULT_RATE_TABLE


def test_parse_rate_table_override() -> None:
    raw = json.dumps(
        {
            "version": "2025-01",
            "rates": [
                {
                    "activity": "group-session-online",
                    "amount": 3800,
                    "duration_minutes": 60,
                    "includes_wrap_up": True,
                }
            ],
        }
    )

    table = parse_rate_table(raw)

    assert table.version == "2025-01"
    rate = table.rates["group-session-online"]
    assert rate.amount == 3800
    assert rate.currency == "USD"
    assert rate.includes_wrap_up is True


@pytest.mark.parametrize(
    "payload",
    [
        {"rates": [{"activity": "a", "amount": 1}]},
        {"version": "v1", "rates": []},
        {
            "version": "v1",
            "rates": [
                {"activity": "a", "amount": 1},
                {"activity": "a", "amount": 2},
            ],
        },
    ],
)
def test_parse_rate_table_rejects_bad_overrides(payload: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        parse_rate_table(json.dumps(payload))
