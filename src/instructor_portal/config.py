"""Application configuration."""

import json
import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from instructor_portal.domain.earnings import ActivityRate, RateTable
from instructor_portal.services.rates import DEFAULT_RATE_TABLE

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    admin_token: str
    badge_service_url: str
    badge_service_token: str | None = None
    join_lead_minutes: int = 10
    summary_min_length: int = 10
    summary_max_length: int = 500
    badge_approval_threshold: int = 2
    badge_id: str = "debug-detective"
    rate_table_json: str | None = None
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_rate_table(raw: str | None) -> RateTable:
    """Parse a JSON rate table override, or return the default table.

    Expected shape::

        {"version": "2025-01",
         "rates": [{"activity": "one-on-one-online", "amount": 2500,
                    "currency": "USD", "duration_minutes": 45,
                    "includes_wrap_up": true}]}
    """
    if raw is None or not raw.strip():
        return DEFAULT_RATE_TABLE
    data = json.loads(raw)
    version = str(data.get("version") or "").strip()
    if not version:
        raise ValueError("Rate table override requires a version")
    rates: dict[str, ActivityRate] = {}
    for item in data.get("rates", []):
        rate = ActivityRate(
            activity=str(item["activity"]),
            amount=int(item["amount"]),
            currency=str(item.get("currency", "USD")),
            duration_minutes=int(item.get("duration_minutes", 0)),
            includes_wrap_up=bool(item.get("includes_wrap_up", False)),
        )
        if rate.activity in rates:
            raise ValueError(f"Duplicate rate for activity {rate.activity!r}")
        rates[rate.activity] = rate
    if not rates:
        raise ValueError("Rate table override has no rates")
    return RateTable(version=version, rates=rates)
