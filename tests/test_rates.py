"""Tests for rate resolution."""

import pytest

from instructor_portal.domain.earnings import COVERAGE_BONUS, ActivityRate, RateTable
from instructor_portal.domain.errors import UnknownActivityError
from instructor_portal.domain.sessions import Delivery, SessionFormat
from instructor_portal.services.rates import (
    DEFAULT_RATE_TABLE,
    RateResolver,
    activity_code,
)


def test_activity_code_covers_format_and_delivery() -> None:
    assert activity_code(SessionFormat.GROUP, Delivery.ONLINE) == "group-session-online"
    assert activity_code(SessionFormat.GROUP, Delivery.IN_PERSON) == (
        "group-session-inperson"
    )
    assert activity_code(SessionFormat.ONE_ON_ONE, Delivery.ONLINE) == (
        "one-on-one-online"
    )
    assert activity_code(SessionFormat.ONE_ON_ONE, Delivery.IN_PERSON) == (
        "one-on-one-inperson"
    )


def test_activity_code_rejects_unknown_values() -> None:
    with pytest.raises(UnknownActivityError):
        activity_code("workshop", "online")


def test_default_rates() -> None:
    resolver = RateResolver()

    assert resolver.version == DEFAULT_RATE_TABLE.version
    assert resolver.resolve(SessionFormat.GROUP, Delivery.ONLINE).amount == 3500
    assert resolver.resolve(SessionFormat.GROUP, Delivery.IN_PERSON).amount == 4000
    assert resolver.resolve(SessionFormat.ONE_ON_ONE, Delivery.ONLINE).amount == 2500
    one_on_one = resolver.resolve(SessionFormat.ONE_ON_ONE, Delivery.IN_PERSON)
    assert one_on_one.amount == 3000
    assert one_on_one.duration_minutes == 45
    assert resolver.coverage_bonus().amount == 500


def test_missing_rate_fails_loudly() -> None:
    table = RateTable(
        version="partial",
        rates={
            "group-session-online": ActivityRate(
                "group-session-online", 1, "USD", 60, True
            )
        },
    )
    resolver = RateResolver(table)

    with pytest.raises(UnknownActivityError) as excinfo:
        resolver.resolve(SessionFormat.ONE_ON_ONE, Delivery.ONLINE)
    assert excinfo.value.activity == "one-on-one-online"

    with pytest.raises(UnknownActivityError):
        resolver.resolve_activity(COVERAGE_BONUS)


def test_injected_table_replaces_defaults() -> None:
    table = RateTable(
        version="2025-01",
        rates={
            "group-session-online": ActivityRate(
                "group-session-online", 4200, "USD", 60, True
            )
        },
    )
    resolver = RateResolver(table)

    assert resolver.version == "2025-01"
    assert resolver.resolve(SessionFormat.GROUP, Delivery.ONLINE).amount == 4200
