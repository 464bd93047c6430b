"""Activity rate resolution."""

import logging
from dataclasses import dataclass

from instructor_portal.domain.earnings import (
    COVERAGE_BONUS,
    TRAINING_SESSION,
    ActivityRate,
    RateTable,
)
from instructor_portal.domain.errors import UnknownActivityError
from instructor_portal.domain.sessions import Delivery, SessionFormat

_logger = logging.getLogger(__name__)

_FORMAT_PREFIXES = {
    SessionFormat.GROUP: "group-session",
    SessionFormat.ONE_ON_ONE: "one-on-one",
}
_DELIVERY_SUFFIXES = {
    Delivery.ONLINE: "online",
    Delivery.IN_PERSON: "inperson",
}

DEFAULT_RATE_TABLE = RateTable(
    version="2024-12",
    rates={
        rate.activity: rate
        for rate in (
            ActivityRate("group-session-online", 3500, "USD", 60, True),
            ActivityRate("group-session-inperson", 4000, "USD", 60, True),
            ActivityRate("one-on-one-online", 2500, "USD", 45, True),
            ActivityRate("one-on-one-inperson", 3000, "USD", 45, True),
            ActivityRate(COVERAGE_BONUS, 500, "USD", 0, False),
            ActivityRate(TRAINING_SESSION, 2000, "USD", 60, False),
        )
    },
)


def activity_code(session_format: str, delivery: str) -> str:
    """Derive the payable activity code for a format and delivery pair."""
    try:
        prefix = _FORMAT_PREFIXES[SessionFormat(session_format)]
        suffix = _DELIVERY_SUFFIXES[Delivery(delivery)]
    except (KeyError, ValueError) as exc:
        raise UnknownActivityError(f"{session_format}/{delivery}") from exc
    return f"{prefix}-{suffix}"


@dataclass
class RateResolver:
    """Resolve activity rates against an injected rate table."""

    table: RateTable = DEFAULT_RATE_TABLE

    @property
    def version(self) -> str:
        """Return the version of the configured rate table."""
        return self.table.version

    def resolve(self, session_format: str, delivery: str) -> ActivityRate:
        """Return the rate for a session's format and delivery."""
        return self.resolve_activity(activity_code(session_format, delivery))

    def resolve_activity(self, activity: str) -> ActivityRate:
        """Return the rate for an activity code, failing on unknown codes."""
        rate = self.table.rates.get(activity)
        if rate is None:
            _logger.warning(
                "Rate lookup miss: activity=%s table=%s", activity, self.version
            )
            raise UnknownActivityError(activity)
        return rate

    def coverage_bonus(self) -> ActivityRate:
        """Return the fixed coverage pickup bonus rate."""
        return self.resolve_activity(COVERAGE_BONUS)
