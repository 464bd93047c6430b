"""Domain models for instructor pay."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

COVERAGE_BONUS = "coverage-bonus"
TRAINING_SESSION = "training-session"


class EarningsStatus(StrEnum):
    """Settlement status of an earnings entry."""

    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


class PayPeriodStatus(StrEnum):
    """Settlement status of a pay period."""

    OPEN = "open"
    PROCESSING = "processing"
    PAID = "paid"


@dataclass(frozen=True)
class ActivityRate:
    """Rate for one payable activity, in minor currency units."""

    activity: str
    amount: int
    currency: str
    duration_minutes: int
    includes_wrap_up: bool


@dataclass(frozen=True)
class RateTable:
    """Versioned rate configuration keyed by activity code."""

    version: str
    rates: Mapping[str, ActivityRate]


@dataclass(frozen=True)
class EarningsEntry:
    """One monetary credit for a completed session."""

    session_id: UUID
    instructor_id: str
    activity: str
    amount: int
    currency: str
    earned_at: datetime
    pay_period_id: UUID
    rate_table_version: str
    status: EarningsStatus = EarningsStatus.PENDING
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class PayPeriod:
    """An accounting window aggregating an instructor's earnings."""

    id: UUID
    instructor_id: str
    start_date: datetime
    end_date: datetime
    status: PayPeriodStatus
    total_earned: int = 0
    session_count: int = 0
    paid_at: datetime | None = None
