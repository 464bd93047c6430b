"""Earnings posting for completed wrap-ups."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from instructor_portal.domain.earnings import EarningsEntry, PayPeriod
from instructor_portal.domain.errors import NoOpenPayPeriodError, ValidationError
from instructor_portal.domain.sessions import Session
from instructor_portal.domain.wrap_up import SessionWrapUp, WrapUpStatus
from instructor_portal.services.finalization import FinalizationTransaction
from instructor_portal.services.rates import RateResolver

_logger = logging.getLogger(__name__)


class PayPeriodLedger(Protocol):
    """Read access to instructors' pay periods."""

    def list_open_periods(self, instructor_id: str, at: datetime) -> list[PayPeriod]:
        """Return open pay periods covering ``at`` for the instructor."""

    def list_entries(self, pay_period_id: UUID) -> list[EarningsEntry]:
        """Return the entries posted into a pay period."""


@dataclass
class EarningsPoster:
    """Turns a completed wrap-up into one pending earnings entry."""

    rates: RateResolver
    ledger: PayPeriodLedger

    def open_period(self, instructor_id: str, at: datetime) -> PayPeriod:
        """Return the single open pay period, failing when there is not exactly one."""
        periods = self.ledger.list_open_periods(instructor_id, at)
        if len(periods) != 1:
            _logger.warning(
                "Open pay period lookup failed: instructor=%s found=%s",
                instructor_id,
                len(periods),
            )
            raise NoOpenPayPeriodError(instructor_id, len(periods))
        return periods[0]

    def prepare(self, wrap_up: SessionWrapUp, session: Session) -> EarningsEntry:
        """Resolve the rate and pay period and build the entry to post."""
        if wrap_up.status != WrapUpStatus.COMPLETED:
            raise ValidationError("Earnings are only posted for completed wrap-ups")
        if wrap_up.session_id != session.id:
            raise ValidationError("Wrap-up does not belong to the session")
        rate = self.rates.resolve(session.format, session.delivery)
        period = self.open_period(wrap_up.instructor_id, wrap_up.completed_at)
        return EarningsEntry(
            session_id=session.id,
            instructor_id=wrap_up.instructor_id,
            activity=rate.activity,
            amount=rate.amount,
            currency=rate.currency,
            earned_at=wrap_up.completed_at,
            pay_period_id=period.id,
            rate_table_version=self.rates.version,
        )

    def post(self, transaction: FinalizationTransaction, entry: EarningsEntry) -> None:
        """Append the entry inside the finalization transaction."""
        transaction.append_earnings(entry)
        _logger.info(
            "Earnings staged: session=%s activity=%s amount=%s period=%s",
            entry.session_id,
            entry.activity,
            entry.amount,
            entry.pay_period_id,
        )
