"""Supabase-backed pay period ledger."""

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from supabase import Client

from instructor_portal.adapters.supabase_rows import (
    parse_datetime,
    parse_optional_datetime,
)
from instructor_portal.domain.earnings import (
    EarningsEntry,
    EarningsStatus,
    PayPeriod,
    PayPeriodStatus,
)
from instructor_portal.services.earnings import PayPeriodLedger


@dataclass
class SupabasePayPeriodRepository(PayPeriodLedger):
    """Reads pay periods and their earnings entries."""

    client: Client

    def list_open_periods(self, instructor_id: str, at: datetime) -> list[PayPeriod]:
        """Return open periods covering ``at`` for the instructor."""
        moment = at.isoformat()
        response = (
            self.client.table("pay_periods")
            .select(
                "id, instructor_id, start_date, end_date, status, total_earned, "
                "session_count, paid_at"
            )
            .eq("instructor_id", instructor_id)
            .eq("status", PayPeriodStatus.OPEN.value)
            .lte("start_date", moment)
            .gte("end_date", moment)
            .execute()
        )
        return [_row_to_period(row) for row in response.data or []]

    def list_entries(self, pay_period_id: UUID) -> list[EarningsEntry]:
        """Return entries posted into a pay period, oldest first."""
        response = (
            self.client.table("earnings_entries")
            .select(
                "id, session_id, instructor_id, activity, amount, currency, "
                "earned_at, status, pay_period_id, rate_table_version"
            )
            .eq("pay_period_id", str(pay_period_id))
            .order("earned_at")
            .execute()
        )
        return [_row_to_entry(row) for row in response.data or []]


def _row_to_period(row: dict[str, object]) -> PayPeriod:
    return PayPeriod(
        id=UUID(str(row["id"])),
        instructor_id=str(row["instructor_id"]),
        start_date=parse_datetime(row["start_date"]),
        end_date=parse_datetime(row["end_date"]),
        status=PayPeriodStatus(row["status"]),
        total_earned=int(row.get("total_earned") or 0),
        session_count=int(row.get("session_count") or 0),
        paid_at=parse_optional_datetime(row.get("paid_at")),
    )


def _row_to_entry(row: dict[str, object]) -> EarningsEntry:
    return EarningsEntry(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        instructor_id=str(row["instructor_id"]),
        activity=str(row["activity"]),
        amount=int(row["amount"]),
        currency=str(row["currency"]),
        earned_at=parse_datetime(row["earned_at"]),
        pay_period_id=UUID(str(row["pay_period_id"])),
        rate_table_version=str(row.get("rate_table_version") or ""),
        status=EarningsStatus(row["status"]),
    )
