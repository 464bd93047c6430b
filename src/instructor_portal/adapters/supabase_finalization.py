"""Supabase unit of work that commits a wrap-up through one RPC call.

Every write is staged in memory and sent to the
``finalize_session_wrap_up`` Postgres function, which applies them in a
single database transaction and re-checks the session status and the
one-completed-wrap-up-per-session constraint before writing.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from uuid import UUID, uuid4

from supabase import Client

from instructor_portal.adapters.supabase_rows import iso
from instructor_portal.adapters.supabase_wrap_up_repository import (
    review_to_json,
    wrap_up_to_row,
)
from instructor_portal.domain.artifacts import ArtifactReview
from instructor_portal.domain.badges import BadgeCandidate
from instructor_portal.domain.earnings import EarningsEntry
from instructor_portal.domain.errors import FinalizationConflictError
from instructor_portal.domain.sessions import SessionStatus
from instructor_portal.domain.wrap_up import SessionWrapUp
from instructor_portal.services.finalization import (
    FinalizationTransaction,
    FinalizationUnitOfWork,
)

FINALIZE_FUNCTION = "finalize_session_wrap_up"


@dataclass
class StagedFinalization(FinalizationTransaction):
    """Collects finalization writes for a single RPC payload."""

    wrap_up: dict[str, object] | None = None
    reviews: list[dict[str, object]] = field(default_factory=list)
    earnings: list[dict[str, object]] = field(default_factory=list)
    completion: dict[str, object] | None = None
    badges: list[dict[str, object]] = field(default_factory=list)

    def save_wrap_up(self, wrap_up: SessionWrapUp) -> None:
        """Stage the wrap-up row."""
        self.wrap_up = wrap_up_to_row(wrap_up)

    def record_artifact_review(self, review: ArtifactReview, reviewer_id: str) -> None:
        """Stage an artifact review update."""
        payload = review_to_json(review)
        payload["reviewed_by"] = reviewer_id
        self.reviews.append(payload)

    def append_earnings(self, entry: EarningsEntry) -> None:
        """Stage an earnings entry insert and pay period total update."""
        self.earnings.append(
            {
                "id": str(entry.id),
                "session_id": str(entry.session_id),
                "instructor_id": entry.instructor_id,
                "activity": entry.activity,
                "amount": entry.amount,
                "currency": entry.currency,
                "earned_at": iso(entry.earned_at),
                "status": entry.status.value,
                "pay_period_id": str(entry.pay_period_id),
                "rate_table_version": entry.rate_table_version,
            }
        )

    def complete_session(
        self, session_id: UUID, expected_status: SessionStatus
    ) -> None:
        """Stage the conditional session status update."""
        self.completion = {
            "session_id": str(session_id),
            "expected_status": SessionStatus(expected_status).value,
        }

    def enqueue_badges(
        self, session_id: UUID, candidates: list[BadgeCandidate]
    ) -> None:
        """Stage badge outbox rows."""
        self.badges.extend(
            {
                "id": str(uuid4()),
                "session_id": str(session_id),
                "student_id": candidate.student_id,
                "badge_id": candidate.badge_id,
            }
            for candidate in candidates
        )

    def payload(self) -> dict[str, object]:
        """Return the RPC payload."""
        if self.wrap_up is None or self.completion is None:
            raise RuntimeError("Finalization requires a wrap-up and a session update")
        return {
            "wrap_up": self.wrap_up,
            "reviews": self.reviews,
            "earnings": self.earnings,
            "completion": self.completion,
            "badges": self.badges,
        }


@dataclass
class SupabaseFinalizationUnitOfWork(FinalizationUnitOfWork):
    """Commits staged finalization writes atomically via Postgres RPC."""

    client: Client

    @contextmanager
    def begin(self) -> Iterator[StagedFinalization]:
        """Yield a staging transaction and commit it on clean exit."""
        staged = StagedFinalization()
        yield staged
        self._commit(staged)

    def _commit(self, staged: StagedFinalization) -> None:
        payload = staged.payload()
        payload_completion = staged.completion or {}
        response = self.client.rpc(FINALIZE_FUNCTION, {"payload": payload}).execute()
        result = response.data
        if not isinstance(result, dict):
            raise RuntimeError("Failed to finalize wrap-up")
        if not result.get("ok"):
            raise FinalizationConflictError(
                UUID(str(payload_completion["session_id"])),
                str(result.get("reason") or "rejected by database"),
            )
