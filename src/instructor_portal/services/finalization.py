"""Transaction boundary for committing a wrap-up."""

from contextlib import AbstractContextManager
from typing import Protocol
from uuid import UUID

from instructor_portal.domain.artifacts import ArtifactReview
from instructor_portal.domain.badges import BadgeCandidate
from instructor_portal.domain.earnings import EarningsEntry
from instructor_portal.domain.sessions import SessionStatus
from instructor_portal.domain.wrap_up import SessionWrapUp


class FinalizationTransaction(Protocol):
    """Writes that must land together or not at all."""

    def save_wrap_up(self, wrap_up: SessionWrapUp) -> None:
        """Persist the completed wrap-up."""

    def record_artifact_review(self, review: ArtifactReview, reviewer_id: str) -> None:
        """Write a review decision onto its artifact."""

    def append_earnings(self, entry: EarningsEntry) -> None:
        """Append an entry to its pay period and update the period totals."""

    def complete_session(
        self, session_id: UUID, expected_status: SessionStatus
    ) -> None:
        """Move the session to ``completed`` if its stored status still matches."""

    def enqueue_badges(
        self, session_id: UUID, candidates: list[BadgeCandidate]
    ) -> None:
        """Queue badge candidates for delivery to the award service."""


class FinalizationUnitOfWork(Protocol):
    """Factory for finalization transactions.

    Leaving the context normally commits every staged write; leaving it
    with an exception applies none of them.
    """

    def begin(self) -> AbstractContextManager[FinalizationTransaction]:
        """Open a transaction."""
