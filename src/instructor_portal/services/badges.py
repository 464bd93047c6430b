"""Badge trigger evaluation and delivery."""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from instructor_portal.domain.artifacts import ReviewDecision
from instructor_portal.domain.badges import BadgeCandidate, OutboxBadge
from instructor_portal.domain.errors import ValidationError
from instructor_portal.domain.wrap_up import SessionWrapUp, WrapUpStatus

_logger = logging.getLogger(__name__)

DEFAULT_BADGE_ID = "debug-detective"
DEFAULT_APPROVAL_THRESHOLD = 2


class BadgeRule(Protocol):
    """A rule that derives badge candidates from a committed wrap-up."""

    def evaluate(self, wrap_up: SessionWrapUp) -> list[BadgeCandidate]:
        """Return the candidates this rule awards."""


@dataclass(frozen=True)
class ApprovedArtifactThresholdRule:
    """Award a badge to each student with enough approved artifacts."""

    badge_id: str = DEFAULT_BADGE_ID
    threshold: int = DEFAULT_APPROVAL_THRESHOLD

    def evaluate(self, wrap_up: SessionWrapUp) -> list[BadgeCandidate]:
        """Count approvals per student and award at the threshold."""
        approvals = Counter(
            review.student_id
            for review in wrap_up.artifact_reviews
            if review.decision == ReviewDecision.APPROVED
        )
        return [
            BadgeCandidate(student_id=student_id, badge_id=self.badge_id)
            for student_id, count in approvals.items()
            if count >= self.threshold
        ]


@dataclass
class BadgeTriggerEvaluator:
    """Runs every configured rule against a completed wrap-up."""

    rules: list[BadgeRule] = field(
        default_factory=lambda: [ApprovedArtifactThresholdRule()]
    )

    def evaluate(self, wrap_up: SessionWrapUp) -> list[BadgeCandidate]:
        """Return de-duplicated candidates from all rules, in rule order."""
        if wrap_up.status != WrapUpStatus.COMPLETED:
            raise ValidationError("Badges are only evaluated for completed wrap-ups")
        candidates: list[BadgeCandidate] = []
        for rule in self.rules:
            for candidate in rule.evaluate(wrap_up):
                if candidate not in candidates:
                    candidates.append(candidate)
        return candidates


class BadgeOutboxRepository(Protocol):
    """Persistence interface for queued badge candidates."""

    def list_pending(self, limit: int) -> list[OutboxBadge]:
        """Return undelivered candidates, oldest first."""

    def mark_delivered(self, outbox_ids: list[UUID]) -> None:
        """Mark candidates as delivered."""


class BadgeAwardClient(Protocol):
    """Interface for the external badge award service."""

    async def award(
        self, session_id: UUID, candidates: list[BadgeCandidate]
    ) -> None:
        """Hand candidates to the award service."""


@dataclass
class BadgeDispatcher:
    """Delivers queued badge candidates, one call per session."""

    outbox: BadgeOutboxRepository
    client: BadgeAwardClient

    async def dispatch_pending(self, limit: int = 100) -> int:
        """Deliver pending candidates and return how many were sent."""
        pending = self.outbox.list_pending(limit)
        by_session: dict[UUID, list[OutboxBadge]] = {}
        for item in pending:
            by_session.setdefault(item.session_id, []).append(item)

        delivered = 0
        for session_id, items in by_session.items():
            await self.client.award(session_id, [item.candidate for item in items])
            self.outbox.mark_delivered([item.id for item in items])
            delivered += len(items)
            _logger.info(
                "Badges delivered: session=%s count=%s", session_id, len(items)
            )
        return delivered
