"""Domain models for badge triggers."""

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True)
class BadgeCandidate:
    """A badge a student qualified for in a wrap-up."""

    student_id: str
    badge_id: str


@dataclass(frozen=True)
class OutboxBadge:
    """A badge candidate waiting for delivery to the award service."""

    id: UUID
    session_id: UUID
    candidate: BadgeCandidate
