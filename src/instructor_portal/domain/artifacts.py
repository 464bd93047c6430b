"""Domain models for student-submitted work."""

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from uuid import UUID


class ArtifactStatus(StrEnum):
    """Review status of an artifact."""

    SUBMITTED = "submitted"
    APPROVED = "approved"
    NEEDS_REVISION = "needs-revision"
    SKIPPED = "skipped"


class ReviewDecision(StrEnum):
    """Decision an instructor makes on an artifact during wrap-up."""

    APPROVED = "approved"
    NEEDS_REVISION = "needs-revision"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ArtifactFile:
    """A file attached to an artifact."""

    filename: str
    url: str
    mime_type: str | None = None
    size_bytes: int | None = None


@dataclass(frozen=True)
class Artifact:
    """A unit of student-submitted work."""

    id: UUID
    student_id: str
    course_id: str
    session_id: UUID | None
    type: str
    title: str
    files: tuple[ArtifactFile, ...]
    submitted_at: datetime
    status: ArtifactStatus = ArtifactStatus.SUBMITTED
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    feedback: str | None = None
    contributes_to_badges: tuple[str, ...] = ()

    @property
    def is_reviewed(self) -> bool:
        """Return True once a review decision has been committed."""
        return self.status != ArtifactStatus.SUBMITTED


@dataclass(frozen=True)
class ArtifactReview:
    """A review decision made inside a wrap-up."""

    artifact_id: UUID
    student_id: str
    decision: ReviewDecision
    reviewed_at: datetime
    feedback: str | None = None
