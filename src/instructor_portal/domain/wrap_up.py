"""Domain models for the post-session wrap-up."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from instructor_portal.domain.artifacts import Artifact, ArtifactReview
from instructor_portal.domain.errors import ValidationError


class Capacity(StrEnum):
    """The six developmental traits observed per student."""

    CURIOSITY = "curiosity"
    REASONING = "reasoning"
    EXPRESSION = "expression"
    FOCUS = "focus"
    COLLABORATION = "collaboration"
    ADAPTABILITY = "adaptability"


CAPACITIES: tuple[Capacity, ...] = tuple(Capacity)


class ObservationLevel(StrEnum):
    """How strongly a capacity showed up in the session."""

    STRONG = "strong"
    DEVELOPING = "developing"
    NOT_OBSERVED = "not-observed"


class AttendanceStatus(StrEnum):
    """Per-student attendance outcome."""

    ATTENDED = "attended"
    NO_SHOW = "no-show"
    LEFT_EARLY = "left-early"


class WrapUpStep(StrEnum):
    """Ordered wrap-up steps."""

    ATTENDANCE = "attendance"
    ARTIFACTS = "artifacts"
    OBSERVATIONS = "observations"
    SUMMARY = "summary"


STEP_ORDER: tuple[WrapUpStep, ...] = tuple(WrapUpStep)


class WrapUpStatus(StrEnum):
    """Lifecycle of a wrap-up record."""

    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


@dataclass(frozen=True)
class StudentAttendance:
    """Attendance outcome for one student."""

    student_id: str
    status: AttendanceStatus
    left_early_at: datetime | None = None
    notes: str | None = None

    @property
    def requires_observations(self) -> bool:
        """Return True when the student was present for any part of the session."""
        return self.status != AttendanceStatus.NO_SHOW


@dataclass(frozen=True)
class CapacityObservation:
    """One capacity level."""

    capacity: Capacity
    level: ObservationLevel


@dataclass(frozen=True)
class StudentObservations:
    """A complete six-capacity observation set for one student."""

    student_id: str
    capacity_observations: tuple[CapacityObservation, ...]
    additional_notes: str | None = None

    def __post_init__(self) -> None:
        capacities = [obs.capacity for obs in self.capacity_observations]
        if sorted(capacities) != sorted(CAPACITIES):
            raise ValidationError(
                f"Observations for {self.student_id} must cover each capacity "
                "exactly once"
            )

    @classmethod
    def build(
        cls,
        student_id: str,
        levels: dict[Capacity, ObservationLevel] | None = None,
        additional_notes: str | None = None,
    ) -> "StudentObservations":
        """Build a full set, defaulting unset capacities to not-observed."""
        levels = levels or {}
        return cls(
            student_id=student_id,
            capacity_observations=tuple(
                CapacityObservation(
                    capacity=capacity,
                    level=levels.get(capacity, ObservationLevel.NOT_OBSERVED),
                )
                for capacity in CAPACITIES
            ),
            additional_notes=additional_notes,
        )

    def level_for(self, capacity: Capacity) -> ObservationLevel:
        """Return the recorded level for a capacity."""
        for observation in self.capacity_observations:
            if observation.capacity == capacity:
                return observation.level
        return ObservationLevel.NOT_OBSERVED

    def with_level(
        self, capacity: Capacity, level: ObservationLevel
    ) -> "StudentObservations":
        """Return a copy with one capacity changed."""
        levels = {obs.capacity: obs.level for obs in self.capacity_observations}
        levels[capacity] = level
        return StudentObservations.build(self.student_id, levels, self.additional_notes)


@dataclass
class WrapUpDraft:
    """Uncommitted working buffer for one session's wrap-up.

    Nothing in a draft is visible to earnings, badges or parent feedback
    until it is finalized into a ``SessionWrapUp``.
    """

    session_id: UUID
    instructor_id: str
    started_at: datetime
    roster: tuple[str, ...]
    reviewable_artifacts: dict[UUID, Artifact] = field(default_factory=dict)
    current_step: WrapUpStep = WrapUpStep.ATTENDANCE
    attendance: dict[str, StudentAttendance] = field(default_factory=dict)
    reviews: dict[UUID, ArtifactReview] = field(default_factory=dict)
    observations: dict[str, StudentObservations] = field(default_factory=dict)
    summary: str = ""
    status: WrapUpStatus = WrapUpStatus.IN_PROGRESS

    def observed_students(self) -> list[str]:
        """Return roster students that need observations, in roster order."""
        return [
            student_id
            for student_id in self.roster
            if student_id in self.attendance
            and self.attendance[student_id].requires_observations
        ]


@dataclass(frozen=True)
class SessionWrapUp:
    """A committed, immutable wrap-up."""

    session_id: UUID
    instructor_id: str
    attendance: tuple[StudentAttendance, ...]
    artifact_reviews: tuple[ArtifactReview, ...]
    observations: tuple[StudentObservations, ...]
    summary: str
    started_at: datetime
    completed_at: datetime
    status: WrapUpStatus = WrapUpStatus.COMPLETED
    id: UUID = field(default_factory=uuid4)


WrapUp = WrapUpDraft | SessionWrapUp
