"""Domain models for scheduled teaching sessions."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID


class SessionStatus(StrEnum):
    """Lifecycle states of a scheduled session."""

    AVAILABLE = "available"
    PENDING = "pending"
    ASSIGNED = "assigned"
    COVERAGE_NEEDED = "coverage-needed"
    WRAP_UP_PENDING = "wrap-up-pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"


TERMINAL_STATUSES = frozenset(
    {SessionStatus.COMPLETED, SessionStatus.CANCELLED, SessionStatus.NO_SHOW}
)


class SessionFormat(StrEnum):
    """Group or individual teaching."""

    GROUP = "group"
    ONE_ON_ONE = "one-on-one"


class Delivery(StrEnum):
    """Where the session takes place."""

    ONLINE = "online"
    IN_PERSON = "in-person"


class CapacityTrend(StrEnum):
    """Recent direction of a student's capacity."""

    IMPROVING = "improving"
    STABLE = "stable"
    NEEDS_ATTENTION = "needs-attention"


@dataclass(frozen=True)
class SessionLocation:
    """Physical location of an in-person session."""

    center_id: str
    center_name: str
    address: str | None = None
    room: str | None = None


@dataclass(frozen=True)
class OnlineRoom:
    """Meeting room references for an online session."""

    host_room_url: str
    participant_room_url: str


@dataclass(frozen=True)
class RecentCapacity:
    """Profile-service summary of one capacity for a student."""

    capacity: str
    level: str
    trend: CapacityTrend


@dataclass(frozen=True)
class StudentContext:
    """A rostered student with light context from the profile service."""

    student_id: str
    first_name: str
    last_name: str
    enrollment_id: str | None = None
    recent_capacities: tuple[RecentCapacity, ...] = ()
    previous_session_summary: str | None = None
    parent_notes: str | None = None


@dataclass(frozen=True)
class Session:
    """One scheduled teaching occurrence.

    ``status`` is the stored status. The time-derived ``wrap-up-pending``
    state is computed by the lifecycle service and never assigned here by
    callers.
    """

    id: UUID
    course_id: str
    course_name: str
    scheduled_at: datetime
    duration_minutes: int
    wrap_up_minutes: int
    format: SessionFormat
    delivery: Delivery
    sequence_number: int
    total_in_series: int
    status: SessionStatus
    instructor_id: str | None = None
    roster: tuple[StudentContext, ...] = ()
    location: SessionLocation | None = None
    online: OnlineRoom | None = None
    assigned_at: datetime | None = None
    confirmed_at: datetime | None = None
    metadata: dict[str, object] = field(default_factory=dict)

    @property
    def ends_at(self) -> datetime:
        """Return the end of the scheduled slot, wrap-up allowance included."""
        return self.scheduled_at + timedelta(minutes=self.duration_minutes)

    @property
    def instruction_end(self) -> datetime:
        """Return when teaching stops and the wrap-up allowance begins."""
        return self.scheduled_at + timedelta(
            minutes=self.duration_minutes - self.wrap_up_minutes
        )

    @property
    def student_ids(self) -> list[str]:
        """Return roster student ids in roster order."""
        return [student.student_id for student in self.roster]

    def student(self, student_id: str) -> StudentContext | None:
        """Return the rostered student with the given id, if present."""
        for student in self.roster:
            if student.student_id == student_id:
                return student
        return None
