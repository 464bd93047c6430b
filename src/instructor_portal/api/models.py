"""Pydantic request models for the instructor portal API."""

from datetime import datetime

from pydantic import BaseModel, Field

from instructor_portal.domain.artifacts import ReviewDecision
from instructor_portal.domain.sessions import CapacityTrend, StudentContext
from instructor_portal.domain.sessions import RecentCapacity as DomainRecentCapacity
from instructor_portal.domain.wrap_up import (
    AttendanceStatus,
    Capacity,
    ObservationLevel,
)


class RecentCapacity(BaseModel):
    """Recent capacity summary from the profile service."""

    capacity: str
    level: str
    trend: CapacityTrend = CapacityTrend.STABLE


class RosterStudent(BaseModel):
    """A student supplied with a claim."""

    student_id: str
    first_name: str
    last_name: str
    enrollment_id: str | None = None
    recent_capacities: list[RecentCapacity] = Field(default_factory=list)
    previous_session_summary: str | None = None
    parent_notes: str | None = None

    def to_domain(self) -> StudentContext:
        """Convert into the domain roster entry."""
        return StudentContext(
            student_id=self.student_id,
            first_name=self.first_name,
            last_name=self.last_name,
            enrollment_id=self.enrollment_id,
            recent_capacities=tuple(
                DomainRecentCapacity(
                    capacity=item.capacity, level=item.level, trend=item.trend
                )
                for item in self.recent_capacities
            ),
            previous_session_summary=self.previous_session_summary,
            parent_notes=self.parent_notes,
        )


class ClaimRequest(BaseModel):
    """Claim payload; the roster is required for available sessions."""

    roster: list[RosterStudent] | None = None


class AttendanceRequest(BaseModel):
    """Attendance override for one student."""

    status: AttendanceStatus
    left_early_at: datetime | None = None
    notes: str | None = None


class ReviewRequest(BaseModel):
    """Review decision for one artifact."""

    decision: ReviewDecision
    feedback: str | None = None


class ObservationsRequest(BaseModel):
    """Capacity levels for one student."""

    levels: dict[Capacity, ObservationLevel] = Field(default_factory=dict)
    additional_notes: str | None = None


class SummaryRequest(BaseModel):
    """Narrative session summary."""

    summary: str
