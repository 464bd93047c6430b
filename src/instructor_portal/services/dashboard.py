"""Instructor dashboard aggregate."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from uuid import UUID

from instructor_portal.domain.artifacts import Artifact
from instructor_portal.domain.earnings import PayPeriod
from instructor_portal.domain.errors import NoOpenPayPeriodError
from instructor_portal.domain.sessions import TERMINAL_STATUSES, Session, SessionStatus
from instructor_portal.services.earnings import EarningsPoster
from instructor_portal.services.join_window import DEFAULT_LEAD_MINUTES, is_joinable
from instructor_portal.services.sessions import (
    SessionRepository,
    effective_status,
    utc_now,
)
from instructor_portal.services.wrap_up import ArtifactRepository, reviewable_artifacts


@dataclass(frozen=True)
class InstructorDashboard:
    """Everything the instructor home screen shows."""

    instructor_id: str
    today_sessions: list[Session]
    upcoming_sessions: list[Session]
    wrap_up_pending: list[Session]
    available_sessions: list[Session]
    pending_artifacts: list[Artifact]
    joinable_session_ids: list[UUID]
    current_pay_period: PayPeriod | None


@dataclass
class DashboardService:
    """Builds the instructor dashboard from sessions, artifacts and pay periods."""

    session_repository: SessionRepository
    artifact_repository: ArtifactRepository
    earnings_poster: EarningsPoster
    lead_minutes: int = DEFAULT_LEAD_MINUTES
    clock: Callable[[], datetime] = utc_now

    def for_instructor(
        self, instructor_id: str, now: datetime | None = None
    ) -> InstructorDashboard:
        """Return the dashboard for an instructor at ``now``."""
        moment = now or self.clock()
        sessions = [
            _with_effective_status(session, moment)
            for session in self.session_repository.list_sessions_for_instructor(
                instructor_id
            )
        ]
        active = [s for s in sessions if s.status not in TERMINAL_STATUSES]
        today = [
            s
            for s in active
            if s.scheduled_at.date() == moment.date()
            and s.status != SessionStatus.WRAP_UP_PENDING
        ]
        upcoming = [
            s
            for s in active
            if s.scheduled_at > moment and s.scheduled_at.date() != moment.date()
        ]
        wrap_up_pending = [
            s for s in active if s.status == SessionStatus.WRAP_UP_PENDING
        ]
        available = [
            s
            for s in self.session_repository.list_open_sessions()
            if s.scheduled_at >= moment and s.instructor_id != instructor_id
        ]
        return InstructorDashboard(
            instructor_id=instructor_id,
            today_sessions=today,
            upcoming_sessions=upcoming,
            wrap_up_pending=wrap_up_pending,
            available_sessions=available,
            pending_artifacts=self._pending_artifacts(active),
            joinable_session_ids=[
                s.id for s in active if is_joinable(moment, s, self.lead_minutes)
            ],
            current_pay_period=self._current_period(instructor_id, moment),
        )

    def _pending_artifacts(self, sessions: list[Session]) -> list[Artifact]:
        student_ids = sorted({sid for s in sessions for sid in s.student_ids})
        if not student_ids:
            return []
        submitted = self.artifact_repository.list_submitted(student_ids)
        seen: set[UUID] = set()
        pending: list[Artifact] = []
        for session in sessions:
            for artifact in reviewable_artifacts(session, submitted):
                if artifact.id not in seen:
                    seen.add(artifact.id)
                    pending.append(artifact)
        return pending

    def _current_period(self, instructor_id: str, moment: datetime) -> PayPeriod | None:
        try:
            return self.earnings_poster.open_period(instructor_id, moment)
        except NoOpenPayPeriodError:
            return None


def _with_effective_status(session: Session, now: datetime) -> Session:
    status = effective_status(session, now)
    return session if status == session.status else replace(session, status=status)
