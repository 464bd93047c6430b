"""Session lifecycle state machine."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Protocol
from uuid import UUID

from instructor_portal.domain.errors import (
    InvalidTransitionError,
    SessionNotFoundError,
    ValidationError,
)
from instructor_portal.domain.sessions import (
    Session,
    SessionStatus,
    StudentContext,
)
from instructor_portal.services.drafts import WrapUpDraftStore
from instructor_portal.services.locks import SessionLocks

_logger = logging.getLogger(__name__)

_EXITS = frozenset({SessionStatus.CANCELLED, SessionStatus.NO_SHOW})

TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.AVAILABLE: frozenset({SessionStatus.ASSIGNED}) | _EXITS,
    SessionStatus.PENDING: frozenset(
        {SessionStatus.ASSIGNED, SessionStatus.COVERAGE_NEEDED}
    )
    | _EXITS,
    SessionStatus.ASSIGNED: frozenset(
        {SessionStatus.COVERAGE_NEEDED, SessionStatus.WRAP_UP_PENDING}
    )
    | _EXITS,
    SessionStatus.COVERAGE_NEEDED: frozenset({SessionStatus.ASSIGNED}) | _EXITS,
    SessionStatus.WRAP_UP_PENDING: frozenset({SessionStatus.COMPLETED}) | _EXITS,
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
    SessionStatus.NO_SHOW: frozenset(),
}


def utc_now() -> datetime:
    """Return the current time in UTC."""
    return datetime.now(tz=UTC)


def can_transition(current: SessionStatus, target: SessionStatus) -> bool:
    """Return True when the lifecycle graph has an edge from current to target."""
    return target in TRANSITIONS.get(current, frozenset())


def effective_status(session: Session, now: datetime) -> SessionStatus:
    """Return the status as observed at ``now``.

    An assigned session whose slot has fully elapsed reads as
    ``wrap-up-pending`` whether or not the sweep has persisted it yet.
    """
    if session.status == SessionStatus.ASSIGNED and now > session.ends_at:
        return SessionStatus.WRAP_UP_PENDING
    return session.status


class SessionRepository(Protocol):
    """Persistence interface for scheduled sessions."""

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""

    def list_sessions_for_instructor(self, instructor_id: str) -> list[Session]:
        """Return sessions assigned to an instructor ordered by start time."""

    def list_open_sessions(self) -> list[Session]:
        """Return sessions open for pickup ordered by start time."""

    def list_elapsed_assigned(self, now: datetime) -> list[Session]:
        """Return stored ``assigned`` sessions whose slot ended before ``now``."""

    def update_session(self, session: Session, expected_status: SessionStatus) -> bool:
        """Write the session if its stored status still matches.

        Return False when another writer changed the status first.
        """


@dataclass
class SessionLifecycleService:
    """Owns every status change of a session except completion."""

    repository: SessionRepository
    drafts: WrapUpDraftStore = field(default_factory=WrapUpDraftStore)
    locks: SessionLocks = field(default_factory=SessionLocks)
    clock: Callable[[], datetime] = utc_now

    def get(self, session_id: UUID) -> Session:
        """Return the stored session or raise if it does not exist."""
        session = self.repository.get_session(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def view(self, session_id: UUID, now: datetime | None = None) -> Session:
        """Return the session with its status evaluated at ``now``."""
        session = self.get(session_id)
        status = effective_status(session, now or self.clock())
        if status == session.status:
            return session
        return replace(session, status=status)

    def claim(
        self,
        session_id: UUID,
        instructor_id: str,
        roster: list[StudentContext] | None = None,
    ) -> Session:
        """Assign an open session to the claiming instructor.

        An ``available`` session takes its roster from the claim. A
        ``coverage-needed`` session keeps the roster it already has.
        A slot that has already ended cannot be claimed.
        """
        now = self.clock()
        with self.locks.hold(session_id):
            session = self.get(session_id)
            current = effective_status(session, now)
            if now >= session.ends_at:
                raise InvalidTransitionError(
                    session_id, current, SessionStatus.ASSIGNED
                )
            if current == SessionStatus.AVAILABLE:
                resolved_roster = _validated_roster(roster)
            elif current == SessionStatus.COVERAGE_NEEDED:
                if roster and [s.student_id for s in roster] != session.student_ids:
                    raise ValidationError(
                        "A coverage claim cannot change the session roster"
                    )
                resolved_roster = session.roster
            else:
                raise InvalidTransitionError(
                    session_id, current, SessionStatus.ASSIGNED
                )
            updated = replace(
                session,
                status=SessionStatus.ASSIGNED,
                instructor_id=instructor_id,
                roster=resolved_roster,
                assigned_at=now,
                confirmed_at=now,
            )
            self._write(session, current, updated)
        _logger.info(
            "Session claimed: session=%s instructor=%s from=%s",
            session_id,
            instructor_id,
            current,
        )
        return updated

    def confirm(self, session_id: UUID, instructor_id: str) -> Session:
        """Confirm a pending assignment."""
        now = self.clock()
        with self.locks.hold(session_id):
            session = self.get(session_id)
            current = effective_status(session, now)
            if current != SessionStatus.PENDING:
                raise InvalidTransitionError(
                    session_id, current, SessionStatus.ASSIGNED
                )
            if session.instructor_id != instructor_id:
                raise ValidationError(
                    f"Session {session_id} is not assigned to {instructor_id}"
                )
            updated = replace(
                session, status=SessionStatus.ASSIGNED, confirmed_at=now
            )
            self._write(session, current, updated)
        _logger.info("Session confirmed: session=%s", session_id)
        return updated

    def request_coverage(self, session_id: UUID) -> Session:
        """Release an assigned or pending session for another instructor."""
        with self.locks.hold(session_id):
            session = self.get(session_id)
            current = effective_status(session, self.clock())
            if current not in {SessionStatus.ASSIGNED, SessionStatus.PENDING}:
                raise InvalidTransitionError(
                    session_id, current, SessionStatus.COVERAGE_NEEDED
                )
            updated = replace(
                session,
                status=SessionStatus.COVERAGE_NEEDED,
                instructor_id=None,
                confirmed_at=None,
            )
            self._write(session, current, updated)
        _logger.info(
            "Coverage requested: session=%s released_by=%s",
            session_id,
            session.instructor_id,
        )
        return updated

    def cancel(self, session_id: UUID) -> Session:
        """Apply an external cancellation."""
        return self._exit(session_id, SessionStatus.CANCELLED)

    def mark_no_show(self, session_id: UUID) -> Session:
        """Apply an external session-level no-show."""
        return self._exit(session_id, SessionStatus.NO_SHOW)

    def promote_elapsed(self, now: datetime | None = None) -> list[Session]:
        """Persist ``wrap-up-pending`` for assigned sessions whose slot ended.

        Safe to run repeatedly; sessions already promoted or changed by
        another writer are skipped.
        """
        moment = now or self.clock()
        promoted: list[Session] = []
        for session in self.repository.list_elapsed_assigned(moment):
            if effective_status(session, moment) != SessionStatus.WRAP_UP_PENDING:
                continue
            updated = replace(session, status=SessionStatus.WRAP_UP_PENDING)
            with self.locks.hold(session.id):
                if self.repository.update_session(
                    updated, expected_status=SessionStatus.ASSIGNED
                ):
                    promoted.append(updated)
        if promoted:
            _logger.info("Promoted %s sessions to wrap-up-pending", len(promoted))
        return promoted

    def _exit(self, session_id: UUID, target: SessionStatus) -> Session:
        with self.locks.hold(session_id):
            session = self.get(session_id)
            current = effective_status(session, self.clock())
            updated = replace(session, status=target)
            self._write(session, current, updated)
        self.drafts.discard(session_id)
        _logger.info("Session closed: session=%s status=%s", session_id, target)
        return updated

    def _write(self, stored: Session, current: SessionStatus, updated: Session) -> None:
        if not can_transition(current, updated.status):
            raise InvalidTransitionError(stored.id, current, updated.status)
        if not self.repository.update_session(updated, expected_status=stored.status):
            raise InvalidTransitionError(stored.id, current, updated.status)


def _validated_roster(
    roster: list[StudentContext] | None,
) -> tuple[StudentContext, ...]:
    if not roster:
        raise ValidationError("Claiming an available session requires a roster")
    seen: set[str] = set()
    for student in roster:
        if student.student_id in seen:
            raise ValidationError(
                f"Student {student.student_id} appears twice in the roster"
            )
        seen.add(student.student_id)
    return tuple(roster)
