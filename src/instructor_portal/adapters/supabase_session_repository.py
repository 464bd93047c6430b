"""Supabase-backed session repository."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from instructor_portal.adapters.supabase_rows import (
    iso,
    parse_datetime,
    parse_optional_datetime,
)
from instructor_portal.domain.sessions import (
    CapacityTrend,
    Delivery,
    OnlineRoom,
    RecentCapacity,
    Session,
    SessionFormat,
    SessionLocation,
    SessionStatus,
    StudentContext,
)
from instructor_portal.services.sessions import SessionRepository

_COLUMNS = (
    "id, course_id, course_name, scheduled_at, duration_minutes, wrap_up_minutes, "
    "format, delivery, sequence_number, total_in_series, status, instructor_id, "
    "roster_json, location_json, online_json, assigned_at, confirmed_at"
)
_OPEN_STATUSES = [SessionStatus.AVAILABLE.value, SessionStatus.COVERAGE_NEEDED.value]


@dataclass
class SupabaseSessionRepository(SessionRepository):
    """Supabase implementation for scheduled sessions."""

    client: Client

    def get_session(self, session_id: UUID) -> Session | None:
        """Return a session by id, if present."""
        response = (
            self.client.table("sessions")
            .select(_COLUMNS)
            .eq("id", str(session_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _row_to_session(response.data[0])

    def list_sessions_for_instructor(self, instructor_id: str) -> list[Session]:
        """Return sessions assigned to an instructor ordered by start time."""
        response = (
            self.client.table("sessions")
            .select(_COLUMNS)
            .eq("instructor_id", instructor_id)
            .order("scheduled_at")
            .execute()
        )
        return [_row_to_session(row) for row in response.data or []]

    def list_open_sessions(self) -> list[Session]:
        """Return sessions open for pickup ordered by start time."""
        response = (
            self.client.table("sessions")
            .select(_COLUMNS)
            .in_("status", _OPEN_STATUSES)
            .order("scheduled_at")
            .execute()
        )
        return [_row_to_session(row) for row in response.data or []]

    def list_elapsed_assigned(self, now: datetime) -> list[Session]:
        """Return assigned sessions whose slot ended before ``now``."""
        response = (
            self.client.table("sessions")
            .select(_COLUMNS)
            .eq("status", SessionStatus.ASSIGNED.value)
            .lt("scheduled_at", now.isoformat())
            .execute()
        )
        sessions = [_row_to_session(row) for row in response.data or []]
        return [session for session in sessions if session.ends_at < now]

    def update_session(self, session: Session, expected_status: SessionStatus) -> bool:
        """Write the session only if its stored status still matches."""
        response = (
            self.client.table("sessions")
            .update(
                {
                    "status": session.status.value,
                    "instructor_id": session.instructor_id,
                    "roster_json": [_student_to_json(s) for s in session.roster],
                    "assigned_at": iso(session.assigned_at),
                    "confirmed_at": iso(session.confirmed_at),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                }
            )
            .eq("id", str(session.id))
            .eq("status", SessionStatus(expected_status).value)
            .execute()
        )
        return bool(response.data)


def _row_to_session(row: dict[str, object]) -> Session:
    location = row.get("location_json")
    online = row.get("online_json")
    return Session(
        id=UUID(str(row["id"])),
        course_id=str(row["course_id"]),
        course_name=str(row["course_name"]),
        scheduled_at=parse_datetime(row["scheduled_at"]),
        duration_minutes=int(row["duration_minutes"]),
        wrap_up_minutes=int(row.get("wrap_up_minutes") or 0),
        format=SessionFormat(row["format"]),
        delivery=Delivery(row["delivery"]),
        sequence_number=int(row["sequence_number"]),
        total_in_series=int(row["total_in_series"]),
        status=SessionStatus(row["status"]),
        instructor_id=row.get("instructor_id"),
        roster=tuple(_student_from_json(s) for s in row.get("roster_json") or []),
        location=SessionLocation(**location) if isinstance(location, dict) else None,
        online=OnlineRoom(**online) if isinstance(online, dict) else None,
        assigned_at=parse_optional_datetime(row.get("assigned_at")),
        confirmed_at=parse_optional_datetime(row.get("confirmed_at")),
    )


def _student_from_json(data: dict[str, object]) -> StudentContext:
    return StudentContext(
        student_id=str(data["student_id"]),
        first_name=str(data.get("first_name", "")),
        last_name=str(data.get("last_name", "")),
        enrollment_id=data.get("enrollment_id"),
        recent_capacities=tuple(
            RecentCapacity(
                capacity=str(item["capacity"]),
                level=str(item["level"]),
                trend=CapacityTrend(item["trend"]),
            )
            for item in data.get("recent_capacities") or []
        ),
        previous_session_summary=data.get("previous_session_summary"),
        parent_notes=data.get("parent_notes"),
    )


def _student_to_json(student: StudentContext) -> dict[str, object]:
    return {
        "student_id": student.student_id,
        "first_name": student.first_name,
        "last_name": student.last_name,
        "enrollment_id": student.enrollment_id,
        "recent_capacities": [
            {
                "capacity": item.capacity,
                "level": item.level,
                "trend": item.trend.value,
            }
            for item in student.recent_capacities
        ],
        "previous_session_summary": student.previous_session_summary,
        "parent_notes": student.parent_notes,
    }
