"""Supabase repository for committed wrap-ups."""

from dataclasses import dataclass
from uuid import UUID

from supabase import Client

from instructor_portal.adapters.supabase_rows import iso, parse_datetime
from instructor_portal.domain.artifacts import ArtifactReview, ReviewDecision
from instructor_portal.domain.wrap_up import (
    AttendanceStatus,
    Capacity,
    ObservationLevel,
    SessionWrapUp,
    StudentAttendance,
    StudentObservations,
    WrapUpStatus,
)
from instructor_portal.services.wrap_up import WrapUpRepository


@dataclass
class SupabaseWrapUpRepository(WrapUpRepository):
    """Reads completed wrap-ups from the ``session_wrap_ups`` table."""

    client: Client

    def get_completed(self, session_id: UUID) -> SessionWrapUp | None:
        """Return the session's completed wrap-up, if any."""
        response = (
            self.client.table("session_wrap_ups")
            .select(
                "id, session_id, instructor_id, attendance_json, reviews_json, "
                "observations_json, summary, started_at, completed_at, status"
            )
            .eq("session_id", str(session_id))
            .eq("status", WrapUpStatus.COMPLETED.value)
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return row_to_wrap_up(response.data[0])


def wrap_up_to_row(wrap_up: SessionWrapUp) -> dict[str, object]:
    """Serialize a wrap-up into ``session_wrap_ups`` column values."""
    return {
        "id": str(wrap_up.id),
        "session_id": str(wrap_up.session_id),
        "instructor_id": wrap_up.instructor_id,
        "attendance_json": [
            {
                "student_id": item.student_id,
                "status": item.status.value,
                "left_early_at": iso(item.left_early_at),
                "notes": item.notes,
            }
            for item in wrap_up.attendance
        ],
        "reviews_json": [review_to_json(review) for review in wrap_up.artifact_reviews],
        "observations_json": [
            {
                "student_id": item.student_id,
                "levels": {
                    obs.capacity.value: obs.level.value
                    for obs in item.capacity_observations
                },
                "additional_notes": item.additional_notes,
            }
            for item in wrap_up.observations
        ],
        "summary": wrap_up.summary,
        "started_at": iso(wrap_up.started_at),
        "completed_at": iso(wrap_up.completed_at),
        "status": wrap_up.status.value,
    }


def review_to_json(review: ArtifactReview) -> dict[str, object]:
    """Serialize one artifact review."""
    return {
        "artifact_id": str(review.artifact_id),
        "student_id": review.student_id,
        "decision": review.decision.value,
        "reviewed_at": iso(review.reviewed_at),
        "feedback": review.feedback,
    }


def row_to_wrap_up(row: dict[str, object]) -> SessionWrapUp:
    """Build a wrap-up from a ``session_wrap_ups`` row."""
    return SessionWrapUp(
        id=UUID(str(row["id"])),
        session_id=UUID(str(row["session_id"])),
        instructor_id=str(row["instructor_id"]),
        attendance=tuple(
            StudentAttendance(
                student_id=str(item["student_id"]),
                status=AttendanceStatus(item["status"]),
                left_early_at=(
                    parse_datetime(item["left_early_at"])
                    if item.get("left_early_at")
                    else None
                ),
                notes=item.get("notes"),
            )
            for item in row.get("attendance_json") or []
        ),
        artifact_reviews=tuple(
            ArtifactReview(
                artifact_id=UUID(str(item["artifact_id"])),
                student_id=str(item["student_id"]),
                decision=ReviewDecision(item["decision"]),
                reviewed_at=parse_datetime(item["reviewed_at"]),
                feedback=item.get("feedback"),
            )
            for item in row.get("reviews_json") or []
        ),
        observations=tuple(
            StudentObservations.build(
                str(item["student_id"]),
                {
                    Capacity(capacity): ObservationLevel(level)
                    for capacity, level in (item.get("levels") or {}).items()
                },
                item.get("additional_notes"),
            )
            for item in row.get("observations_json") or []
        ),
        summary=str(row["summary"]),
        started_at=parse_datetime(row["started_at"]),
        completed_at=parse_datetime(row["completed_at"]),
        status=WrapUpStatus(row["status"]),
    )
