"""Response payload builders."""

from datetime import datetime

from instructor_portal.domain.artifacts import Artifact, ArtifactReview
from instructor_portal.domain.earnings import EarningsEntry, PayPeriod
from instructor_portal.domain.sessions import Session, StudentContext
from instructor_portal.domain.wrap_up import (
    SessionWrapUp,
    StudentAttendance,
    StudentObservations,
    WrapUpDraft,
)
from instructor_portal.services.dashboard import InstructorDashboard
from instructor_portal.services.join_window import is_joinable, join_window
from instructor_portal.services.wrap_up import FinalizationResult, WrapUpProgress


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def student_payload(student: StudentContext) -> dict[str, object]:
    """Serialize a rostered student."""
    return {
        "student_id": student.student_id,
        "first_name": student.first_name,
        "last_name": student.last_name,
        "enrollment_id": student.enrollment_id,
        "recent_capacities": [
            {"capacity": item.capacity, "level": item.level, "trend": item.trend.value}
            for item in student.recent_capacities
        ],
        "previous_session_summary": student.previous_session_summary,
        "parent_notes": student.parent_notes,
    }


def session_payload(
    session: Session, now: datetime | None = None, lead_minutes: int = 10
) -> dict[str, object]:
    """Serialize a session, adding join information when ``now`` is given."""
    payload: dict[str, object] = {
        "id": str(session.id),
        "course_id": session.course_id,
        "course_name": session.course_name,
        "scheduled_at": session.scheduled_at.isoformat(),
        "duration_minutes": session.duration_minutes,
        "wrap_up_minutes": session.wrap_up_minutes,
        "instruction_end": session.instruction_end.isoformat(),
        "ends_at": session.ends_at.isoformat(),
        "format": session.format.value,
        "delivery": session.delivery.value,
        "sequence_number": session.sequence_number,
        "total_in_series": session.total_in_series,
        "status": session.status.value,
        "instructor_id": session.instructor_id,
        "roster": [student_payload(student) for student in session.roster],
        "location": (
            {
                "center_id": session.location.center_id,
                "center_name": session.location.center_name,
                "address": session.location.address,
                "room": session.location.room,
            }
            if session.location
            else None
        ),
        "assigned_at": _iso(session.assigned_at),
        "confirmed_at": _iso(session.confirmed_at),
    }
    if now is not None:
        window = join_window(session, lead_minutes)
        joinable = is_joinable(now, session, lead_minutes)
        payload["joinable"] = joinable
        payload["join_window"] = (
            {
                "opens_at": window.opens_at.isoformat(),
                "closes_at": window.closes_at.isoformat(),
            }
            if window
            else None
        )
        payload["room_url"] = (
            session.online.host_room_url if joinable and session.online else None
        )
    return payload


def artifact_payload(artifact: Artifact) -> dict[str, object]:
    """Serialize an artifact."""
    return {
        "id": str(artifact.id),
        "student_id": artifact.student_id,
        "course_id": artifact.course_id,
        "session_id": str(artifact.session_id) if artifact.session_id else None,
        "type": artifact.type,
        "title": artifact.title,
        "files": [
            {
                "filename": item.filename,
                "url": item.url,
                "mime_type": item.mime_type,
                "size_bytes": item.size_bytes,
            }
            for item in artifact.files
        ],
        "submitted_at": artifact.submitted_at.isoformat(),
        "status": artifact.status.value,
    }


def _attendance_payload(item: StudentAttendance) -> dict[str, object]:
    return {
        "student_id": item.student_id,
        "status": item.status.value,
        "left_early_at": _iso(item.left_early_at),
        "notes": item.notes,
    }


def _review_payload(review: ArtifactReview) -> dict[str, object]:
    return {
        "artifact_id": str(review.artifact_id),
        "student_id": review.student_id,
        "decision": review.decision.value,
        "reviewed_at": review.reviewed_at.isoformat(),
        "feedback": review.feedback,
    }


def _observations_payload(item: StudentObservations) -> dict[str, object]:
    return {
        "student_id": item.student_id,
        "levels": {
            obs.capacity.value: obs.level.value for obs in item.capacity_observations
        },
        "additional_notes": item.additional_notes,
    }


def draft_payload(draft: WrapUpDraft) -> dict[str, object]:
    """Serialize an in-progress wrap-up."""
    return {
        "session_id": str(draft.session_id),
        "instructor_id": draft.instructor_id,
        "status": draft.status.value,
        "started_at": draft.started_at.isoformat(),
        "current_step": draft.current_step.value,
        "attendance": [
            _attendance_payload(draft.attendance[student_id])
            for student_id in draft.roster
            if student_id in draft.attendance
        ],
        "reviewable_artifacts": [
            artifact_payload(artifact)
            for artifact in draft.reviewable_artifacts.values()
        ],
        "reviews": [_review_payload(review) for review in draft.reviews.values()],
        "observations": [
            _observations_payload(draft.observations[student_id])
            for student_id in draft.observed_students()
            if student_id in draft.observations
        ],
        "summary": draft.summary,
    }


def wrap_up_payload(wrap_up: SessionWrapUp) -> dict[str, object]:
    """Serialize a committed wrap-up."""
    return {
        "id": str(wrap_up.id),
        "session_id": str(wrap_up.session_id),
        "instructor_id": wrap_up.instructor_id,
        "status": wrap_up.status.value,
        "attendance": [_attendance_payload(item) for item in wrap_up.attendance],
        "artifact_reviews": [
            _review_payload(review) for review in wrap_up.artifact_reviews
        ],
        "observations": [
            _observations_payload(item) for item in wrap_up.observations
        ],
        "summary": wrap_up.summary,
        "started_at": wrap_up.started_at.isoformat(),
        "completed_at": wrap_up.completed_at.isoformat(),
    }


def progress_payload(progress: WrapUpProgress) -> dict[str, object]:
    """Serialize step progress."""
    return {
        "session_id": str(progress.session_id),
        "current_step": progress.current_step.value,
        "steps": {step.value: done for step, done in progress.steps.items()},
        "artifacts_pending": progress.artifacts_pending,
        "artifacts_decided": progress.artifacts_decided,
    }


def earnings_payload(entry: EarningsEntry) -> dict[str, object]:
    """Serialize an earnings entry."""
    return {
        "id": str(entry.id),
        "session_id": str(entry.session_id),
        "instructor_id": entry.instructor_id,
        "activity": entry.activity,
        "amount": entry.amount,
        "currency": entry.currency,
        "earned_at": entry.earned_at.isoformat(),
        "pay_period_id": str(entry.pay_period_id),
        "rate_table_version": entry.rate_table_version,
        "status": entry.status.value,
    }


def pay_period_payload(period: PayPeriod) -> dict[str, object]:
    """Serialize a pay period."""
    return {
        "id": str(period.id),
        "instructor_id": period.instructor_id,
        "start_date": period.start_date.isoformat(),
        "end_date": period.end_date.isoformat(),
        "status": period.status.value,
        "total_earned": period.total_earned,
        "session_count": period.session_count,
        "paid_at": _iso(period.paid_at),
    }


def finalization_payload(result: FinalizationResult) -> dict[str, object]:
    """Serialize the outcome of a finalization."""
    return {
        "wrap_up": wrap_up_payload(result.wrap_up),
        "earnings_entry": earnings_payload(result.earnings_entry),
        "badge_candidates": [
            {"student_id": c.student_id, "badge_id": c.badge_id}
            for c in result.badge_candidates
        ],
    }


def dashboard_payload(
    dashboard: InstructorDashboard, now: datetime, lead_minutes: int
) -> dict[str, object]:
    """Serialize the instructor dashboard."""

    def sessions(items: list[Session]) -> list[dict[str, object]]:
        return [session_payload(item, now, lead_minutes) for item in items]

    return {
        "instructor_id": dashboard.instructor_id,
        "today": sessions(dashboard.today_sessions),
        "upcoming": sessions(dashboard.upcoming_sessions),
        "wrap_up_pending": sessions(dashboard.wrap_up_pending),
        "available": sessions(dashboard.available_sessions),
        "pending_artifacts": [
            artifact_payload(artifact) for artifact in dashboard.pending_artifacts
        ],
        "joinable_session_ids": [str(sid) for sid in dashboard.joinable_session_ids],
        "current_pay_period": (
            pay_period_payload(dashboard.current_pay_period)
            if dashboard.current_pay_period
            else None
        ),
    }
