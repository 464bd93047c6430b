"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, Header, Request, status
from fastapi.responses import JSONResponse

from instructor_portal.api.admin import router as admin_router
from instructor_portal.api.models import (
    AttendanceRequest,
    ClaimRequest,
    ObservationsRequest,
    ReviewRequest,
    SummaryRequest,
)
from instructor_portal.api.serializers import (
    dashboard_payload,
    draft_payload,
    finalization_payload,
    progress_payload,
    session_payload,
)
from instructor_portal.app_logging import configure_logging
from instructor_portal.containers import AppContainer
from instructor_portal.domain.errors import (
    FinalizationConflictError,
    IncompleteStepError,
    InvalidTransitionError,
    MissingFeedbackError,
    SessionNotFoundError,
    ValidationError,
    WorkflowError,
    WrapUpInProgressError,
    WrapUpNotFoundError,
)
from instructor_portal.domain.wrap_up import WrapUpStep

_STATUS_BY_ERROR: tuple[tuple[type[WorkflowError], int], ...] = (
    (SessionNotFoundError, status.HTTP_404_NOT_FOUND),
    (WrapUpNotFoundError, status.HTTP_404_NOT_FOUND),
    (InvalidTransitionError, status.HTTP_409_CONFLICT),
    (WrapUpInProgressError, status.HTTP_409_CONFLICT),
    (FinalizationConflictError, status.HTTP_409_CONFLICT),
    (IncompleteStepError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (MissingFeedbackError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def error_status(exc: WorkflowError) -> int:
    """Map a workflow failure to an HTTP status code."""
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(WorkflowError)
    async def workflow_error_handler(
        request: Request, exc: WorkflowError
    ) -> JSONResponse:
        code = error_status(exc)
        if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error(
                "Workflow failure on %s %s: %s", request.method, request.url.path, exc
            )
        body: dict[str, object] = {"detail": str(exc), "error": type(exc).__name__}
        if isinstance(exc, IncompleteStepError):
            body["step"] = str(exc.step)
            body["student_id"] = exc.student_id
            body["field"] = exc.field
        return JSONResponse(status_code=code, content=body)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: UUID, request: Request) -> dict[str, object]:
        """Return a session with its effective status and join window."""
        state_container: AppContainer = request.app.state.container
        lifecycle = state_container.lifecycle_service
        now = lifecycle.clock()
        session = lifecycle.view(session_id, now)
        return session_payload(
            session, now, state_container.settings.join_lead_minutes
        )

    @app.post("/sessions/{session_id}/claim")
    async def claim_session(
        session_id: UUID,
        request: Request,
        payload: ClaimRequest | None = None,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Claim an available or coverage-needed session."""
        state_container: AppContainer = request.app.state.container
        roster = (
            [student.to_domain() for student in payload.roster]
            if payload and payload.roster is not None
            else None
        )
        session = state_container.lifecycle_service.claim(
            session_id, x_instructor_id, roster
        )
        return session_payload(session)

    @app.post("/sessions/{session_id}/confirm")
    async def confirm_session(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, object]:
        """Confirm a pending assignment."""
        state_container: AppContainer = request.app.state.container
        session = state_container.lifecycle_service.confirm(
            session_id, x_instructor_id
        )
        return session_payload(session)

    @app.post("/sessions/{session_id}/coverage")
    async def request_coverage(
        session_id: UUID, request: Request
    ) -> dict[str, object]:
        """Release a session for another instructor."""
        state_container: AppContainer = request.app.state.container
        session = state_container.lifecycle_service.request_coverage(session_id)
        return session_payload(session)

    @app.post("/sessions/{session_id}/cancel")
    async def cancel_session(session_id: UUID, request: Request) -> dict[str, object]:
        """Apply an external cancellation."""
        state_container: AppContainer = request.app.state.container
        session = state_container.lifecycle_service.cancel(session_id)
        return session_payload(session)

    @app.post("/sessions/{session_id}/no-show")
    async def mark_no_show(session_id: UUID, request: Request) -> dict[str, object]:
        """Apply an external session-level no-show."""
        state_container: AppContainer = request.app.state.container
        session = state_container.lifecycle_service.mark_no_show(session_id)
        return session_payload(session)

    @app.get("/instructors/{instructor_id}/dashboard")
    async def instructor_dashboard(
        instructor_id: str, request: Request
    ) -> dict[str, object]:
        """Return the instructor's home screen data."""
        state_container: AppContainer = request.app.state.container
        dashboard_service = state_container.dashboard_service
        now = dashboard_service.clock()
        dashboard = dashboard_service.for_instructor(instructor_id, now)
        return dashboard_payload(dashboard, now, dashboard_service.lead_minutes)

    @app.post("/sessions/{session_id}/wrap-up")
    async def begin_wrap_up(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, object]:
        """Open or re-enter the wrap-up for a finished session."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.begin(session_id, x_instructor_id)
        return draft_payload(draft)

    @app.get("/sessions/{session_id}/wrap-up")
    async def wrap_up_progress(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, object]:
        """Return the open draft with step progress."""
        state_container: AppContainer = request.app.state.container
        service = state_container.wrap_up_service
        draft = service.get_draft(session_id, x_instructor_id)
        return {
            "draft": draft_payload(draft),
            "progress": progress_payload(service.progress(session_id, x_instructor_id)),
        }

    @app.put("/sessions/{session_id}/wrap-up/attendance/{student_id}")
    async def record_attendance(
        session_id: UUID,
        student_id: str,
        payload: AttendanceRequest,
        request: Request,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Override one student's attendance."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.record_attendance(
            session_id,
            x_instructor_id,
            student_id,
            payload.status,
            left_early_at=payload.left_early_at,
            notes=payload.notes,
        )
        return draft_payload(draft)

    @app.post("/sessions/{session_id}/wrap-up/artifacts/{artifact_id}/review")
    async def review_artifact(
        session_id: UUID,
        artifact_id: UUID,
        payload: ReviewRequest,
        request: Request,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Record a review decision for one artifact."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.review_artifact(
            session_id,
            x_instructor_id,
            artifact_id,
            payload.decision,
            feedback=payload.feedback,
        )
        return draft_payload(draft)

    @app.put("/sessions/{session_id}/wrap-up/observations/{student_id}")
    async def record_observations(
        session_id: UUID,
        student_id: str,
        payload: ObservationsRequest,
        request: Request,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Set capacity levels for one student."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.record_observations(
            session_id,
            x_instructor_id,
            student_id,
            payload.levels,
            additional_notes=payload.additional_notes,
        )
        return draft_payload(draft)

    @app.put("/sessions/{session_id}/wrap-up/summary")
    async def set_summary(
        session_id: UUID,
        payload: SummaryRequest,
        request: Request,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Store the narrative summary."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.set_summary(
            session_id, x_instructor_id, payload.summary
        )
        return draft_payload(draft)

    @app.post("/sessions/{session_id}/wrap-up/advance")
    async def advance_step(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, object]:
        """Complete the current step and move on."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.advance(session_id, x_instructor_id)
        return draft_payload(draft)

    @app.post("/sessions/{session_id}/wrap-up/step/{step}")
    async def go_to_step(
        session_id: UUID,
        step: WrapUpStep,
        request: Request,
        x_instructor_id: str = Header(),
    ) -> dict[str, object]:
        """Jump to a step whose earlier steps are complete."""
        state_container: AppContainer = request.app.state.container
        draft = state_container.wrap_up_service.go_to(
            session_id, x_instructor_id, step
        )
        return draft_payload(draft)

    @app.delete("/sessions/{session_id}/wrap-up")
    async def abandon_wrap_up(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, str]:
        """Discard the draft; the session stays wrap-up-pending."""
        state_container: AppContainer = request.app.state.container
        state_container.wrap_up_service.abandon(session_id, x_instructor_id)
        return {"status": "abandoned"}

    @app.post("/sessions/{session_id}/wrap-up/finalize")
    async def finalize_wrap_up(
        session_id: UUID, request: Request, x_instructor_id: str = Header()
    ) -> dict[str, object]:
        """Commit the wrap-up and complete the session."""
        state_container: AppContainer = request.app.state.container
        result = state_container.wrap_up_service.finalize(session_id, x_instructor_id)
        return finalization_payload(result)

    return app
