"""Instructor wrap-up workflow.

A wrap-up walks four ordered steps (attendance, artifact review,
observations, summary) inside an in-memory draft. Each step has a
completeness check; a step can be edited or entered only when every
earlier step passes its check. Finalizing validates all four steps,
then commits the wrap-up, artifact decisions, earnings entry, session
completion and badge candidates in one transaction.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol
from uuid import UUID

from instructor_portal.domain.artifacts import (
    Artifact,
    ArtifactReview,
    ArtifactStatus,
    ReviewDecision,
)
from instructor_portal.domain.badges import BadgeCandidate
from instructor_portal.domain.earnings import EarningsEntry
from instructor_portal.domain.errors import (
    FinalizationConflictError,
    IncompleteStepError,
    InvalidTransitionError,
    MissingFeedbackError,
    ValidationError,
    WrapUpInProgressError,
    WrapUpNotFoundError,
)
from instructor_portal.domain.sessions import Session, SessionStatus
from instructor_portal.domain.wrap_up import (
    STEP_ORDER,
    AttendanceStatus,
    Capacity,
    ObservationLevel,
    SessionWrapUp,
    StudentAttendance,
    StudentObservations,
    WrapUpDraft,
    WrapUpStep,
)
from instructor_portal.services.badges import BadgeTriggerEvaluator
from instructor_portal.services.drafts import WrapUpDraftStore
from instructor_portal.services.earnings import EarningsPoster
from instructor_portal.services.finalization import FinalizationUnitOfWork
from instructor_portal.services.locks import SessionLocks
from instructor_portal.services.sessions import (
    SessionLifecycleService,
    effective_status,
    utc_now,
)

_logger = logging.getLogger(__name__)

DEFAULT_SUMMARY_MIN_LENGTH = 10
DEFAULT_SUMMARY_MAX_LENGTH = 500


class ArtifactRepository(Protocol):
    """Read access to submitted artifacts."""

    def list_submitted(self, student_ids: list[str]) -> list[Artifact]:
        """Return artifacts in ``submitted`` status for the given students."""


class WrapUpRepository(Protocol):
    """Read access to committed wrap-ups."""

    def get_completed(self, session_id: UUID) -> SessionWrapUp | None:
        """Return the session's completed wrap-up, if any."""


@dataclass(frozen=True)
class WrapUpProgress:
    """Step completeness flags for progress display."""

    session_id: UUID
    current_step: WrapUpStep
    steps: dict[WrapUpStep, bool]
    artifacts_pending: int
    artifacts_decided: int


@dataclass(frozen=True)
class FinalizationResult:
    """Everything a successful finalization produced."""

    wrap_up: SessionWrapUp
    earnings_entry: EarningsEntry
    badge_candidates: list[BadgeCandidate]


def reviewable_artifacts(session: Session, artifacts: list[Artifact]) -> list[Artifact]:
    """Filter artifacts down to those this session's wrap-up may review."""
    roster = set(session.student_ids)
    return [
        artifact
        for artifact in artifacts
        if artifact.status == ArtifactStatus.SUBMITTED
        and artifact.student_id in roster
        and (
            artifact.session_id == session.id
            or (artifact.session_id is None and artifact.course_id == session.course_id)
        )
    ]


@dataclass
class WrapUpService:
    """Drives one wrap-up draft per session from entry to commit."""

    sessions: SessionLifecycleService
    artifacts: ArtifactRepository
    wrap_ups: WrapUpRepository
    earnings_poster: EarningsPoster
    badge_evaluator: BadgeTriggerEvaluator
    unit_of_work: FinalizationUnitOfWork
    drafts: WrapUpDraftStore = field(default_factory=WrapUpDraftStore)
    locks: SessionLocks = field(default_factory=SessionLocks)
    summary_min_length: int = DEFAULT_SUMMARY_MIN_LENGTH
    summary_max_length: int = DEFAULT_SUMMARY_MAX_LENGTH
    clock: Callable[[], datetime] = utc_now

    def begin(self, session_id: UUID, instructor_id: str) -> WrapUpDraft:
        """Open (or re-enter) the instructor's wrap-up for a finished session."""
        now = self.clock()
        session = self.sessions.get(session_id)
        if self.wrap_ups.get_completed(session_id) is not None:
            raise FinalizationConflictError(session_id, "wrap-up already completed")
        current = effective_status(session, now)
        if current != SessionStatus.WRAP_UP_PENDING:
            raise InvalidTransitionError(
                session_id, current, SessionStatus.WRAP_UP_PENDING
            )
        if session.instructor_id != instructor_id:
            raise ValidationError(
                f"Session {session_id} is not assigned to {instructor_id}"
            )

        def new_draft() -> WrapUpDraft:
            candidates = self.artifacts.list_submitted(session.student_ids)
            return WrapUpDraft(
                session_id=session_id,
                instructor_id=instructor_id,
                started_at=now,
                roster=tuple(session.student_ids),
                reviewable_artifacts={
                    artifact.id: artifact
                    for artifact in reviewable_artifacts(session, candidates)
                },
                attendance={
                    student_id: StudentAttendance(
                        student_id=student_id, status=AttendanceStatus.ATTENDED
                    )
                    for student_id in session.student_ids
                },
            )

        return self.drafts.open(session_id, instructor_id, new_draft)

    def get_draft(self, session_id: UUID, instructor_id: str) -> WrapUpDraft:
        """Return the instructor's open draft for the session."""
        draft = self.drafts.get(session_id)
        if draft is None:
            raise WrapUpNotFoundError(session_id)
        if draft.instructor_id != instructor_id:
            raise WrapUpInProgressError(session_id, draft.instructor_id)
        return draft

    def abandon(self, session_id: UUID, instructor_id: str) -> None:
        """Discard the draft. The session stays ``wrap-up-pending``."""
        self.get_draft(session_id, instructor_id)
        self.drafts.discard(session_id)

    def record_attendance(  # noqa: PLR0913
        self,
        session_id: UUID,
        instructor_id: str,
        student_id: str,
        status: AttendanceStatus,
        left_early_at: datetime | None = None,
        notes: str | None = None,
    ) -> WrapUpDraft:
        """Override one student's attendance."""
        draft = self.get_draft(session_id, instructor_id)
        self._require_enterable(draft, WrapUpStep.ATTENDANCE)
        if student_id not in draft.roster:
            raise ValidationError(f"Student {student_id} is not on the roster")
        if status == AttendanceStatus.LEFT_EARLY and left_early_at is not None:
            session = self.sessions.get(session_id)
            if not session.scheduled_at <= left_early_at <= session.ends_at:
                raise ValidationError(
                    f"Departure time for {student_id} is outside the session slot"
                )
        draft.attendance[student_id] = StudentAttendance(
            student_id=student_id,
            status=status,
            left_early_at=(
                left_early_at if status == AttendanceStatus.LEFT_EARLY else None
            ),
            notes=notes,
        )
        if status == AttendanceStatus.NO_SHOW:
            draft.observations.pop(student_id, None)
        elif draft.current_step in {WrapUpStep.OBSERVATIONS, WrapUpStep.SUMMARY}:
            _seed_observations(draft)
        return draft

    def review_artifact(  # noqa: PLR0913
        self,
        session_id: UUID,
        instructor_id: str,
        artifact_id: UUID,
        decision: ReviewDecision,
        feedback: str | None = None,
    ) -> WrapUpDraft:
        """Record a decision for one reviewable artifact."""
        draft = self.get_draft(session_id, instructor_id)
        self._require_enterable(draft, WrapUpStep.ARTIFACTS)
        artifact = draft.reviewable_artifacts.get(artifact_id)
        if artifact is None:
            raise ValidationError(
                f"Artifact {artifact_id} is not reviewable in this wrap-up"
            )
        cleaned = feedback.strip() if feedback else None
        if decision == ReviewDecision.NEEDS_REVISION and not cleaned:
            raise MissingFeedbackError(artifact_id)
        draft.reviews[artifact_id] = ArtifactReview(
            artifact_id=artifact_id,
            student_id=artifact.student_id,
            decision=decision,
            reviewed_at=self.clock(),
            feedback=cleaned,
        )
        return draft

    def record_observations(  # noqa: PLR0913
        self,
        session_id: UUID,
        instructor_id: str,
        student_id: str,
        levels: dict[Capacity, ObservationLevel],
        additional_notes: str | None = None,
    ) -> WrapUpDraft:
        """Set capacity levels for a present student.

        Capacities left out keep their current level.
        """
        draft = self.get_draft(session_id, instructor_id)
        self._require_enterable(draft, WrapUpStep.OBSERVATIONS)
        if student_id not in draft.observed_students():
            raise ValidationError(
                f"Student {student_id} does not take observations in this session"
            )
        existing = draft.observations.get(student_id)
        merged: dict[Capacity, ObservationLevel] = {}
        if existing is not None:
            merged = {
                obs.capacity: obs.level for obs in existing.capacity_observations
            }
        merged.update(levels)
        notes = additional_notes
        if notes is None and existing is not None:
            notes = existing.additional_notes
        draft.observations[student_id] = StudentObservations.build(
            student_id, merged, notes
        )
        return draft

    def set_summary(
        self, session_id: UUID, instructor_id: str, summary: str
    ) -> WrapUpDraft:
        """Store the narrative summary."""
        draft = self.get_draft(session_id, instructor_id)
        self._require_enterable(draft, WrapUpStep.SUMMARY)
        if len(summary.strip()) > self.summary_max_length:
            raise ValidationError(
                f"Summary must be at most {self.summary_max_length} characters"
            )
        draft.summary = summary.strip()
        return draft

    def advance(self, session_id: UUID, instructor_id: str) -> WrapUpDraft:
        """Complete the current step and move to the next one."""
        draft = self.get_draft(session_id, instructor_id)
        self._ensure_complete(draft, draft.current_step)
        index = STEP_ORDER.index(draft.current_step)
        if index == len(STEP_ORDER) - 1:
            raise ValidationError("Summary is the last step; finalize the wrap-up")
        self._enter(draft, STEP_ORDER[index + 1])
        if (
            draft.current_step == WrapUpStep.ARTIFACTS
            and not draft.reviewable_artifacts
        ):
            self._enter(draft, WrapUpStep.OBSERVATIONS)
        return draft

    def go_to(
        self, session_id: UUID, instructor_id: str, step: WrapUpStep
    ) -> WrapUpDraft:
        """Move to any step whose predecessors are all complete."""
        draft = self.get_draft(session_id, instructor_id)
        self._require_enterable(draft, step)
        self._enter(draft, step)
        return draft

    def progress(self, session_id: UUID, instructor_id: str) -> WrapUpProgress:
        """Return completeness flags for each step."""
        draft = self.get_draft(session_id, instructor_id)
        decided = sum(
            1
            for review in draft.reviews.values()
            if review.decision != ReviewDecision.SKIPPED
        )
        return WrapUpProgress(
            session_id=session_id,
            current_step=draft.current_step,
            steps={step: self._is_complete(draft, step) for step in STEP_ORDER},
            artifacts_pending=len(draft.reviewable_artifacts) - decided,
            artifacts_decided=decided,
        )

    def finalize(self, session_id: UUID, instructor_id: str) -> FinalizationResult:
        """Commit the draft atomically and complete the session."""
        with self.locks.hold(session_id):
            now = self.clock()
            if self.wrap_ups.get_completed(session_id) is not None:
                raise FinalizationConflictError(
                    session_id, "wrap-up already completed"
                )
            session = self.sessions.get(session_id)
            current = effective_status(session, now)
            if current != SessionStatus.WRAP_UP_PENDING:
                raise FinalizationConflictError(
                    session_id, f"session is {current}, not wrap-up-pending"
                )
            draft = self.get_draft(session_id, instructor_id)
            for step in STEP_ORDER:
                self._ensure_complete(draft, step)

            wrap_up = _to_committed(draft, now)
            entry = self.earnings_poster.prepare(wrap_up, session)
            candidates = self.badge_evaluator.evaluate(wrap_up)

            with self.unit_of_work.begin() as transaction:
                transaction.save_wrap_up(wrap_up)
                for review in wrap_up.artifact_reviews:
                    transaction.record_artifact_review(review, instructor_id)
                self.earnings_poster.post(transaction, entry)
                transaction.complete_session(session_id, expected_status=session.status)
                transaction.enqueue_badges(session_id, candidates)

            self.drafts.discard(session_id)
        _logger.info(
            "Wrap-up finalized: session=%s instructor=%s reviews=%s badges=%s",
            session_id,
            instructor_id,
            len(wrap_up.artifact_reviews),
            len(candidates),
        )
        return FinalizationResult(
            wrap_up=wrap_up, earnings_entry=entry, badge_candidates=candidates
        )

    def _enter(self, draft: WrapUpDraft, step: WrapUpStep) -> None:
        if step == WrapUpStep.OBSERVATIONS:
            _seed_observations(draft)
        draft.current_step = step

    def _require_enterable(self, draft: WrapUpDraft, step: WrapUpStep) -> None:
        for earlier in STEP_ORDER[: STEP_ORDER.index(step)]:
            self._ensure_complete(draft, earlier)

    def _is_complete(self, draft: WrapUpDraft, step: WrapUpStep) -> bool:
        try:
            self._ensure_complete(draft, step)
        except IncompleteStepError:
            return False
        return True

    def _ensure_complete(self, draft: WrapUpDraft, step: WrapUpStep) -> None:
        if step == WrapUpStep.ATTENDANCE:
            for student_id in draft.roster:
                if student_id not in draft.attendance:
                    raise IncompleteStepError(
                        step,
                        f"Attendance missing for student {student_id}",
                        student_id=student_id,
                        field="attendance",
                    )
        elif step == WrapUpStep.OBSERVATIONS:
            for student_id in draft.observed_students():
                if student_id not in draft.observations:
                    raise IncompleteStepError(
                        step,
                        f"Observations missing for student {student_id}",
                        student_id=student_id,
                        field="observations",
                    )
        elif step == WrapUpStep.SUMMARY:
            if len(draft.summary.strip()) < self.summary_min_length:
                raise IncompleteStepError(
                    step,
                    f"Summary needs at least {self.summary_min_length} characters",
                    field="summary",
                )


def _seed_observations(draft: WrapUpDraft) -> None:
    for student_id in draft.observed_students():
        if student_id not in draft.observations:
            draft.observations[student_id] = StudentObservations.build(student_id)


def _to_committed(draft: WrapUpDraft, completed_at: datetime) -> SessionWrapUp:
    observed = draft.observed_students()
    return SessionWrapUp(
        session_id=draft.session_id,
        instructor_id=draft.instructor_id,
        attendance=tuple(draft.attendance[student_id] for student_id in draft.roster),
        artifact_reviews=tuple(
            review
            for review in draft.reviews.values()
            if review.decision != ReviewDecision.SKIPPED
        ),
        observations=tuple(draft.observations[student_id] for student_id in observed),
        summary=draft.summary.strip(),
        started_at=draft.started_at,
        completed_at=completed_at,
    )
