"""Named failures raised by the session and wrap-up services."""

from uuid import UUID


class WorkflowError(Exception):
    """Base class for session lifecycle and wrap-up failures."""


class SessionNotFoundError(WorkflowError):
    """The referenced session does not exist."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"Session {session_id} not found")
        self.session_id = session_id


class InvalidTransitionError(WorkflowError):
    """A status change is not allowed from the session's current status."""

    def __init__(self, session_id: UUID, current: str, requested: str) -> None:
        super().__init__(
            f"Session {session_id} cannot move from {current} to {requested}"
        )
        self.session_id = session_id
        self.current = current
        self.requested = requested


class ValidationError(WorkflowError):
    """Input does not fit the session or draft it targets."""


class IncompleteStepError(WorkflowError):
    """A wrap-up step's completeness check failed."""

    def __init__(
        self,
        step: str,
        message: str,
        student_id: str | None = None,
        field: str | None = None,
    ) -> None:
        super().__init__(message)
        self.step = step
        self.student_id = student_id
        self.field = field


class MissingFeedbackError(WorkflowError):
    """An artifact was marked needs-revision without feedback text."""

    def __init__(self, artifact_id: UUID) -> None:
        super().__init__(f"Artifact {artifact_id} needs feedback to request revision")
        self.artifact_id = artifact_id


class WrapUpNotFoundError(WorkflowError):
    """No wrap-up draft is open for the session."""

    def __init__(self, session_id: UUID) -> None:
        super().__init__(f"No wrap-up in progress for session {session_id}")
        self.session_id = session_id


class WrapUpInProgressError(WorkflowError):
    """Another instructor already holds the session's wrap-up draft."""

    def __init__(self, session_id: UUID, instructor_id: str) -> None:
        super().__init__(
            f"Wrap-up for session {session_id} is held by instructor {instructor_id}"
        )
        self.session_id = session_id
        self.instructor_id = instructor_id


class FinalizationConflictError(WorkflowError):
    """The session is already wrapped up or is not awaiting wrap-up."""

    def __init__(self, session_id: UUID, reason: str) -> None:
        super().__init__(f"Cannot finalize session {session_id}: {reason}")
        self.session_id = session_id
        self.reason = reason


class UnknownActivityError(WorkflowError):
    """The rate table has no entry for the requested activity."""

    def __init__(self, activity: str) -> None:
        super().__init__(f"No rate configured for activity {activity!r}")
        self.activity = activity


class NoOpenPayPeriodError(WorkflowError):
    """The instructor has no single open pay period to post into."""

    def __init__(self, instructor_id: str, found: int = 0) -> None:
        super().__init__(
            f"Expected one open pay period for instructor {instructor_id}, "
            f"found {found}"
        )
        self.instructor_id = instructor_id
        self.found = found
