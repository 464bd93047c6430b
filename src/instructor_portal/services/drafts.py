"""In-memory working buffer for wrap-up drafts."""

import logging
import threading
from collections.abc import Callable
from uuid import UUID

from instructor_portal.domain.errors import WrapUpInProgressError
from instructor_portal.domain.wrap_up import WrapUpDraft

_logger = logging.getLogger(__name__)


class WrapUpDraftStore:
    """Holds at most one draft per session.

    A draft is locked to the instructor who opened it until it is
    finalized or abandoned. Drafts never expire.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._drafts: dict[UUID, WrapUpDraft] = {}

    def open(
        self,
        session_id: UUID,
        instructor_id: str,
        factory: Callable[[], WrapUpDraft],
    ) -> WrapUpDraft:
        """Return the instructor's draft for the session, creating it if needed."""
        with self._guard:
            existing = self._drafts.get(session_id)
            if existing is not None:
                if existing.instructor_id != instructor_id:
                    raise WrapUpInProgressError(session_id, existing.instructor_id)
                return existing
            draft = factory()
            self._drafts[session_id] = draft
            _logger.info(
                "Wrap-up draft opened: session=%s instructor=%s",
                session_id,
                instructor_id,
            )
            return draft

    def get(self, session_id: UUID) -> WrapUpDraft | None:
        """Return the open draft for a session, if any."""
        with self._guard:
            return self._drafts.get(session_id)

    def discard(self, session_id: UUID) -> bool:
        """Drop a session's draft. Return True when one existed."""
        with self._guard:
            removed = self._drafts.pop(session_id, None)
        if removed is not None:
            _logger.info("Wrap-up draft discarded: session=%s", session_id)
        return removed is not None
