"""Join-window checks for online sessions."""

from dataclasses import dataclass
from datetime import datetime, timedelta

from instructor_portal.domain.sessions import TERMINAL_STATUSES, Delivery, Session

DEFAULT_LEAD_MINUTES = 10


@dataclass(frozen=True)
class JoinWindow:
    """Closed interval during which an online room may be entered."""

    opens_at: datetime
    closes_at: datetime

    def contains(self, moment: datetime) -> bool:
        """Return True when the moment falls inside the window, bounds included."""
        return self.opens_at <= moment <= self.closes_at


def join_window(
    session: Session, lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> JoinWindow | None:
    """Return the join window for an online session, or None for in-person."""
    if session.delivery != Delivery.ONLINE:
        return None
    return JoinWindow(
        opens_at=session.scheduled_at - timedelta(minutes=lead_minutes),
        closes_at=session.ends_at,
    )


def is_joinable(
    now: datetime, session: Session, lead_minutes: int = DEFAULT_LEAD_MINUTES
) -> bool:
    """Return True when the session's room may be entered at ``now``."""
    if session.status in TERMINAL_STATUSES:
        return False
    window = join_window(session, lead_minutes)
    return window is not None and window.contains(now)
