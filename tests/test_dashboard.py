"""Tests for the instructor dashboard."""

from datetime import timedelta

from instructor_portal.domain.sessions import SessionStatus
from instructor_portal.services.dashboard import DashboardService
from tests.conftest import (
    INSTRUCTOR_ID,
    NOW,
    OTHER_INSTRUCTOR_ID,
    InMemoryArtifactRepository,
    InMemoryPayPeriodLedger,
    InMemorySessionRepository,
    make_artifact,
    make_session,
)


def test_dashboard_groups_sessions(
    dashboard_service: DashboardService,
    session_repository: InMemorySessionRepository,
    artifact_repository: InMemoryArtifactRepository,
    ledger: InMemoryPayPeriodLedger,
) -> None:
    elapsed = session_repository.add(make_session())
    starting = session_repository.add(
        make_session(scheduled_at=NOW + timedelta(minutes=5))
    )
    tomorrow = session_repository.add(
        make_session(scheduled_at=NOW + timedelta(days=1))
    )
    session_repository.add(
        make_session(
            scheduled_at=NOW - timedelta(days=1), status=SessionStatus.COMPLETED
        )
    )
    open_session = session_repository.add(
        make_session(
            scheduled_at=NOW + timedelta(days=2),
            status=SessionStatus.AVAILABLE,
            instructor_id=None,
            roster=(),
        )
    )
    session_repository.add(
        make_session(
            scheduled_at=NOW + timedelta(days=2),
            instructor_id=OTHER_INSTRUCTOR_ID,
        )
    )
    artifact = artifact_repository.add(make_artifact("ana", session_id=elapsed.id))

    dashboard = dashboard_service.for_instructor(INSTRUCTOR_ID)

    assert [s.id for s in dashboard.today_sessions] == [starting.id]
    assert [s.id for s in dashboard.upcoming_sessions] == [tomorrow.id]
    assert [s.id for s in dashboard.wrap_up_pending] == [elapsed.id]
    assert dashboard.wrap_up_pending[0].status == SessionStatus.WRAP_UP_PENDING
    assert [s.id for s in dashboard.available_sessions] == [open_session.id]
    assert [a.id for a in dashboard.pending_artifacts] == [artifact.id]
    assert dashboard.joinable_session_ids == [starting.id]
    assert dashboard.current_pay_period == ledger.periods[0]


def test_dashboard_without_open_period(
    dashboard_service: DashboardService, ledger: InMemoryPayPeriodLedger
) -> None:
    ledger.periods = []

    dashboard = dashboard_service.for_instructor(INSTRUCTOR_ID)

    assert dashboard.current_pay_period is None
    assert dashboard.today_sessions == []
