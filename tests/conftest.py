"""Shared test fixtures."""

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

import pytest

from instructor_portal.config import Settings
from instructor_portal.containers import AppContainer
from instructor_portal.domain.artifacts import (
    Artifact,
    ArtifactReview,
    ArtifactStatus,
)
from instructor_portal.domain.badges import BadgeCandidate, OutboxBadge
from instructor_portal.domain.earnings import EarningsEntry, PayPeriod, PayPeriodStatus
from instructor_portal.domain.errors import FinalizationConflictError
from instructor_portal.domain.sessions import (
    Delivery,
    OnlineRoom,
    Session,
    SessionFormat,
    SessionStatus,
    StudentContext,
)
from instructor_portal.domain.wrap_up import SessionWrapUp
from instructor_portal.services.badges import (
    BadgeAwardClient,
    BadgeDispatcher,
    BadgeOutboxRepository,
    BadgeTriggerEvaluator,
)
from instructor_portal.services.dashboard import DashboardService
from instructor_portal.services.drafts import WrapUpDraftStore
from instructor_portal.services.earnings import EarningsPoster, PayPeriodLedger
from instructor_portal.services.finalization import (
    FinalizationTransaction,
    FinalizationUnitOfWork,
)
from instructor_portal.services.locks import SessionLocks
from instructor_portal.services.rates import RateResolver
from instructor_portal.services.sessions import (
    SessionLifecycleService,
    SessionRepository,
)
from instructor_portal.services.wrap_up import (
    ArtifactRepository,
    WrapUpRepository,
    WrapUpService,
)

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=UTC)
INSTRUCTOR_ID = "instructor-1"
OTHER_INSTRUCTOR_ID = "instructor-2"
COURSE_ID = "course-python-1"
SERVICE_KEY = "eyJhbGciOiJIUzI1NiJ9.eyJyb2xlIjoic2VydmljZSJ9.signature"


def make_student(student_id: str) -> StudentContext:
    return StudentContext(
        student_id=student_id,
        first_name=student_id.title(),
        last_name="Learner",
        enrollment_id=f"enr-{student_id}",
    )


def make_session(**overrides: object) -> Session:
    """Build a session that ended 30 minutes before ``NOW`` by default."""
    values: dict[str, object] = {
        "id": uuid4(),
        "course_id": COURSE_ID,
        "course_name": "Python Foundations",
        "scheduled_at": NOW - timedelta(minutes=90),
        "duration_minutes": 60,
        "wrap_up_minutes": 10,
        "format": SessionFormat.GROUP,
        "delivery": Delivery.ONLINE,
        "sequence_number": 3,
        "total_in_series": 8,
        "status": SessionStatus.ASSIGNED,
        "instructor_id": INSTRUCTOR_ID,
        "roster": (make_student("ana"), make_student("ben")),
        "online": OnlineRoom(
            host_room_url="https://rooms.test/host",
            participant_room_url="https://rooms.test/join",
        ),
    }
    values.update(overrides)
    return Session(**values)  # type: ignore[arg-type]


def make_artifact(
    student_id: str,
    session_id: UUID | None = None,
    course_id: str = COURSE_ID,
    status: ArtifactStatus = ArtifactStatus.SUBMITTED,
) -> Artifact:
    return Artifact(
        id=uuid4(),
        student_id=student_id,
        course_id=course_id,
        session_id=session_id,
        type="project",
        title=f"{student_id} project",
        files=(),
        submitted_at=NOW - timedelta(days=1),
        status=status,
    )


def make_pay_period(instructor_id: str = INSTRUCTOR_ID) -> PayPeriod:
    return PayPeriod(
        id=uuid4(),
        instructor_id=instructor_id,
        start_date=NOW - timedelta(days=7),
        end_date=NOW + timedelta(days=7),
        status=PayPeriodStatus.OPEN,
    )


@dataclass
class FakeClock:
    """Settable clock."""

    now: datetime = NOW

    def __call__(self) -> datetime:
        return self.now


@dataclass
class InMemorySessionRepository(SessionRepository):
    """In-memory session repository for tests."""

    sessions: dict[UUID, Session] = field(default_factory=dict)
    writes: int = 0

    def add(self, session: Session) -> Session:
        self.sessions[session.id] = session
        return session

    def get_session(self, session_id: UUID) -> Session | None:
        return self.sessions.get(session_id)

    def list_sessions_for_instructor(self, instructor_id: str) -> list[Session]:
        return sorted(
            (s for s in self.sessions.values() if s.instructor_id == instructor_id),
            key=lambda s: s.scheduled_at,
        )

    def list_open_sessions(self) -> list[Session]:
        return sorted(
            (
                s
                for s in self.sessions.values()
                if s.status
                in {SessionStatus.AVAILABLE, SessionStatus.COVERAGE_NEEDED}
            ),
            key=lambda s: s.scheduled_at,
        )

    def list_elapsed_assigned(self, now: datetime) -> list[Session]:
        return [
            s
            for s in self.sessions.values()
            if s.status == SessionStatus.ASSIGNED and s.ends_at < now
        ]

    def update_session(self, session: Session, expected_status: SessionStatus) -> bool:
        stored = self.sessions.get(session.id)
        if stored is None or stored.status != expected_status:
            return False
        self.sessions[session.id] = session
        self.writes += 1
        return True


@dataclass
class InMemoryArtifactRepository(ArtifactRepository):
    """In-memory artifact repository for tests."""

    artifacts: dict[UUID, Artifact] = field(default_factory=dict)

    def add(self, artifact: Artifact) -> Artifact:
        self.artifacts[artifact.id] = artifact
        return artifact

    def list_submitted(self, student_ids: list[str]) -> list[Artifact]:
        wanted = set(student_ids)
        return [
            a
            for a in self.artifacts.values()
            if a.student_id in wanted and a.status == ArtifactStatus.SUBMITTED
        ]


@dataclass
class InMemoryWrapUpRepository(WrapUpRepository):
    """In-memory store of completed wrap-ups."""

    wrap_ups: dict[UUID, SessionWrapUp] = field(default_factory=dict)

    def get_completed(self, session_id: UUID) -> SessionWrapUp | None:
        return self.wrap_ups.get(session_id)


@dataclass
class InMemoryPayPeriodLedger(PayPeriodLedger):
    """In-memory pay periods and entries."""

    periods: list[PayPeriod] = field(default_factory=list)
    entries: list[EarningsEntry] = field(default_factory=list)

    def list_open_periods(self, instructor_id: str, at: datetime) -> list[PayPeriod]:
        return [
            p
            for p in self.periods
            if p.instructor_id == instructor_id
            and p.status == PayPeriodStatus.OPEN
            and p.start_date <= at <= p.end_date
        ]

    def list_entries(self, pay_period_id: UUID) -> list[EarningsEntry]:
        return [e for e in self.entries if e.pay_period_id == pay_period_id]


@dataclass
class InMemoryBadgeOutbox(BadgeOutboxRepository):
    """In-memory badge outbox."""

    items: list[OutboxBadge] = field(default_factory=list)
    delivered: set[UUID] = field(default_factory=set)

    def list_pending(self, limit: int) -> list[OutboxBadge]:
        return [i for i in self.items if i.id not in self.delivered][:limit]

    def mark_delivered(self, outbox_ids: list[UUID]) -> None:
        self.delivered.update(outbox_ids)


@dataclass
class InMemoryTransaction(FinalizationTransaction):
    """Applies finalization writes straight to the in-memory stores."""

    store: "InMemoryStore"
    fail_on: str | None = None

    def _check(self, step: str) -> None:
        if self.fail_on == step:
            raise RuntimeError(f"Injected failure in {step}")

    def save_wrap_up(self, wrap_up: SessionWrapUp) -> None:
        self._check("save_wrap_up")
        if wrap_up.session_id in self.store.wrap_ups.wrap_ups:
            raise FinalizationConflictError(wrap_up.session_id, "duplicate wrap-up")
        self.store.wrap_ups.wrap_ups[wrap_up.session_id] = wrap_up

    def record_artifact_review(self, review: ArtifactReview, reviewer_id: str) -> None:
        self._check("record_artifact_review")
        artifact = self.store.artifacts.artifacts[review.artifact_id]
        self.store.artifacts.artifacts[review.artifact_id] = replace(
            artifact,
            status=ArtifactStatus(review.decision.value),
            reviewed_by=reviewer_id,
            reviewed_at=review.reviewed_at,
            feedback=review.feedback,
        )

    def append_earnings(self, entry: EarningsEntry) -> None:
        self._check("append_earnings")
        ledger = self.store.ledger
        ledger.entries.append(entry)
        ledger.periods = [
            replace(
                p,
                total_earned=p.total_earned + entry.amount,
                session_count=p.session_count + 1,
            )
            if p.id == entry.pay_period_id
            else p
            for p in ledger.periods
        ]

    def complete_session(
        self, session_id: UUID, expected_status: SessionStatus
    ) -> None:
        self._check("complete_session")
        sessions = self.store.sessions
        stored = sessions.sessions[session_id]
        completed = replace(stored, status=SessionStatus.COMPLETED)
        if not sessions.update_session(completed, expected_status):
            raise FinalizationConflictError(session_id, "session status changed")

    def enqueue_badges(
        self, session_id: UUID, candidates: list[BadgeCandidate]
    ) -> None:
        self._check("enqueue_badges")
        self.store.outbox.items.extend(
            OutboxBadge(id=uuid4(), session_id=session_id, candidate=candidate)
            for candidate in candidates
        )


@dataclass
class InMemoryStore(FinalizationUnitOfWork):
    """Unit of work over the in-memory stores; restores a snapshot on error."""

    sessions: InMemorySessionRepository
    artifacts: InMemoryArtifactRepository
    wrap_ups: InMemoryWrapUpRepository
    ledger: InMemoryPayPeriodLedger
    outbox: InMemoryBadgeOutbox
    fail_on: str | None = None
    commits: int = 0

    @contextmanager
    def begin(self) -> Iterator[InMemoryTransaction]:
        snapshot = copy.deepcopy(
            (
                self.sessions.sessions,
                self.artifacts.artifacts,
                self.wrap_ups.wrap_ups,
                self.ledger.periods,
                self.ledger.entries,
                self.outbox.items,
            )
        )
        try:
            yield InMemoryTransaction(store=self, fail_on=self.fail_on)
        except BaseException:
            (
                self.sessions.sessions,
                self.artifacts.artifacts,
                self.wrap_ups.wrap_ups,
                self.ledger.periods,
                self.ledger.entries,
                self.outbox.items,
            ) = snapshot
            raise
        self.commits += 1


@dataclass
class FakeBadgeAwardClient(BadgeAwardClient):
    """Records award calls."""

    calls: list[tuple[UUID, list[BadgeCandidate]]] = field(default_factory=list)
    closed: bool = False

    async def award(self, session_id: UUID, candidates: list[BadgeCandidate]) -> None:
        self.calls.append((session_id, list(candidates)))

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key=SERVICE_KEY,
        admin_token="admin-token",
        badge_service_url="https://badges.test",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_repository() -> InMemorySessionRepository:
    return InMemorySessionRepository()


@pytest.fixture
def artifact_repository() -> InMemoryArtifactRepository:
    return InMemoryArtifactRepository()


@pytest.fixture
def wrap_up_repository() -> InMemoryWrapUpRepository:
    return InMemoryWrapUpRepository()


@pytest.fixture
def ledger() -> InMemoryPayPeriodLedger:
    return InMemoryPayPeriodLedger(periods=[make_pay_period()])


@pytest.fixture
def outbox() -> InMemoryBadgeOutbox:
    return InMemoryBadgeOutbox()


@pytest.fixture
def store(
    session_repository: InMemorySessionRepository,
    artifact_repository: InMemoryArtifactRepository,
    wrap_up_repository: InMemoryWrapUpRepository,
    ledger: InMemoryPayPeriodLedger,
    outbox: InMemoryBadgeOutbox,
) -> InMemoryStore:
    return InMemoryStore(
        sessions=session_repository,
        artifacts=artifact_repository,
        wrap_ups=wrap_up_repository,
        ledger=ledger,
        outbox=outbox,
    )


@pytest.fixture
def drafts() -> WrapUpDraftStore:
    return WrapUpDraftStore()


@pytest.fixture
def lifecycle_service(
    session_repository: InMemorySessionRepository,
    drafts: WrapUpDraftStore,
    clock: FakeClock,
) -> SessionLifecycleService:
    return SessionLifecycleService(
        repository=session_repository,
        drafts=drafts,
        locks=SessionLocks(),
        clock=clock,
    )


@pytest.fixture
def earnings_poster(ledger: InMemoryPayPeriodLedger) -> EarningsPoster:
    return EarningsPoster(rates=RateResolver(), ledger=ledger)


@pytest.fixture
def wrap_up_service(
    lifecycle_service: SessionLifecycleService,
    artifact_repository: InMemoryArtifactRepository,
    wrap_up_repository: InMemoryWrapUpRepository,
    earnings_poster: EarningsPoster,
    store: InMemoryStore,
    drafts: WrapUpDraftStore,
    clock: FakeClock,
) -> WrapUpService:
    return WrapUpService(
        sessions=lifecycle_service,
        artifacts=artifact_repository,
        wrap_ups=wrap_up_repository,
        earnings_poster=earnings_poster,
        badge_evaluator=BadgeTriggerEvaluator(),
        unit_of_work=store,
        drafts=drafts,
        locks=lifecycle_service.locks,
        clock=clock,
    )


@pytest.fixture
def dashboard_service(
    session_repository: InMemorySessionRepository,
    artifact_repository: InMemoryArtifactRepository,
    earnings_poster: EarningsPoster,
    clock: FakeClock,
) -> DashboardService:
    return DashboardService(
        session_repository=session_repository,
        artifact_repository=artifact_repository,
        earnings_poster=earnings_poster,
        clock=clock,
    )


@pytest.fixture
def badge_client() -> FakeBadgeAwardClient:
    return FakeBadgeAwardClient()


@pytest.fixture
def badge_dispatcher(
    outbox: InMemoryBadgeOutbox, badge_client: FakeBadgeAwardClient
) -> BadgeDispatcher:
    return BadgeDispatcher(outbox=outbox, client=badge_client)


@pytest.fixture
def container(
    settings: Settings,
    lifecycle_service: SessionLifecycleService,
    wrap_up_service: WrapUpService,
    dashboard_service: DashboardService,
    earnings_poster: EarningsPoster,
    badge_dispatcher: BadgeDispatcher,
    badge_client: FakeBadgeAwardClient,
) -> AppContainer:
    async def close_resources() -> None:
        await badge_client.close()

    return AppContainer(
        settings=settings,
        lifecycle_service=lifecycle_service,
        wrap_up_service=wrap_up_service,
        dashboard_service=dashboard_service,
        earnings_poster=earnings_poster,
        badge_dispatcher=badge_dispatcher,
        close_resources=close_resources,
    )
