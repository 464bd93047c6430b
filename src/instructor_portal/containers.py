"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from instructor_portal.adapters.badge_award_client import HttpxBadgeAwardClient
from instructor_portal.adapters.supabase_artifact_repository import (
    SupabaseArtifactRepository,
)
from instructor_portal.adapters.supabase_badge_outbox_repository import (
    SupabaseBadgeOutboxRepository,
)
from instructor_portal.adapters.supabase_finalization import (
    SupabaseFinalizationUnitOfWork,
)
from instructor_portal.adapters.supabase_pay_period_repository import (
    SupabasePayPeriodRepository,
)
from instructor_portal.adapters.supabase_session_repository import (
    SupabaseSessionRepository,
)
from instructor_portal.adapters.supabase_wrap_up_repository import (
    SupabaseWrapUpRepository,
)
from instructor_portal.config import Settings, parse_rate_table
from instructor_portal.services.badges import (
    ApprovedArtifactThresholdRule,
    BadgeDispatcher,
    BadgeTriggerEvaluator,
)
from instructor_portal.services.dashboard import DashboardService
from instructor_portal.services.drafts import WrapUpDraftStore
from instructor_portal.services.earnings import EarningsPoster
from instructor_portal.services.locks import SessionLocks
from instructor_portal.services.rates import RateResolver
from instructor_portal.services.sessions import SessionLifecycleService
from instructor_portal.services.wrap_up import WrapUpService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    lifecycle_service: SessionLifecycleService
    wrap_up_service: WrapUpService
    dashboard_service: DashboardService
    earnings_poster: EarningsPoster
    badge_dispatcher: BadgeDispatcher
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    session_repository = SupabaseSessionRepository(supabase_client)
    artifact_repository = SupabaseArtifactRepository(supabase_client)
    wrap_up_repository = SupabaseWrapUpRepository(supabase_client)
    pay_period_repository = SupabasePayPeriodRepository(supabase_client)
    outbox_repository = SupabaseBadgeOutboxRepository(supabase_client)
    unit_of_work = SupabaseFinalizationUnitOfWork(supabase_client)

    # Lifecycle and wrap-up must see the same drafts and locks.
    drafts = WrapUpDraftStore()
    locks = SessionLocks()
    lifecycle_service = SessionLifecycleService(
        repository=session_repository, drafts=drafts, locks=locks
    )
    earnings_poster = EarningsPoster(
        rates=RateResolver(parse_rate_table(resolved_settings.rate_table_json)),
        ledger=pay_period_repository,
    )
    badge_evaluator = BadgeTriggerEvaluator(
        rules=[
            ApprovedArtifactThresholdRule(
                badge_id=resolved_settings.badge_id,
                threshold=resolved_settings.badge_approval_threshold,
            )
        ]
    )
    wrap_up_service = WrapUpService(
        sessions=lifecycle_service,
        artifacts=artifact_repository,
        wrap_ups=wrap_up_repository,
        earnings_poster=earnings_poster,
        badge_evaluator=badge_evaluator,
        unit_of_work=unit_of_work,
        drafts=drafts,
        locks=locks,
        summary_min_length=resolved_settings.summary_min_length,
        summary_max_length=resolved_settings.summary_max_length,
    )
    dashboard_service = DashboardService(
        session_repository=session_repository,
        artifact_repository=artifact_repository,
        earnings_poster=earnings_poster,
        lead_minutes=resolved_settings.join_lead_minutes,
    )
    badge_client = HttpxBadgeAwardClient.create(
        resolved_settings.badge_service_url, resolved_settings.badge_service_token
    )
    badge_dispatcher = BadgeDispatcher(
        outbox=outbox_repository, client=badge_client
    )

    async def close_resources() -> None:
        await badge_client.close()

    return AppContainer(
        settings=resolved_settings,
        lifecycle_service=lifecycle_service,
        wrap_up_service=wrap_up_service,
        dashboard_service=dashboard_service,
        earnings_poster=earnings_poster,
        badge_dispatcher=badge_dispatcher,
        close_resources=close_resources,
    )
