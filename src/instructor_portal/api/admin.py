"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from instructor_portal.api.serializers import (
    earnings_payload,
    pay_period_payload,
    session_payload,
)
from instructor_portal.domain.errors import NoOpenPayPeriodError

if TYPE_CHECKING:
    from instructor_portal.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.post("/sweep", dependencies=[Depends(require_admin)])
async def sweep_elapsed_sessions(request: Request) -> dict[str, object]:
    """Persist wrap-up-pending for assigned sessions whose slot has ended."""
    container: AppContainer = request.app.state.container
    promoted = container.lifecycle_service.promote_elapsed()
    return {
        "promoted": len(promoted),
        "sessions": [session_payload(session) for session in promoted],
    }


@router.post("/badges/dispatch", dependencies=[Depends(require_admin)])
async def dispatch_badges(request: Request, limit: int = 100) -> dict[str, int]:
    """Deliver queued badge candidates to the award service."""
    container: AppContainer = request.app.state.container
    delivered = await container.badge_dispatcher.dispatch_pending(limit)
    return {"delivered": delivered}


@router.get("/pay-periods/{instructor_id}", dependencies=[Depends(require_admin)])
async def current_pay_period(instructor_id: str, request: Request) -> dict[str, object]:
    """Return the instructor's open pay period and its entries."""
    container: AppContainer = request.app.state.container
    poster = container.earnings_poster
    now = container.lifecycle_service.clock()
    try:
        period = poster.open_period(instructor_id, now)
    except NoOpenPayPeriodError as exc:
        return {"period": None, "entries": [], "open_periods_found": exc.found}
    return {
        "period": pay_period_payload(period),
        "entries": [
            earnings_payload(entry) for entry in poster.ledger.list_entries(period.id)
        ],
    }
