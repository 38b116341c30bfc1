"""Admin API endpoints with simple token auth."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

if TYPE_CHECKING:
    from good_steward.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])
_logger = logging.getLogger(__name__)


def _get_admin_token(request: Request) -> str | None:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str | None = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not admin_token or not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/counts", dependencies=[Depends(require_admin)])
def counts(request: Request) -> dict[str, int]:
    """Return how many scans and consumption records are stored."""
    container: AppContainer = request.app.state.container
    return {
        "scans": container.scan_service.count(),
        "consumptions": len(container.ledger.list_all()),
    }


@router.post("/reset", dependencies=[Depends(require_admin)])
def reset(request: Request) -> dict[str, str]:
    """Clear all scans and consumption records and reset the profile."""
    container: AppContainer = request.app.state.container
    container.scan_service.clear_history()
    container.profile_service.reset()
    _logger.warning("Local data reset via admin API")
    return {"status": "reset"}
