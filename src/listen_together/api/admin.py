"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from listen_together.domain.sessions import session_to_dict

if TYPE_CHECKING:
    from listen_together.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


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


@router.get("/sessions", dependencies=[Depends(require_admin)])
async def list_sessions(request: Request) -> dict[str, object]:
    """Return every live session."""
    container: AppContainer = request.app.state.container
    sessions = container.session_store.list_all()
    return {"sessions": [session_to_dict(session) for session in sessions]}


@router.post("/cleanup", dependencies=[Depends(require_admin)])
async def cleanup(request: Request) -> dict[str, object]:
    """Force a staleness sweep and return the reclaimed codes."""
    container: AppContainer = request.app.state.container
    return {"deleted": container.reclaimer.cleanup()}
