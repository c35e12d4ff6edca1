"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse

from listen_together.api.admin import router as admin_router
from listen_together.api.models import SessionRequest, SyncPushRequest
from listen_together.app_logging import configure_logging
from listen_together.containers import AppContainer
from listen_together.domain.errors import (
    InvalidActionError,
    InvalidPayloadError,
    ListenTogetherError,
    SessionCodeExhaustedError,
    SessionNotFoundError,
    UnauthorizedActionError,
    UnauthorizedPushError,
)
from listen_together.domain.sessions import (
    LeaveResult,
    SessionCommand,
    session_to_dict,
    snapshot_to_dict,
)

_NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
}

_ERROR_STATUS: dict[type[ListenTogetherError], int] = {
    SessionNotFoundError: status.HTTP_404_NOT_FOUND,
    UnauthorizedPushError: status.HTTP_403_FORBIDDEN,
    UnauthorizedActionError: status.HTTP_403_FORBIDDEN,
    InvalidActionError: status.HTTP_400_BAD_REQUEST,
    InvalidPayloadError: status.HTTP_400_BAD_REQUEST,
    SessionCodeExhaustedError: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Listen-together service starting with %s store",
            type(app.state.container.session_store).__name__,
        )
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    app.include_router(admin_router)

    @app.exception_handler(ListenTogetherError)
    async def listen_together_error(
        request: Request, exc: ListenTogetherError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(
            type(exc), status.HTTP_500_INTERNAL_SERVER_ERROR
        )
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Request to %s failed: %s", request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=status_code)

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/api/listen-together", response_model=None)
    async def get_sessions(
        request: Request,
        session_id: str | None = Query(default=None, alias="sessionId"),
        user_id: str | None = Query(default=None, alias="userId"),
    ) -> dict[str, object] | list[dict[str, object]]:
        """Return one session by code, or every session a user belongs to."""
        state_container: AppContainer = request.app.state.container
        manager = state_container.session_manager
        if session_id:
            return session_to_dict(manager.get_session(session_id))
        if user_id:
            return [
                session_to_dict(session)
                for session in manager.list_sessions_for_user(user_id)
            ]
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing sessionId or userId",
        )

    @app.post("/api/listen-together")
    async def session_action(
        body: SessionRequest, request: Request
    ) -> dict[str, object]:
        """Create, join, leave or end a session."""
        state_container: AppContainer = request.app.state.container
        result = state_container.session_manager.handle(
            SessionCommand(
                action=body.action,
                user_id=body.user_id,
                session_id=body.session_id,
                user_name=body.user_name,
                avatar=body.user_avatar,
            )
        )
        if isinstance(result, LeaveResult):
            if result.ended or result.session is None:
                return {"ended": True, "message": "Session ended"}
            return session_to_dict(result.session)
        return session_to_dict(result)

    @app.get("/api/listen-together/sync")
    async def sync_snapshot(
        request: Request,
        session_id: str | None = Query(default=None, alias="sessionId"),
    ) -> JSONResponse:
        """Return the playback snapshot polled by session members."""
        if not session_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Missing sessionId"
            )
        state_container: AppContainer = request.app.state.container
        snapshot = state_container.sync_engine.snapshot(session_id)
        return JSONResponse(snapshot_to_dict(snapshot), headers=_NO_CACHE_HEADERS)

    @app.post("/api/listen-together/sync")
    async def sync_push(body: SyncPushRequest, request: Request) -> dict[str, object]:
        """Apply a host playback push."""
        state_container: AppContainer = request.app.state.container
        session = state_container.sync_engine.push(
            body.session_id, body.user_id, body.action, body.payload
        )
        return session_to_dict(session)

    return app
