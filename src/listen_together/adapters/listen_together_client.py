"""HTTP client for the listen-together API."""

from dataclasses import dataclass
from typing import Protocol

import httpx

from listen_together.domain.errors import (
    INVALID_ACTION_PREFIX,
    InvalidActionError,
    InvalidPayloadError,
    SessionNotFoundError,
    UnauthorizedActionError,
    UnauthorizedPushError,
)
from listen_together.domain.sessions import (
    LeaveResult,
    ListenSession,
    SyncSnapshot,
    session_from_dict,
    snapshot_from_dict,
)


class ListenTogetherApi(Protocol):
    """Interface used by clients to reach the session service."""

    async def create_session(
        self, user_id: str, user_name: str, avatar: str | None = None
    ) -> ListenSession:
        """Create a session hosted by the caller."""

    async def join_session(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        avatar: str | None = None,
    ) -> ListenSession:
        """Join an existing session."""

    async def leave_session(self, session_id: str, user_id: str) -> LeaveResult:
        """Leave a session."""

    async def end_session(self, session_id: str, user_id: str) -> LeaveResult:
        """End a session for everyone (host only)."""

    async def get_snapshot(self, session_id: str) -> SyncSnapshot:
        """Fetch the current playback snapshot."""

    async def push(
        self,
        session_id: str,
        user_id: str,
        action: str,
        payload: dict[str, object] | None = None,
    ) -> None:
        """Push a host playback mutation."""

    async def close(self) -> None:
        """Release any network resources held by the client."""

@dataclass
class HttpxListenTogetherApi(ListenTogetherApi):
    """Listen-together API client implemented with httpx."""

    base_url: str
    http_client: httpx.AsyncClient
    timeout: float = 10

    @classmethod
    def create(cls, base_url: str) -> "HttpxListenTogetherApi":
        """Create a client with a managed httpx session."""
        return cls(base_url=base_url.rstrip("/"), http_client=httpx.AsyncClient())

    async def create_session(
        self, user_id: str, user_name: str, avatar: str | None = None
    ) -> ListenSession:
        """Create a session hosted by the caller."""
        data = await self._post_session(
            {
                "action": "create",
                "userId": user_id,
                "userName": user_name,
                "userAvatar": avatar,
            },
            session_id=None,
        )
        return session_from_dict(data)

    async def join_session(
        self,
        session_id: str,
        user_id: str,
        user_name: str,
        avatar: str | None = None,
    ) -> ListenSession:
        """Join an existing session."""
        data = await self._post_session(
            {
                "action": "join",
                "sessionId": session_id.upper(),
                "userId": user_id,
                "userName": user_name,
                "userAvatar": avatar,
            },
            session_id=session_id,
        )
        return session_from_dict(data)

    async def leave_session(self, session_id: str, user_id: str) -> LeaveResult:
        """Leave a session."""
        data = await self._post_session(
            {"action": "leave", "sessionId": session_id, "userId": user_id},
            session_id=session_id,
        )
        return _leave_result(data)

    async def end_session(self, session_id: str, user_id: str) -> LeaveResult:
        """End a session for everyone."""
        data = await self._post_session(
            {"action": "end", "sessionId": session_id, "userId": user_id},
            session_id=session_id,
        )
        return _leave_result(data)

    async def get_snapshot(self, session_id: str) -> SyncSnapshot:
        """Fetch the current playback snapshot."""
        response = await self.http_client.get(
            f"{self.base_url}/api/listen-together/sync",
            params={"sessionId": session_id},
            headers={"Cache-Control": "no-cache"},
            timeout=self.timeout,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise SessionNotFoundError(session_id)
        response.raise_for_status()
        return snapshot_from_dict(response.json())

    async def push(
        self,
        session_id: str,
        user_id: str,
        action: str,
        payload: dict[str, object] | None = None,
    ) -> None:
        """Push a host playback mutation."""
        response = await self.http_client.post(
            f"{self.base_url}/api/listen-together/sync",
            json={
                "sessionId": session_id,
                "userId": user_id,
                "action": action,
                "payload": payload or {},
            },
            timeout=self.timeout,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise SessionNotFoundError(session_id)
        if response.status_code == httpx.codes.FORBIDDEN:
            raise UnauthorizedPushError(session_id, user_id)
        if response.status_code == httpx.codes.BAD_REQUEST:
            _raise_bad_request(response, action)
        response.raise_for_status()

    async def close(self) -> None:
        """Close the underlying HTTP client session."""
        await self.http_client.aclose()

    async def _post_session(
        self, payload: dict[str, object], session_id: str | None
    ) -> dict[str, object]:
        response = await self.http_client.post(
            f"{self.base_url}/api/listen-together",
            json=payload,
            timeout=self.timeout,
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise SessionNotFoundError(session_id or "")
        if response.status_code == httpx.codes.FORBIDDEN:
            raise UnauthorizedActionError(_detail(response) or "Forbidden")
        if response.status_code == httpx.codes.BAD_REQUEST:
            _raise_bad_request(response, payload.get("action"))
        response.raise_for_status()
        return response.json()


def _leave_result(data: dict[str, object]) -> LeaveResult:
    if data.get("ended"):
        return LeaveResult(session=None, ended=True)
    return LeaveResult(session=session_from_dict(data))


def _detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return str(data.get("detail", ""))
    return ""


def _raise_bad_request(response: httpx.Response, action: object) -> None:
    """Map a 400 response onto the matching domain error."""
    detail = _detail(response)
    if detail.startswith(INVALID_ACTION_PREFIX):
        raise InvalidActionError(action)
    raise InvalidPayloadError(detail or "Invalid request")
