"""Error taxonomy for listen-together sessions."""

INVALID_ACTION_PREFIX = "Invalid action"


class ListenTogetherError(Exception):
    """Base error for session and sync failures."""


class SessionNotFoundError(ListenTogetherError):
    """Raised when a session code does not resolve in the store."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class UnauthorizedPushError(ListenTogetherError):
    """Raised when someone other than the host pushes playback state."""

    def __init__(self, session_id: str, user_id: str) -> None:
        super().__init__("Only host can control playback")
        self.session_id = session_id
        self.user_id = user_id


class UnauthorizedActionError(ListenTogetherError):
    """Raised when a non-host attempts a host-only lifecycle action."""


class InvalidActionError(ListenTogetherError):
    """Raised for unrecognized action strings."""

    def __init__(self, action: object) -> None:
        super().__init__(f"{INVALID_ACTION_PREFIX}: {action!r}")
        self.action = action


class InvalidPayloadError(ListenTogetherError):
    """Raised when a push payload is missing required fields."""


class SessionCodeExhaustedError(ListenTogetherError):
    """Raised when no free session code is found after the allowed attempts."""
