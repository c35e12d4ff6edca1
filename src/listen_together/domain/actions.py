"""Closed action sets for the session and sync endpoints."""

from enum import StrEnum

from listen_together.domain.errors import InvalidActionError


class SessionAction(StrEnum):
    """Lifecycle actions accepted by the session endpoint."""

    CREATE = "create"
    JOIN = "join"
    LEAVE = "leave"
    END = "end"

    @classmethod
    def parse(cls, raw: object) -> "SessionAction":
        """Return the action for a raw string or raise InvalidActionError."""
        try:
            return cls(str(raw))
        except ValueError as exc:
            raise InvalidActionError(raw) from exc


class SyncAction(StrEnum):
    """Playback mutations a host may push."""

    CHANGE_TRACK = "change_track"
    UPDATE_TIME = "update_time"
    PLAY_PAUSE = "play_pause"
    PLAY = "play"
    PAUSE = "pause"
    SEEK = "seek"

    @classmethod
    def parse(cls, raw: object) -> "SyncAction":
        """Return the action for a raw string or raise InvalidActionError."""
        try:
            return cls(str(raw))
        except ValueError as exc:
            raise InvalidActionError(raw) from exc
