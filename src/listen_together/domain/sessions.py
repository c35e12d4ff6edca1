"""Domain models for listen-together sessions."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Track:
    """Track reference shared with participants; compared by id only."""

    id: str
    title: str = ""
    artist: str = ""
    image_url: str | None = None
    audio_url: str | None = None
    duration: float = 0.0
    lyrics: str | None = None


@dataclass(frozen=True)
class Participant:
    """A member of a session roster."""

    id: str
    name: str
    joined_at: int
    is_host: bool = False
    avatar: str | None = None


@dataclass(frozen=True)
class ListenSession:
    """Persisted session record keyed by its join code."""

    id: str
    host_id: str
    host_name: str
    participants: tuple[Participant, ...]
    created_at: int
    updated_at: int
    current_track: Track | None = None
    is_playing: bool = False
    current_time: float = 0.0

    def participant(self, user_id: str) -> Participant | None:
        """Return the roster entry for a user, if present."""
        for participant in self.participants:
            if participant.id == user_id:
                return participant
        return None

    def has_participant(self, user_id: str) -> bool:
        """Return True when the user is in the roster."""
        return self.participant(user_id) is not None

    def is_member(self, user_id: str) -> bool:
        """Return True when the user is host or in the roster."""
        return self.host_id == user_id or self.has_participant(user_id)


@dataclass(frozen=True)
class SyncSnapshot:
    """Playback state and roster returned to pulling clients."""

    current_track: Track | None
    is_playing: bool
    current_time: float
    participants: tuple[Participant, ...]
    updated_at: int
    host_id: str | None = None

    def has_participant(self, user_id: str) -> bool:
        """Return True when the user is in the snapshot roster."""
        return any(participant.id == user_id for participant in self.participants)

    @classmethod
    def from_session(cls, session: ListenSession) -> "SyncSnapshot":
        """Build a snapshot from a full session record."""
        return cls(
            current_track=session.current_track,
            is_playing=session.is_playing,
            current_time=session.current_time,
            participants=session.participants,
            updated_at=session.updated_at,
            host_id=session.host_id,
        )


@dataclass(frozen=True)
class LeaveResult:
    """Outcome of a leave or end request."""

    session: ListenSession | None
    ended: bool = False


@dataclass(frozen=True)
class SessionCommand:
    """Typed lifecycle request dispatched by the session manager."""

    action: str
    user_id: str
    session_id: str | None = None
    user_name: str | None = None
    avatar: str | None = None


def track_to_dict(track: Track | None) -> dict[str, object] | None:
    """Serialize a track to its camelCase wire form."""
    if track is None:
        return None
    payload: dict[str, object] = {
        "id": track.id,
        "title": track.title,
        "artist": track.artist,
        "imageUrl": track.image_url,
        "audioUrl": track.audio_url,
        "duration": track.duration,
    }
    if track.lyrics is not None:
        payload["lyrics"] = track.lyrics
    return payload


def track_from_dict(raw: object) -> Track | None:
    """Parse a track from its wire form; returns None for missing tracks."""
    if not isinstance(raw, dict) or not raw.get("id"):
        return None
    duration = raw.get("duration")
    return Track(
        id=str(raw["id"]),
        title=str(raw.get("title") or ""),
        artist=str(raw.get("artist") or ""),
        image_url=raw.get("imageUrl"),
        audio_url=raw.get("audioUrl"),
        duration=float(duration) if isinstance(duration, int | float) else 0.0,
        lyrics=raw.get("lyrics"),
    )


def participant_to_dict(participant: Participant) -> dict[str, object]:
    """Serialize a participant to its camelCase wire form."""
    return {
        "id": participant.id,
        "name": participant.name,
        "avatar": participant.avatar,
        "joinedAt": participant.joined_at,
        "isHost": participant.is_host,
    }


def participant_from_dict(raw: dict[str, object]) -> Participant:
    """Parse a participant from its wire form."""
    return Participant(
        id=str(raw["id"]),
        name=str(raw.get("name") or ""),
        avatar=raw.get("avatar"),
        joined_at=int(raw.get("joinedAt") or 0),
        is_host=bool(raw.get("isHost", False)),
    )


def session_to_dict(session: ListenSession) -> dict[str, object]:
    """Serialize a session to the JSON shape used by stores and the API."""
    return {
        "id": session.id,
        "hostId": session.host_id,
        "hostName": session.host_name,
        "currentTrack": track_to_dict(session.current_track),
        "isPlaying": session.is_playing,
        "currentTime": session.current_time,
        "participants": [participant_to_dict(p) for p in session.participants],
        "createdAt": session.created_at,
        "updatedAt": session.updated_at,
    }


def session_from_dict(raw: dict[str, object]) -> ListenSession:
    """Parse a session from the JSON shape used by stores and the API."""
    participants = raw.get("participants") or []
    return ListenSession(
        id=str(raw["id"]),
        host_id=str(raw["hostId"]),
        host_name=str(raw.get("hostName") or ""),
        current_track=track_from_dict(raw.get("currentTrack")),
        is_playing=bool(raw.get("isPlaying", False)),
        current_time=float(raw.get("currentTime") or 0.0),
        participants=tuple(
            participant_from_dict(item)
            for item in participants
            if isinstance(item, dict)
        ),
        created_at=int(raw.get("createdAt") or 0),
        updated_at=int(raw.get("updatedAt") or 0),
    )


def snapshot_to_dict(snapshot: SyncSnapshot) -> dict[str, object]:
    """Serialize a sync snapshot for pulling clients."""
    return {
        "currentTrack": track_to_dict(snapshot.current_track),
        "isPlaying": snapshot.is_playing,
        "currentTime": snapshot.current_time,
        "participants": [participant_to_dict(p) for p in snapshot.participants],
        "updatedAt": snapshot.updated_at,
        "hostId": snapshot.host_id,
    }


def snapshot_from_dict(raw: dict[str, object]) -> SyncSnapshot:
    """Parse a sync snapshot returned by the API."""
    participants = raw.get("participants") or []
    host_id = raw.get("hostId")
    return SyncSnapshot(
        current_track=track_from_dict(raw.get("currentTrack")),
        is_playing=bool(raw.get("isPlaying", False)),
        current_time=float(raw.get("currentTime") or 0.0),
        participants=tuple(
            participant_from_dict(item)
            for item in participants
            if isinstance(item, dict)
        ),
        updated_at=int(raw.get("updatedAt") or 0),
        host_id=str(host_id) if host_id else None,
    )
