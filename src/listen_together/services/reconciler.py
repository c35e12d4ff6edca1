"""Reconcile a participant's local playback with the host's snapshot."""

import logging
from dataclasses import dataclass
from typing import Protocol

from listen_together.domain.sessions import SyncSnapshot, Track

logger = logging.getLogger(__name__)

DEFAULT_DRIFT_THRESHOLD_SECONDS = 2.0


class PlaybackEngine(Protocol):
    """Local audio pipeline driven by the reconciler."""

    def play(self, track: Track | None = None) -> None:
        """Start playback, loading ``track`` first when given."""

    def pause(self) -> None:
        """Pause playback."""

    def seek(self, position: float) -> None:
        """Move the playhead to ``position`` seconds."""

    def current_time(self) -> float:
        """Return the playhead position in seconds."""

    def track_id(self) -> str | None:
        """Return the id of the loaded track, if any."""

    def is_playing(self) -> bool:
        """Return True while audio is playing."""


@dataclass(frozen=True)
class ReconcileOutcome:
    """What one reconciliation pass changed on the engine."""

    switched_track: bool = False
    toggled_playback: bool = False
    seeked: bool = False


@dataclass
class LocalReconciler:
    """Applies track switches, play/pause and drift correction."""

    engine: PlaybackEngine
    drift_threshold: float = DEFAULT_DRIFT_THRESHOLD_SECONDS

    def reconcile(self, snapshot: SyncSnapshot) -> ReconcileOutcome:
        """Bring the local engine in line with ``snapshot``."""
        track = snapshot.current_track
        if track is None:
            return ReconcileOutcome()

        if self.engine.track_id() != track.id:
            logger.info("Switching to track %s (%s)", track.id, track.title)
            self.engine.play(track)
            if snapshot.current_time > 0:
                self.engine.seek(snapshot.current_time)
            if not snapshot.is_playing:
                self.engine.pause()
            return ReconcileOutcome(switched_track=True)

        toggled = False
        if snapshot.is_playing and not self.engine.is_playing():
            self.engine.play()
            toggled = True
        elif not snapshot.is_playing and self.engine.is_playing():
            self.engine.pause()
            toggled = True

        seeked = False
        if self.needs_seek(self.engine.current_time(), snapshot.current_time):
            self.engine.seek(snapshot.current_time)
            seeked = True
        return ReconcileOutcome(toggled_playback=toggled, seeked=seeked)

    def needs_seek(self, local_time: float, remote_time: float) -> bool:
        """Return True when drift exceeds the threshold."""
        return abs(local_time - remote_time) > self.drift_threshold
