import time

from hydequeue.recommendation.taste_profile import (
    ACTION_FULL_LISTEN,
    ACTION_LIKE,
    ACTION_PLAY,
    ACTION_REPLAY,
    ACTION_SKIP,
    ListeningEvent,
)

SKIP_THRESHOLD = 0.7
FULL_LISTEN_THRESHOLD = 0.9


class PlaybackEventTracker:
    """
    Turns player transport transitions into listening events.

    Also keeps the per-session skip and repeat counters that feed
    ``SessionContext``.
    """

    def __init__(self, engine, clock=None):
        self.engine = engine
        self.clock = clock or time.time
        self.skip_count = 0
        self.repeat_count = 0

    def _emit(self, track, action, listen_duration=None, track_duration=None):
        event = ListeningEvent(
            track_id=track.get("id"),
            artist=track.get("artist"),
            genre=track.get("genre"),
            action=action,
            timestamp=self.clock(),
            listen_duration=listen_duration,
            track_duration=track_duration,
        )
        self.engine.record_event(event)
        return event

    # Playback of a track started.
    def track_started(self, track):
        self.repeat_count += 1
        return self._emit(track, ACTION_PLAY)

    # User pressed next.
    def next_pressed(self, track, position, duration):
        """
        Record a skip when the track was left before 70% of its length.

        Returns the recorded event, or None when no skip was counted.
        """
        if track is None or not position < duration * SKIP_THRESHOLD:
            return None
        self.skip_count += 1
        return self._emit(track, ACTION_SKIP, position, duration)

    # Playback paused or ended.
    def playback_stopped(self, track, position, duration):
        if track is None or position <= 0:
            return None
        if position / (duration or 1) > FULL_LISTEN_THRESHOLD:
            return self._emit(track, ACTION_FULL_LISTEN, position, duration)
        return None

    def liked(self, track):
        return self._emit(track, ACTION_LIKE)

    def replayed(self, track):
        return self._emit(track, ACTION_REPLAY)

    def reset_counters(self):
        self.skip_count = 0
        self.repeat_count = 0
