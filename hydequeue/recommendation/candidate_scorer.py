import time

import numpy as np

from hydequeue.config import settings

SCORE_COMPONENTS = (
    "artist_similarity",
    "genre_similarity",
    "mood_compatibility",
    "novelty_bonus",
    "repetition_penalty",
    "popularity_signal",
)

RECENT_QUEUE_SIZE = 10
RECENT_ARTIST_SPAN = 3


def time_of_day(hour=None) -> str:
    if hour is None:
        hour = time.localtime().tm_hour
    if hour < 12:
        return "morning"
    if hour < 17:
        return "afternoon"
    if hour < 21:
        return "evening"
    return "night"


class SessionContext:
    """
    Playback state the caller hands in with every scoring request.

    ``recent_queue`` defaults to the last 10 tracks of ``queue``.
    """

    def __init__(
        self,
        current_track=None,
        queue=(),
        recent_queue=None,
        time_of_day=None,
        skip_count=0,
        repeat_count=0,
        is_shuffled=False,
    ):
        self.current_track = current_track
        self.queue = list(queue or [])
        if recent_queue is None:
            recent_queue = self.queue[-RECENT_QUEUE_SIZE:]
        self.recent_queue = list(recent_queue)[-RECENT_QUEUE_SIZE:]
        self.time_of_day = time_of_day or _default_time_of_day()
        self.skip_count = int(skip_count or 0)
        self.repeat_count = int(repeat_count or 0)
        self.is_shuffled = bool(is_shuffled)

    @property
    def current_artist(self):
        if not self.current_track:
            return None
        return self.current_track.get("artist")

    @classmethod
    def from_dict(cls, data):
        data = data or {}
        return cls(
            current_track=data.get("current_track"),
            queue=data.get("queue") or [],
            recent_queue=data.get("recent_queue"),
            time_of_day=data.get("time_of_day"),
            skip_count=data.get("skip_count") or 0,
            repeat_count=data.get("repeat_count") or 0,
            is_shuffled=bool(data.get("is_shuffled")),
        )


def _default_time_of_day():
    return time_of_day()


def compute_artist_similarity(profile, track: dict, context: SessionContext) -> float:
    artist = track.get("artist")
    current = context.current_artist
    if current is not None and artist == current:
        return 80.0
    artist_score = profile.artist_score(artist)
    if profile.is_favorite(artist):
        return 90.0 + artist_score
    return (artist_score / profile.max_artist_score()) * 70.0


def compute_genre_similarity(profile, track: dict) -> float:
    genre = track.get("genre")
    if not genre:
        return 50.0
    return (profile.genre_score(genre) / profile.max_genre_score()) * 100.0


def compute_mood_compatibility(profile, track: dict, context: SessionContext) -> float:
    artist = track.get("artist")
    if context.skip_count > 3:
        # Listener is restless, lean on favourites.
        return 90.0 if profile.is_favorite(artist) else 40.0
    if context.repeat_count > 0:
        current = context.current_artist
        return 95.0 if current is not None and artist == current else 60.0
    return 70.0


def compute_novelty_bonus(profile, track: dict) -> float:
    artist_score = profile.artist_score(track.get("artist"))
    if artist_score == 0:
        return profile.discovery_openness * 100.0
    if artist_score < 3:
        return profile.discovery_openness * 50.0
    return 10.0


def compute_repetition_penalty(profile, track: dict, context: SessionContext) -> float:
    track_id = track.get("id")
    # recently_played wins over recently_skipped when a track is in both
    if track_id in profile.recently_played:
        return -80.0
    if track_id in profile.recently_skipped:
        return -100.0
    recent_artists = [t.get("artist") for t in context.recent_queue[-RECENT_ARTIST_SPAN:]]
    if track.get("artist") in recent_artists:
        return -40.0
    return 0.0


def compute_popularity_signal(track: dict) -> float:
    try:
        views = float(track.get("views") or 0)
    except (TypeError, ValueError):
        views = 0.0
    if views > 10_000_000:
        return 20.0
    if views > 1_000_000:
        return 15.0
    if views > 100_000:
        return 10.0
    return 5.0


def score_track(profile, track: dict, context: SessionContext, weights=None) -> dict:
    """
    Score one candidate against the profile and session.

    Returns ``{"track", "score", "reasons"}`` where ``reasons`` holds the six
    sub-scores and ``score`` is their weighted sum.
    """
    weights = weights or settings.SCORE_WEIGHTS
    reasons = {
        "artist_similarity": compute_artist_similarity(profile, track, context),
        "genre_similarity": compute_genre_similarity(profile, track),
        "mood_compatibility": compute_mood_compatibility(profile, track, context),
        "novelty_bonus": compute_novelty_bonus(profile, track),
        "repetition_penalty": compute_repetition_penalty(profile, track, context),
        "popularity_signal": compute_popularity_signal(track),
    }
    values = np.array([reasons[name] for name in SCORE_COMPONENTS], dtype=np.float64)
    weight_vec = np.array([weights[name] for name in SCORE_COMPONENTS], dtype=np.float64)
    return {
        "track": track,
        "score": float(np.dot(values, weight_vec)),
        "reasons": reasons,
    }
