import time

from hydequeue.config import settings
from hydequeue.core.track_metadata import safe_optional_float

ACTION_PLAY = "play"
ACTION_SKIP = "skip"
ACTION_REPLAY = "replay"
ACTION_LIKE = "like"
ACTION_FULL_LISTEN = "full_listen"

LISTENING_ACTIONS = (
    ACTION_PLAY,
    ACTION_SKIP,
    ACTION_REPLAY,
    ACTION_LIKE,
    ACTION_FULL_LISTEN,
)


class ListeningEvent:
    """
    One playback transition reported by the player.

    Events are never mutated after creation. Durations are optional; a
    missing or non-numeric value is stored as None.
    """

    __slots__ = (
        "track_id",
        "artist",
        "action",
        "genre",
        "timestamp",
        "listen_duration",
        "track_duration",
    )

    def __init__(
        self,
        track_id,
        artist,
        action,
        genre=None,
        timestamp=None,
        listen_duration=None,
        track_duration=None,
    ):
        self.track_id = str(track_id or "")
        self.artist = str(artist or "")
        self.action = str(action or "").strip().lower()
        self.genre = str(genre).strip() if genre else None
        self.timestamp = safe_optional_float(timestamp)
        if self.timestamp is None:
            self.timestamp = time.time()
        self.listen_duration = safe_optional_float(listen_duration)
        self.track_duration = safe_optional_float(track_duration)

    # Fraction of the track that was heard.
    def completion_ratio(self):
        """
        Return listen/track duration, or 1.0 when either is missing.

        A zero track duration also yields 1.0 so the caller never sees
        NaN or infinity.
        """
        if self.listen_duration is None or self.track_duration is None:
            return 1.0
        if self.track_duration == 0:
            return 1.0
        return self.listen_duration / self.track_duration

    def to_dict(self):
        return {
            "track_id": self.track_id,
            "artist": self.artist,
            "genre": self.genre,
            "action": self.action,
            "timestamp": self.timestamp,
            "listen_duration": self.listen_duration,
            "track_duration": self.track_duration,
        }

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValueError("event must be a mapping")
        return cls(
            track_id=data.get("track_id"),
            artist=data.get("artist"),
            action=data.get("action"),
            genre=data.get("genre"),
            timestamp=data.get("timestamp"),
            listen_duration=data.get("listen_duration"),
            track_duration=data.get("track_duration"),
        )

    def __repr__(self):
        return (
            f"ListeningEvent(track_id={self.track_id!r}, artist={self.artist!r}, "
            f"action={self.action!r})"
        )


class TasteProfile:
    """
    Per-session aggregate of artist/genre affinity and recency sets.

    Affinity maps are plain dicts so iteration follows insertion order, which
    is also the tie-break order for favourite artists.
    """

    def __init__(self, discovery_openness=None):
        self.artist_affinity = {}
        self.genre_affinity = {}
        # dict used as an insertion-ordered set
        self.recently_played = {}
        self.recently_skipped = {}
        self.favorite_artists = []
        if discovery_openness is None:
            discovery_openness = settings.DISCOVERY_OPENNESS_DEFAULT
        self.discovery_openness = clamp_openness(discovery_openness)
        self.last_updated = time.time()

    # Get artist score.
    def artist_score(self, artist):
        return self.artist_affinity.get(artist, 0.0)

    # Get genre score.
    def genre_score(self, genre):
        return self.genre_affinity.get(genre, 0.0)

    def is_favorite(self, artist):
        return artist in self.favorite_artists

    # Largest artist score, never below 1.
    def max_artist_score(self):
        return max([*self.artist_affinity.values(), 1.0])

    # Largest genre score, never below 1.
    def max_genre_score(self):
        return max([*self.genre_affinity.values(), 1.0])

    # Add to an affinity map, floor-clamped at zero.
    @staticmethod
    def _bump(scores, key, delta):
        current = scores.get(key, 0.0)
        scores[key] = max(0.0, current + delta)
        return scores[key]

    def bump_artist(self, artist, delta):
        return self._bump(self.artist_affinity, artist, delta)

    def bump_genre(self, genre, delta):
        return self._bump(self.genre_affinity, genre, delta)

    # Remember a played track id, evicting the oldest past the limit.
    def remember_played(self, track_id, limit):
        self.recently_played.setdefault(track_id, None)
        while len(self.recently_played) > limit:
            oldest = next(iter(self.recently_played))
            del self.recently_played[oldest]

    # Remember a skipped track id, evicting the oldest past the limit.
    # A re-skip moves the id to the newest end.
    def remember_skipped(self, track_id, limit=None):
        self.recently_skipped.pop(track_id, None)
        self.recently_skipped[track_id] = None
        if limit is None:
            return
        while len(self.recently_skipped) > limit:
            oldest = next(iter(self.recently_skipped))
            del self.recently_skipped[oldest]

    def refresh_favorites(self, limit):
        """
        Recompute favourite artists as the top ``limit`` by affinity.

        ``sorted`` is stable, so equal scores keep insertion order.
        """
        ranked = sorted(self.artist_affinity.items(), key=lambda item: item[1], reverse=True)
        self.favorite_artists = [artist for artist, _ in ranked[:limit]]
        return self.favorite_artists

    def adjust_openness(self, recent_skips, step=None):
        """
        Nudge discovery openness from the recent skip count.

        More than 5 skips narrows discovery, fewer than 2 widens it.
        """
        if step is None:
            step = settings.DISCOVERY_OPENNESS_STEP
        if recent_skips > 5:
            self.discovery_openness = clamp_openness(self.discovery_openness - step)
        elif recent_skips < 2:
            self.discovery_openness = clamp_openness(self.discovery_openness + step)
        return self.discovery_openness

    def touch(self):
        self.last_updated = time.time()

    def copy(self):
        clone = TasteProfile(discovery_openness=self.discovery_openness)
        clone.artist_affinity = dict(self.artist_affinity)
        clone.genre_affinity = dict(self.genre_affinity)
        clone.recently_played = dict(self.recently_played)
        clone.recently_skipped = dict(self.recently_skipped)
        clone.favorite_artists = list(self.favorite_artists)
        clone.last_updated = self.last_updated
        return clone

    def to_dict(self):
        return {
            "artist_affinity": dict(self.artist_affinity),
            "genre_affinity": dict(self.genre_affinity),
            "recently_played": list(self.recently_played),
            "recently_skipped": list(self.recently_skipped),
            "favorite_artists": list(self.favorite_artists),
            "discovery_openness": self.discovery_openness,
            "last_updated": self.last_updated,
        }


# Keep openness inside its configured bounds.
def clamp_openness(value):
    bounded = min(
        settings.DISCOVERY_OPENNESS_MAX,
        max(settings.DISCOVERY_OPENNESS_MIN, float(value)),
    )
    return round(bounded, 6)
