import json
import logging
import math

from hydequeue.config import settings
from hydequeue.recommendation.candidate_scorer import SessionContext, score_track
from hydequeue.recommendation.taste_profile import (
    ACTION_FULL_LISTEN,
    ACTION_LIKE,
    ACTION_PLAY,
    ACTION_REPLAY,
    ACTION_SKIP,
    ListeningEvent,
    TasteProfile,
    clamp_openness,
)

logger = logging.getLogger(__name__)

STRATEGY_FOCUS = "focus_mode"
STRATEGY_DISCOVERY = "discovery_mode"
STRATEGY_BALANCED = "balanced"

EXPORT_VERSION = 1

# Flat artist credit per action; skip and play are ratio dependent.
_ARTIST_CREDIT = {
    ACTION_FULL_LISTEN: 3.0,
    ACTION_LIKE: 5.0,
    ACTION_REPLAY: 4.0,
}


class TasteRecommendationEngine:
    """
    Session-scoped taste tracker and auto-queue ranker.

    Each instance owns one ``TasteProfile`` and its bounded listening
    history. The engine is not thread-safe; callers serialize access.
    """

    # Initialize class state.
    def __init__(
        self,
        history_window=None,
        recently_played_window=None,
        recently_skipped_window=None,
        weights=None,
    ):
        """
        Initialize the engine with an empty profile.

        Window sizes and score weights default to the values in
        ``hydequeue.config.settings``.
        """
        self.history_window = int(history_window or settings.HISTORY_WINDOW)
        self.recently_played_window = int(recently_played_window or settings.RECENTLY_PLAYED_WINDOW)
        self.recently_skipped_window = (
            recently_skipped_window
            if recently_skipped_window is not None
            else settings.RECENTLY_SKIPPED_WINDOW
        )
        self.weights = dict(weights or settings.SCORE_WEIGHTS)
        self._profile = TasteProfile()
        self._history = []

    @property
    def profile(self):
        return self._profile

    @property
    def history(self):
        return list(self._history)

    # Get a detached copy of the profile.
    def get_profile(self):
        return self._profile.copy()

    # Record a listening event.
    def record_event(self, event):
        """
        Record a playback transition and update the taste profile.

        Accepts a ``ListeningEvent`` or a dict with the same keys. Missing
        genre or durations are tolerated. Anything else is logged and
        dropped without touching history or the profile.
        """
        if isinstance(event, dict):
            event = ListeningEvent.from_dict(event)
        if not isinstance(event, ListeningEvent):
            logger.warning("Ignoring unusable listening event %r", event)
            return False
        self._history.append(event)
        if len(self._history) > self.history_window:
            self._history.pop(0)
        self._update_profile(event)
        return True

    def _update_profile(self, event):
        profile = self._profile
        completion = event.completion_ratio()
        action = event.action

        if action in _ARTIST_CREDIT:
            delta = _ARTIST_CREDIT[action]
        elif action == ACTION_SKIP:
            delta = -2.0 if completion < 0.3 else -0.5
            profile.remember_skipped(event.track_id, self.recently_skipped_window)
        elif action == ACTION_PLAY:
            delta = completion * 1.5
        else:
            delta = None
            logger.warning("Unknown listening action %r for track %s", action, event.track_id)
        # events without an artist still count for genre and recency
        if delta is not None and event.artist:
            profile.bump_artist(event.artist, delta)

        if event.genre:
            genre_delta = -1.0 if action == ACTION_SKIP else completion * 2.0
            profile.bump_genre(event.genre, genre_delta)

        profile.remember_played(event.track_id, self.recently_played_window)
        profile.refresh_favorites(settings.FAVORITE_ARTIST_COUNT)
        profile.adjust_openness(self._recent_skip_count())
        profile.touch()
        logger.debug(
            "Recorded %s for %s (artist=%s, openness=%.2f)",
            action,
            event.track_id,
            event.artist,
            profile.discovery_openness,
        )

    # Count skips among the most recent history entries.
    def _recent_skip_count(self):
        recent = self._history[-settings.SKIP_RATE_WINDOW:]
        return sum(1 for e in recent if e.action == ACTION_SKIP)

    # Score a candidate.
    def score(self, track, context):
        if isinstance(context, dict):
            context = SessionContext.from_dict(context)
        return score_track(self._profile, track, context, self.weights)

    def _is_familiar(self, artist):
        return self._profile.is_favorite(artist) or self._profile.artist_score(artist) > 3

    def recommend_scored(self, candidates, context, count=3):
        """
        Rank candidates and blend familiar and discovery picks.

        Returns the selected scored dicts in queue order. At most ``count``
        items, never two with the same track id.
        """
        if count <= 0:
            return []
        if isinstance(context, dict):
            context = SessionContext.from_dict(context)

        unique = []
        seen_ids = set()
        for track in candidates or []:
            track_id = track.get("id")
            if track_id in seen_ids:
                continue
            seen_ids.add(track_id)
            unique.append(track)

        scored = [score_track(self._profile, t, context, self.weights) for t in unique]
        scored.sort(key=lambda item: item["score"], reverse=True)

        familiar = [s for s in scored if self._is_familiar(s["track"].get("artist"))]
        discovery = [s for s in scored if not self._is_familiar(s["track"].get("artist"))]

        openness = self._profile.discovery_openness
        target_familiar = math.ceil(round(count * (1 - openness), 9))
        target_discovery = count - target_familiar

        selected = familiar[:target_familiar] + discovery[:target_discovery]
        if len(selected) < count:
            chosen = {s["track"].get("id") for s in selected}
            for item in scored:
                if len(selected) >= count:
                    break
                if item["track"].get("id") in chosen:
                    continue
                selected.append(item)
                chosen.add(item["track"].get("id"))

        logger.info(
            "Recommended %d tracks (familiar=%d, discovery=%d, openness=%.2f)",
            len(selected),
            target_familiar,
            target_discovery,
            openness,
        )
        return selected

    # Recommend next tracks.
    def recommend(self, candidates, context, count=3):
        return [item["track"] for item in self.recommend_scored(candidates, context, count)]

    # Pick the search strategy hint.
    def strategy(self):
        """
        Return ``focus_mode``, ``discovery_mode`` or ``balanced``.

        The skip rate always divides by the window size, even when the
        history holds fewer events.
        """
        skip_rate = self._recent_skip_count() / settings.SKIP_RATE_WINDOW
        if skip_rate > 0.5:
            return STRATEGY_FOCUS
        if self._profile.discovery_openness > 0.4:
            return STRATEGY_DISCOVERY
        return STRATEGY_BALANCED

    # Reset profile and history.
    def reset(self):
        self._profile = TasteProfile()
        self._history = []

    # Export profile as JSON.
    def export_profile(self):
        profile = self._profile
        payload = {
            "version": EXPORT_VERSION,
            "profile": {
                "artist_affinity": [[k, v] for k, v in profile.artist_affinity.items()],
                "genre_affinity": [[k, v] for k, v in profile.genre_affinity.items()],
                "favorite_artists": list(profile.favorite_artists),
                "discovery_openness": profile.discovery_openness,
                "last_updated": profile.last_updated,
            },
            "history": [e.to_dict() for e in self._history[-settings.EXPORT_HISTORY_LIMIT:]],
        }
        return json.dumps(payload, indent=2)

    # Import profile from JSON.
    def import_profile(self, blob):
        """
        Replace affinity maps, favourites and openness from an exported blob.

        The blob is parsed into a staging profile first, so a malformed blob
        leaves the current profile untouched. Failures are logged and
        reported as ``False``; nothing is raised.
        """
        try:
            staged = _parse_profile_blob(blob)
        except (ValueError, TypeError, KeyError, RecursionError, OverflowError) as exc:
            logger.error("Failed to import taste profile: %s", exc)
            return False
        profile = self._profile
        profile.artist_affinity = staged.artist_affinity
        profile.genre_affinity = staged.genre_affinity
        profile.favorite_artists = staged.favorite_artists
        profile.discovery_openness = staged.discovery_openness
        profile.touch()
        logger.info(
            "Imported taste profile (%d artists, %d genres)",
            len(profile.artist_affinity),
            len(profile.genre_affinity),
        )
        return True


def _parse_affinity_entries(entries, label):
    if isinstance(entries, dict):
        entries = list(entries.items())
    if not isinstance(entries, list):
        raise ValueError(f"{label} must be a list of [name, score] pairs")
    scores = {}
    for entry in entries:
        if not isinstance(entry, (list, tuple)) or len(entry) != 2:
            raise ValueError(f"{label} entry must be a [name, score] pair")
        name, score = entry
        if not isinstance(name, str):
            raise ValueError(f"{label} name must be a string")
        if isinstance(score, bool) or not isinstance(score, (int, float)):
            raise ValueError(f"{label} score must be a number")
        if math.isnan(score) or math.isinf(score):
            raise ValueError(f"{label} score must be finite")
        scores[name] = max(0.0, float(score))
    return scores


def _parse_profile_blob(blob):
    if isinstance(blob, (bytes, bytearray)):
        blob = blob.decode("utf-8")
    data = json.loads(blob) if isinstance(blob, str) else blob
    if not isinstance(data, dict):
        raise ValueError("profile blob must be a JSON object")
    section = data["profile"]
    if not isinstance(section, dict):
        raise ValueError("profile section must be an object")

    staged = TasteProfile()
    staged.artist_affinity = _parse_affinity_entries(section["artist_affinity"], "artist_affinity")
    staged.genre_affinity = _parse_affinity_entries(section["genre_affinity"], "genre_affinity")

    favorites = section["favorite_artists"]
    if not isinstance(favorites, list) or not all(isinstance(a, str) for a in favorites):
        raise ValueError("favorite_artists must be a list of strings")
    staged.favorite_artists = list(favorites)

    openness = section["discovery_openness"]
    if isinstance(openness, bool) or not isinstance(openness, (int, float)):
        raise ValueError("discovery_openness must be a number")
    if math.isnan(openness):
        raise ValueError("discovery_openness must be finite")
    staged.discovery_openness = clamp_openness(openness)
    return staged
