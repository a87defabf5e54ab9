import logging

from hydequeue.config import settings
from hydequeue.core.track_metadata import is_title_too_similar
from hydequeue.recommendation.candidate_scorer import SessionContext, time_of_day
from hydequeue.recommendation.recommendation_engine import (
    STRATEGY_DISCOVERY,
    STRATEGY_FOCUS,
)

logger = logging.getLogger(__name__)


# Check whether the queue is about to run dry.
def needs_more_tracks(queue, current_track):
    if not queue:
        return True
    current_id = (current_track or {}).get("id")
    current_index = next((i for i, t in enumerate(queue) if t.get("id") == current_id), -1)
    return current_index >= len(queue) - 2


# Build the upstream search query for a strategy.
def build_search_query(strategy, artist):
    if strategy == STRATEGY_FOCUS:
        return f"{artist} best songs"
    if strategy == STRATEGY_DISCOVERY:
        return f"similar to {artist} new artists"
    return f"{artist} radio"


# Drop candidates already queued, playing, or near-duplicate by title.
def filter_candidates(candidates, queue, current_track):
    queued_ids = {t.get("id") for t in queue or []}
    current_id = current_track.get("id")
    current_title = current_track.get("title") or ""
    kept = []
    for track in candidates or []:
        if track.get("id") in queued_ids or track.get("id") == current_id:
            continue
        if is_title_too_similar(current_title, track.get("title") or ""):
            continue
        kept.append(track)
    return kept


class AutoQueue:
    """
    Tops up the play queue with engine recommendations.

    ``search_fn`` takes a free-text query and returns track dicts; it is the
    only part that touches the network.
    """

    def __init__(self, engine, search_fn, count=None, fallback_count=None):
        self.engine = engine
        self.search_fn = search_fn
        self.count = int(count or settings.AUTO_QUEUE_COUNT)
        self.fallback_count = int(fallback_count or settings.AUTO_QUEUE_FALLBACK_COUNT)
        self._fetching = False

    @property
    def is_fetching(self):
        return self._fetching

    def replenish(self, current_track, queue, skip_count=0, repeat_count=0, is_shuffled=False, hour=None):
        """
        Return tracks to append to ``queue``, or an empty list.

        Nothing is fetched unless the current track is within the last two
        queue slots. When the engine picks nothing the first few filtered
        candidates are used instead.
        """
        queue = list(queue or [])
        if not current_track or self._fetching:
            return []
        if not needs_more_tracks(queue, current_track):
            return []

        self._fetching = True
        try:
            context = SessionContext(
                current_track=current_track,
                queue=queue,
                recent_queue=queue[-10:],
                time_of_day=time_of_day(hour),
                skip_count=skip_count,
                repeat_count=repeat_count,
                is_shuffled=is_shuffled,
            )
            strategy = self.engine.strategy()
            query = build_search_query(strategy, current_track.get("artist") or "")
            logger.info("Auto-queue strategy %s, query %r", strategy, query)

            candidates = filter_candidates(self.search_fn(query), queue, current_track)
            picks = self.engine.recommend(candidates, context, self.count)
            if picks:
                logger.info("Auto-queue added %d recommendations", len(picks))
                return picks
            logger.info("No recommendations found, using fallback")
            return candidates[: self.fallback_count]
        except Exception:
            logger.exception("Auto-queue replenish failed")
            return []
        finally:
            self._fetching = False
