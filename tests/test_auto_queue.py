"""Tests for the auto-queue replenisher helpers."""

from __future__ import annotations

import pytest

from hydequeue.pipeline.auto_queue import (
    AutoQueue,
    build_search_query,
    filter_candidates,
    needs_more_tracks,
)
from hydequeue.recommendation.recommendation_engine import (
    STRATEGY_BALANCED,
    STRATEGY_DISCOVERY,
    STRATEGY_FOCUS,
    TasteRecommendationEngine,
)


def _track(track_id, artist="Artist", title=None):
    return {"id": track_id, "artist": artist, "title": title or f"Title {track_id}", "views": 0}


class _SilentEngine:
    """Engine double that never recommends anything."""

    def strategy(self):
        return STRATEGY_BALANCED

    def recommend(self, candidates, context, count=3):
        return []


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_needs_more_tracks_on_empty_queue():
    assert needs_more_tracks([], _track("now")) is True


def test_needs_more_tracks_near_end_of_queue():
    queue = [_track(f"q{i}") for i in range(5)]
    assert needs_more_tracks(queue, queue[0]) is False
    assert needs_more_tracks(queue, queue[2]) is False
    assert needs_more_tracks(queue, queue[3]) is True
    assert needs_more_tracks(queue, queue[4]) is True


def test_current_track_missing_from_long_queue_does_not_trigger():
    queue = [_track(f"q{i}") for i in range(5)]
    assert needs_more_tracks(queue, _track("elsewhere")) is False


@pytest.mark.parametrize(
    "strategy,expected",
    [
        (STRATEGY_FOCUS, "Daft Punk best songs"),
        (STRATEGY_DISCOVERY, "similar to Daft Punk new artists"),
        (STRATEGY_BALANCED, "Daft Punk radio"),
    ],
)
def test_build_search_query(strategy, expected):
    assert build_search_query(strategy, "Daft Punk") == expected


def test_filter_candidates_drops_queued_current_and_similar_titles():
    current = _track("now", title="Get Lucky")
    queue = [current, _track("q1")]
    candidates = [
        _track("now", title="Get Lucky"),
        _track("q1"),
        _track("c1", title="Get Lucky (Official Video)"),
        _track("c2", title="Instant Crush"),
    ]
    kept = filter_candidates(candidates, queue, current)
    assert [t["id"] for t in kept] == ["c2"]


# ---------------------------------------------------------------------------
# AutoQueue
# ---------------------------------------------------------------------------


def test_replenish_searches_with_strategy_query_and_returns_picks():
    queries = []
    pool = [_track(f"c{i}", artist=f"Other {i}") for i in range(8)]

    def search(query):
        queries.append(query)
        return pool

    current = _track("now", artist="Daft Punk", title="Get Lucky")
    auto = AutoQueue(TasteRecommendationEngine(), search, count=5)

    picks = auto.replenish(current, [current])

    assert queries == ["Daft Punk radio"]
    assert len(picks) == 5
    assert len({t["id"] for t in picks}) == 5
    assert auto.is_fetching is False


def test_replenish_is_noop_when_queue_is_long_enough():
    calls = []
    queue = [_track(f"q{i}") for i in range(6)]
    auto = AutoQueue(TasteRecommendationEngine(), lambda q: calls.append(q) or [])
    assert auto.replenish(queue[0], queue) == []
    assert calls == []


def test_replenish_without_current_track_does_nothing():
    auto = AutoQueue(TasteRecommendationEngine(), lambda q: [_track("c1")])
    assert auto.replenish(None, []) == []


def test_replenish_falls_back_to_first_candidates():
    pool = [_track(f"c{i}", title=f"Song {i}") for i in range(6)]
    auto = AutoQueue(_SilentEngine(), lambda q: pool, count=5, fallback_count=3)
    current = _track("now", title="Something Else")
    picks = auto.replenish(current, [])
    assert [t["id"] for t in picks] == ["c0", "c1", "c2"]


def test_search_failure_is_logged_and_yields_nothing(caplog):
    def broken(query):
        raise RuntimeError("backend down")

    auto = AutoQueue(TasteRecommendationEngine(), broken)
    assert auto.replenish(_track("now"), []) == []
    assert auto.is_fetching is False
    assert "Auto-queue replenish failed" in caplog.text
