"""Tests for listening-event recording and TasteProfile invariants."""

from __future__ import annotations

import pytest

from hydequeue.recommendation.recommendation_engine import TasteRecommendationEngine
from hydequeue.recommendation.taste_profile import ListeningEvent, TasteProfile


def _event(track_id, artist, action, genre=None, listen=None, total=None):
    return ListeningEvent(
        track_id=track_id,
        artist=artist,
        action=action,
        genre=genre,
        listen_duration=listen,
        track_duration=total,
    )


# ---------------------------------------------------------------------------
# Completion ratio
# ---------------------------------------------------------------------------


def test_completion_ratio_uses_both_durations():
    assert _event("t", "A", "play", listen=30, total=120).completion_ratio() == 0.25


def test_completion_ratio_defaults_to_full_credit():
    assert _event("t", "A", "play").completion_ratio() == 1.0
    assert _event("t", "A", "play", listen=30).completion_ratio() == 1.0
    assert _event("t", "A", "play", listen=30, total=0).completion_ratio() == 1.0


def test_non_numeric_durations_are_treated_as_missing():
    event = _event("t", "A", "play", listen="abc", total=100)
    assert event.listen_duration is None
    assert event.completion_ratio() == 1.0


# ---------------------------------------------------------------------------
# Artist and genre affinity
# ---------------------------------------------------------------------------


def test_like_on_new_artist_scores_five_and_becomes_favorite():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "Artist X", "like"))
    assert engine.profile.artist_affinity["Artist X"] == 5
    assert engine.profile.favorite_artists == ["Artist X"]


@pytest.mark.parametrize(
    "action,expected",
    [("full_listen", 3.0), ("like", 5.0), ("replay", 4.0), ("play", 1.5)],
)
def test_positive_actions_credit_artist(action, expected):
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", action))
    assert engine.profile.artist_affinity["A"] == pytest.approx(expected)


def test_play_credit_scales_with_completion():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "play", listen=30, total=120))
    assert engine.profile.artist_affinity["A"] == pytest.approx(0.375)


def test_early_skip_costs_two_and_late_skip_half():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "like"))
    engine.record_event(_event("t2", "A", "skip", listen=10, total=100))
    assert engine.profile.artist_affinity["A"] == pytest.approx(3.0)
    engine.record_event(_event("t3", "A", "skip", listen=50, total=100))
    assert engine.profile.artist_affinity["A"] == pytest.approx(2.5)


def test_skip_never_drives_affinity_below_zero():
    engine = TasteRecommendationEngine()
    for i in range(5):
        engine.record_event(_event(f"t{i}", "A", "skip", genre="rock"))
    assert engine.profile.artist_affinity["A"] == 0
    assert engine.profile.genre_affinity["rock"] == 0


def test_skip_adds_track_to_recently_skipped():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "skip"))
    assert "t1" in engine.profile.recently_skipped


def test_genre_affinity_follows_completion_and_skips():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "full_listen", genre="jazz"))
    assert engine.profile.genre_affinity["jazz"] == pytest.approx(2.0)
    engine.record_event(_event("t2", "A", "play", genre="jazz", listen=50, total=100))
    assert engine.profile.genre_affinity["jazz"] == pytest.approx(3.0)
    engine.record_event(_event("t3", "A", "skip", genre="jazz"))
    assert engine.profile.genre_affinity["jazz"] == pytest.approx(2.0)


def test_missing_genre_leaves_genre_map_untouched():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "like"))
    assert engine.profile.genre_affinity == {}


def test_unknown_action_keeps_artist_score_but_tracks_recency():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "bogus", genre="pop"))
    assert "A" not in engine.profile.artist_affinity
    assert engine.profile.genre_affinity["pop"] == pytest.approx(2.0)
    assert "t1" in engine.profile.recently_played


def test_dict_events_are_accepted():
    engine = TasteRecommendationEngine()
    engine.record_event({"track_id": "t1", "artist": "A", "action": "replay"})
    assert engine.profile.artist_affinity["A"] == pytest.approx(4.0)


# ---------------------------------------------------------------------------
# Bounded history and recency sets
# ---------------------------------------------------------------------------


def test_history_keeps_fifty_most_recent_events():
    engine = TasteRecommendationEngine()
    for i in range(60):
        engine.record_event(_event(f"t{i}", "A", "play"))
    history = engine.history
    assert len(history) == 50
    assert [e.track_id for e in history] == [f"t{i}" for i in range(10, 60)]


def test_recently_played_keeps_twenty_most_recent():
    engine = TasteRecommendationEngine()
    for i in range(25):
        engine.record_event(_event(f"t{i}", "A", "play"))
    assert list(engine.profile.recently_played) == [f"t{i}" for i in range(5, 25)]


def test_replaying_a_track_keeps_its_original_position():
    engine = TasteRecommendationEngine()
    for track_id in ("t1", "t2", "t1"):
        engine.record_event(_event(track_id, "A", "play"))
    assert list(engine.profile.recently_played) == ["t1", "t2"]


def test_recently_skipped_is_capped_by_window():
    engine = TasteRecommendationEngine(recently_skipped_window=3)
    for i in range(5):
        engine.record_event(_event(f"s{i}", "A", "skip"))
    assert list(engine.profile.recently_skipped) == ["s2", "s3", "s4"]


def test_reskipped_track_survives_eviction():
    engine = TasteRecommendationEngine(recently_skipped_window=3)
    for track_id in ("s0", "s1", "s2", "s0", "s3"):
        engine.record_event(_event(track_id, "A", "skip"))
    assert list(engine.profile.recently_skipped) == ["s2", "s0", "s3"]


# ---------------------------------------------------------------------------
# Unusable input
# ---------------------------------------------------------------------------


def test_non_numeric_timestamp_falls_back_to_now():
    engine = TasteRecommendationEngine()
    engine.record_event({"track_id": "t1", "artist": "A", "action": "like", "timestamp": "yesterday"})
    assert engine.profile.artist_affinity["A"] == pytest.approx(5.0)
    assert isinstance(engine.history[0].timestamp, float)


@pytest.mark.parametrize("bad", ["not-an-event", 42, None, ["t1", "A", "like"]])
def test_unusable_event_is_ignored(bad):
    engine = TasteRecommendationEngine()
    assert engine.record_event(bad) is False
    assert engine.history == []

    engine.record_event(_event("t1", "A", "skip"))
    assert len(engine.history) == 1
    assert engine.strategy() == "balanced"


def test_event_without_artist_earns_no_artist_credit():
    engine = TasteRecommendationEngine()
    engine.record_event({"track_id": "t1", "action": "like", "genre": "pop"})
    assert engine.profile.artist_affinity == {}
    assert engine.profile.favorite_artists == []
    assert engine.profile.genre_affinity["pop"] == pytest.approx(2.0)
    assert "t1" in engine.profile.recently_played


def test_skip_without_artist_is_still_remembered():
    engine = TasteRecommendationEngine()
    engine.record_event({"track_id": "t1", "action": "skip"})
    assert "t1" in engine.profile.recently_skipped
    assert "" not in engine.profile.artist_affinity


# ---------------------------------------------------------------------------
# Favourites
# ---------------------------------------------------------------------------


def test_favorites_are_top_ten_by_affinity():
    engine = TasteRecommendationEngine()
    for i in range(12):
        for _ in range(i + 1):
            engine.record_event(_event(f"t{i}", f"Artist {i}", "full_listen"))
    expected = [f"Artist {i}" for i in range(11, 1, -1)]
    assert engine.profile.favorite_artists == expected


def test_favorite_ties_keep_insertion_order():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "B", "like"))
    engine.record_event(_event("t2", "A", "like"))
    assert engine.profile.favorite_artists == ["B", "A"]


def test_favorites_track_score_changes_immediately():
    engine = TasteRecommendationEngine()
    engine.record_event(_event("t1", "A", "like"))
    engine.record_event(_event("t2", "B", "full_listen"))
    assert engine.profile.favorite_artists == ["A", "B"]
    engine.record_event(_event("t3", "B", "replay"))
    assert engine.profile.favorite_artists == ["B", "A"]


# ---------------------------------------------------------------------------
# Discovery openness
# ---------------------------------------------------------------------------


def test_openness_rises_with_few_skips_and_caps_at_half():
    engine = TasteRecommendationEngine()
    seen = []
    for i in range(6):
        engine.record_event(_event(f"t{i}", "A", "play"))
        seen.append(engine.profile.discovery_openness)
    assert seen == [0.35, 0.4, 0.45, 0.5, 0.5, 0.5]


def test_six_recent_skips_lower_openness_by_one_step():
    engine = TasteRecommendationEngine()
    for i in range(5):
        engine.record_event(_event(f"t{i}", "A", "skip"))
    before = engine.profile.discovery_openness
    assert before == 0.35
    engine.record_event(_event("t5", "A", "skip"))
    assert engine.profile.discovery_openness == pytest.approx(before - 0.05)


def test_openness_stays_within_bounds():
    engine = TasteRecommendationEngine()
    for i in range(30):
        engine.record_event(_event(f"t{i}", "A", "skip"))
        assert 0.1 <= engine.profile.discovery_openness <= 0.5
    assert engine.profile.discovery_openness == 0.1


def test_profile_defaults():
    profile = TasteProfile()
    assert profile.discovery_openness == 0.3
    assert profile.favorite_artists == []
    assert profile.max_artist_score() == 1.0
    assert profile.max_genre_score() == 1.0
