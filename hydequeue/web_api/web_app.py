import logging
import threading
import time

from flask import Flask, jsonify, request

from hydequeue.core.track_metadata import normalize_track
from hydequeue.recommendation.candidate_scorer import SessionContext
from hydequeue.recommendation.profile_insights import build_profile_insights
from hydequeue.recommendation.recommendation_engine import TasteRecommendationEngine
from hydequeue.recommendation.taste_profile import LISTENING_ACTIONS, ListeningEvent
from hydequeue.user_profiles.taste_profile_store import TasteProfileStore

logger = logging.getLogger(__name__)

app = Flask(__name__)

_engines = {}
_engines_lock = threading.Lock()
_taste_store = None
_taste_store_lock = threading.Lock()


def get_taste_store():
    """
    Return the shared profile store, creating it on first use.
    """
    global _taste_store
    if _taste_store is None:
        with _taste_store_lock:
            if _taste_store is None:
                _taste_store = TasteProfileStore()
    return _taste_store


def set_taste_store(store):
    global _taste_store
    with _taste_store_lock:
        _taste_store = store
    with _engines_lock:
        _engines.clear()


def _require_user_id(value):
    uid = str(value or "").strip()
    if not uid:
        raise ValueError("user_id required")
    return uid


# Get or hydrate the engine for a user. Caller holds _engines_lock.
def _engine_for_locked(user_id):
    engine = _engines.get(user_id)
    if engine is not None:
        return engine
    engine = TasteRecommendationEngine()
    stored = get_taste_store().load_profile(user_id)
    if stored:
        engine.import_profile(stored)
    _engines[user_id] = engine
    return engine


def _persist_locked(user_id, engine):
    get_taste_store().save_profile(user_id, engine.export_profile())


def _parse_event(data):
    track_id = str(data.get("track_id") or "").strip()
    artist = str(data.get("artist") or "").strip()
    action = str(data.get("action") or "").strip().lower()
    if not track_id or not artist:
        raise ValueError("track_id and artist required")
    if action not in LISTENING_ACTIONS:
        raise ValueError(f"action must be one of {', '.join(LISTENING_ACTIONS)}")
    return ListeningEvent(
        track_id=track_id,
        artist=artist,
        action=action,
        genre=data.get("genre"),
        timestamp=time.time(),
        listen_duration=data.get("listen_duration"),
        track_duration=data.get("track_duration"),
    )


def _parse_tracks(rows, label):
    if rows is None:
        return []
    if not isinstance(rows, list):
        raise ValueError(f"{label} must be a list")
    return [normalize_track(row) for row in rows]


# Check this operation.
@app.route("/health", methods=["GET"])
def health():
    with _engines_lock:
        active = len(_engines)
    return jsonify({"status": "healthy", "active_profiles": active})


# Handle record event.
@app.route("/api/taste/event", methods=["POST"])
def record_event():
    data = request.get_json(silent=True) or {}
    try:
        user_id = _require_user_id(data.get("user_id"))
        event = _parse_event(data)
    except ValueError as exc:
        return (jsonify({"error": str(exc)}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        engine.record_event(event)
        _persist_locked(user_id, engine)
        openness = engine.profile.discovery_openness
    return jsonify({"status": "recorded", "discovery_openness": openness})


# Handle recommend.
@app.route("/api/taste/recommend", methods=["POST"])
def recommend():
    data = request.get_json(silent=True) or {}
    try:
        user_id = _require_user_id(data.get("user_id"))
        candidates = _parse_tracks(data.get("candidates"), "candidates")
        raw_context = data.get("context") or {}
        if not isinstance(raw_context, dict):
            raise ValueError("context must be an object")
        current = raw_context.get("current_track")
        context = SessionContext(
            current_track=normalize_track(current) if current else None,
            queue=_parse_tracks(raw_context.get("queue"), "queue"),
            time_of_day=raw_context.get("time_of_day"),
            skip_count=int(raw_context.get("skip_count") or 0),
            repeat_count=int(raw_context.get("repeat_count") or 0),
            is_shuffled=bool(raw_context.get("is_shuffled")),
        )
        count = int(data.get("count", 3))
    except (TypeError, ValueError) as exc:
        return (jsonify({"error": str(exc)}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        scored = engine.recommend_scored(candidates, context, count)
        strategy = engine.strategy()
    return jsonify(
        {
            "strategy": strategy,
            "tracks": [
                {**item["track"], "score": round(item["score"], 4), "reasons": item["reasons"]}
                for item in scored
            ],
        }
    )


# Handle strategy.
@app.route("/api/taste/strategy", methods=["GET"])
def strategy():
    try:
        user_id = _require_user_id(request.args.get("user_id"))
    except ValueError as exc:
        return (jsonify({"error": str(exc)}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        value = engine.strategy()
    return jsonify({"strategy": value})


# Handle profile.
@app.route("/api/taste/profile", methods=["GET"])
def profile():
    try:
        user_id = _require_user_id(request.args.get("user_id"))
    except ValueError as exc:
        return (jsonify({"error": str(exc)}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        insights = build_profile_insights(engine)
        exported = engine.export_profile()
    return jsonify({"insights": insights, "export": exported})


# Handle profile import.
@app.route("/api/taste/profile/import", methods=["POST"])
def import_profile():
    data = request.get_json(silent=True) or {}
    try:
        user_id = _require_user_id(data.get("user_id"))
    except ValueError as exc:
        return (jsonify({"error": str(exc)}), 400)
    blob = data.get("profile")
    if not blob:
        return (jsonify({"error": "profile required"}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        if not engine.import_profile(blob):
            return (jsonify({"error": "profile could not be imported"}), 400)
        _persist_locked(user_id, engine)
    return jsonify({"status": "imported"})


# Handle reset.
@app.route("/api/taste/reset", methods=["POST"])
def reset_profile():
    data = request.get_json(silent=True) or {}
    try:
        user_id = _require_user_id(data.get("user_id"))
    except ValueError as exc:
        return (jsonify({"error": str(exc)}), 400)
    with _engines_lock:
        engine = _engine_for_locked(user_id)
        engine.reset()
        get_taste_store().delete_profile(user_id)
    logger.info("Taste profile reset for %s", user_id)
    return jsonify({"status": "reset"})
