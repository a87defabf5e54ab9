TOP_ARTIST_LIMIT = 10
TOP_GENRE_LIMIT = 5

_DISCOVERY_BANDS = (
    (25, "Conservative", "You prefer familiar favorites. We'll keep recommendations close to what you know."),
    (40, "Balanced", "You enjoy a healthy mix of old and new. Perfect balance!"),
    (60, "Adventurous", "You're open to exploring new artists and genres. We'll introduce fresh sounds!"),
)
_EXPLORER = ("Explorer", "You're a music explorer! We'll push boundaries with diverse recommendations.")


def _top_entries(scores, limit):
    ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "score": round(score, 2)} for name, score in ranked[:limit]]


def discovery_label(level):
    for upper, label, description in _DISCOVERY_BANDS:
        if level < upper:
            return label, description
    return _EXPLORER


def build_profile_insights(engine):
    """
    Summarize an engine's taste profile for display.

    Top artists and genres are ordered by score; the discovery level is
    openness as a percentage with a descriptive band.
    """
    profile = engine.get_profile()
    level = profile.discovery_openness * 100
    label, description = discovery_label(level)
    return {
        "top_artists": _top_entries(profile.artist_affinity, TOP_ARTIST_LIMIT),
        "top_genres": _top_entries(profile.genre_affinity, TOP_GENRE_LIMIT),
        "favorite_artists": list(profile.favorite_artists),
        "discovery_level": round(level, 1),
        "discovery_label": label,
        "discovery_description": description,
        "strategy": engine.strategy(),
        "history_size": len(engine.history),
        "last_updated": profile.last_updated,
    }
