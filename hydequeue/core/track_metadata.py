import re
from typing import Optional


# Handle is youtube id.
def is_youtube_id(value):
    """
    Return whether the value looks like an 11 character YouTube video id.
    """
    return bool(re.fullmatch(r"[A-Za-z0-9_-]{11}", str(value or "")))


# Handle thumb from video id.
def thumb_from_video_id(video_id):
    """
    Build the default thumbnail URL for a video id.

    Returns an empty string for values that are not video ids so callers
    can chain it as a fallback.
    """
    if is_youtube_id(video_id):
        return f"https://img.youtube.com/vi/{video_id}/hqdefault.jpg"
    return ""


# Parse an optional non-negative number.
def safe_optional_float(value) -> Optional[float]:
    """
    Coerce a duration/count style value to float.

    None, empty strings and non-numeric values all come back as None.
    """
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    if parsed != parsed:
        return None
    return parsed


# Join an artist field that may be a list.
def _artist_text(value):
    if isinstance(value, (list, tuple)):
        names = [str(v).strip() for v in value if str(v or "").strip()]
        return ", ".join(names)
    return str(value or "").strip()


# Normalize a backend search row into a track dict.
def normalize_track(raw):
    """
    Convert a search backend row into the track dict used by the engine.

    Backend rows carry ``name``, ``artists`` (list or string), ``duration`` in
    milliseconds and an optional ``image``. Rows that are already normalized
    (they have ``title``/``artist``) keep their id and get missing keys filled.
    """
    if not isinstance(raw, dict):
        raise ValueError("track row must be a mapping")
    raw_id = str(raw.get("youtube_id") or raw.get("id") or "").strip()
    if not raw_id:
        raise ValueError("track id required")
    if raw_id.startswith("yt_"):
        video_id = raw_id[3:]
    elif raw_id.startswith("youtube_"):
        video_id = raw_id[len("youtube_"):]
    else:
        video_id = raw_id

    track_id = f"yt_{video_id}"
    if "title" in raw or "artist" in raw:
        track_id = str(raw.get("id") or "").strip() or track_id
        title = str(raw.get("title") or "").strip() or "Unknown Track"
        artist = _artist_text(raw.get("artist")) or "Unknown Artist"
        duration = int(safe_optional_float(raw.get("duration")) or 0)
    else:
        title = str(raw.get("name") or "").strip() or "Unknown Track"
        artist = _artist_text(raw.get("artists")) or "Unknown Artist"
        duration = int((safe_optional_float(raw.get("duration")) or 0) // 1000)

    views = safe_optional_float(raw.get("views"))
    if views is None:
        views = safe_optional_float(raw.get("view_count"))
    genre = str(raw.get("genre") or "").strip() or None
    cover_url = (
        str(raw.get("cover_url") or raw.get("image") or raw.get("thumbnail") or "").strip()
        or thumb_from_video_id(video_id)
    )
    return {
        "id": track_id,
        "youtube_id": video_id,
        "title": title,
        "artist": artist,
        "album": str(raw.get("album") or "").strip() or "Single",
        "duration": duration,
        "cover_url": cover_url,
        "genre": genre,
        "views": int(views) if views is not None else 0,
    }


def _clean_title(value):
    return re.sub(r"[^a-z0-9]", "", str(value or "").lower())


# Check whether two titles are near-duplicates.
def is_title_too_similar(current_title, new_title):
    # Covers "Song" vs "Song (Official Video)" style duplicates.
    clean_current = _clean_title(current_title)
    clean_new = _clean_title(new_title)
    return clean_current in clean_new or clean_new in clean_current
