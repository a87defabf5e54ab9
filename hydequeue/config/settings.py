import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = Path(__file__).resolve().parent.parent.parent
DATA_DIR = Path(os.getenv("HYDEQUEUE_DATA_DIR", str(BASE_DIR / "data")))

TASTE_DB_PATH = Path(os.getenv("TASTE_DB_PATH", str(DATA_DIR / "taste_profiles.db")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Listening history and recency windows.
HISTORY_WINDOW = int(os.getenv("HISTORY_WINDOW", 50))
RECENTLY_PLAYED_WINDOW = int(os.getenv("RECENTLY_PLAYED_WINDOW", 20))
RECENTLY_SKIPPED_WINDOW = int(os.getenv("RECENTLY_SKIPPED_WINDOW", 200))
SKIP_RATE_WINDOW = 10
FAVORITE_ARTIST_COUNT = 10
EXPORT_HISTORY_LIMIT = 20

DISCOVERY_OPENNESS_DEFAULT = 0.3
DISCOVERY_OPENNESS_MIN = 0.1
DISCOVERY_OPENNESS_MAX = 0.5
DISCOVERY_OPENNESS_STEP = 0.05

SCORE_WEIGHTS = {
    "artist_similarity": 0.30,
    "genre_similarity": 0.20,
    "mood_compatibility": 0.25,
    "novelty_bonus": 0.10,
    "repetition_penalty": 0.10,
    "popularity_signal": 0.05,
}

AUTO_QUEUE_COUNT = int(os.getenv("AUTO_QUEUE_COUNT", 5))
AUTO_QUEUE_FALLBACK_COUNT = int(os.getenv("AUTO_QUEUE_FALLBACK_COUNT", 3))

SEARCH_API_URL = str(os.getenv("SEARCH_API_URL", "http://127.0.0.1:8000/api") or "").strip().rstrip("/")
SEARCH_API_KEY = str(os.getenv("SEARCH_API_KEY", "") or "").strip()
SEARCH_TIMEOUT_SEC = max(1.0, float(os.getenv("SEARCH_TIMEOUT_SEC", "8.0") or 8.0))

API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = int(os.getenv("API_PORT", 5000))
