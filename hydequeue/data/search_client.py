import logging
from typing import Dict, List, Optional

import requests

from hydequeue.config import settings
from hydequeue.core.track_metadata import normalize_track

logger = logging.getLogger(__name__)


class SearchClient:
    """Candidate source backed by the music search API."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_sec: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.SEARCH_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.SEARCH_API_KEY
        self.timeout_sec = timeout_sec or settings.SEARCH_TIMEOUT_SEC
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-HYDE-API-KEY"] = self.api_key
        return headers

    def search(self, query: str) -> List[Dict]:
        """
        Search for tracks matching a free-text query.

        Tries ``POST /search_music`` first and falls back to
        ``GET /search?q=`` when that is rejected. Network errors produce
        an empty list.
        """
        query = str(query or "").strip()
        if not query:
            return []
        try:
            response = self.session.post(
                f"{self.base_url}/search_music",
                json={"query": query},
                headers=self._headers(),
                timeout=self.timeout_sec,
            )
            if response.status_code == 401:
                logger.error("Search API authorization failed")
            if response.ok:
                rows = (response.json() or {}).get("tracks") or []
            else:
                fallback = self.session.get(
                    f"{self.base_url}/search",
                    params={"q": query},
                    headers=self._headers(),
                    timeout=self.timeout_sec,
                )
                if not fallback.ok:
                    return []
                data = fallback.json()
                rows = data if isinstance(data, list) else []
        except (requests.RequestException, ValueError) as e:
            logger.error("Search failed for %r: %s", query, e)
            return []
        return self._normalize_rows(rows)

    @staticmethod
    def _normalize_rows(rows) -> List[Dict]:
        tracks = []
        for row in rows:
            try:
                tracks.append(normalize_track(row))
            except ValueError as e:
                logger.debug("Skipping malformed search row: %s", e)
        return tracks
