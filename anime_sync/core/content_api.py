"""Client for the user-configured streaming catalog API."""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit, urlencode

from .errors import (
    DecodingError, InvalidEndpoint, InvalidEpisodeId, NotConfigured, QueryTooShort, ServerError,
)
from .http_client import http_get
from .normalizers import norm_catalog_item, norm_detail, norm_episode
from ..models.types import CatalogItem, Detail, Episode, Sources

log = logging.getLogger(__name__)

API_VERSION = "v2"
API_TIMEOUT = 30
MIN_QUERY_LENGTH = 3
HOME_SECTIONS = (
    "spotlightAnimes", "trendingAnimes", "latestEpisodeAnimes", "topUpcomingAnimes",
    "topAiringAnimes", "mostPopularAnimes", "mostFavoriteAnimes", "latestCompletedAnimes",
)


def clean_base_url(url: str) -> str:
    u = url.strip().replace("@", "")
    if "://" not in u:
        u = "https://" + u
    return u.rstrip("/")


def validate_base_url(url: Optional[str]) -> bool:
    if not url or not url.strip():
        return False
    parts = urlsplit(clean_base_url(url))
    return parts.scheme.lower() in ("http", "https") and bool(parts.netloc)


def build_endpoint(base_url: Optional[str], path: str,
                   query: Optional[Dict[str, str]] = None) -> str:
    if not base_url:
        raise NotConfigured()
    if not validate_base_url(base_url):
        raise InvalidEndpoint(f"Invalid API endpoint: {base_url}")
    path = path if path.startswith("/") else "/" + path
    url = f"{clean_base_url(base_url)}/api/{API_VERSION}/hianime{path}"
    if query:
        url += "?" + urlencode(query)
    return url


class ContentAPI:
    def __init__(self, base_url: Optional[str], timeout: int = API_TIMEOUT):
        self.base_url = base_url
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.base_url)

    def _fetch(self, path: str, query: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        url = build_endpoint(self.base_url, path, query)
        log.debug("GET %s", url)
        r = http_get(url, headers={"Accept": "application/json"}, timeout=self.timeout)

        if not 200 <= r.status_code < 300:
            message = None
            try:
                body = r.json()
                if isinstance(body, dict):
                    message = body.get("message")
            except ValueError:
                pass
            raise ServerError(r.status_code, message)

        try:
            payload = r.json()
        except ValueError as e:
            raise DecodingError(f"Failed to decode response: {e}") from e
        if not isinstance(payload, dict) or not isinstance(payload.get("data"), dict):
            raise DecodingError("Response is missing 'data'")
        return payload["data"]

    def search(self, query: str) -> List[CatalogItem]:
        if len(query.strip()) < MIN_QUERY_LENGTH:
            raise QueryTooShort()
        data = self._fetch("search", {"q": query.strip()})
        try:
            return [norm_catalog_item(a) for a in data.get("animes") or []]
        except (AttributeError, TypeError) as e:
            raise DecodingError(str(e)) from e

    def details(self, show_id: str) -> Detail:
        data = self._fetch(f"anime/{show_id}")
        try:
            return norm_detail(data["anime"])
        except (KeyError, TypeError) as e:
            raise DecodingError(f"Malformed details payload: {e}") from e

    def episodes(self, show_id: str) -> List[Episode]:
        data = self._fetch(f"anime/{show_id}/episodes")
        try:
            return [norm_episode(e) for e in data.get("episodes") or []]
        except (KeyError, TypeError, ValueError) as e:
            raise DecodingError(f"Malformed episodes payload: {e}") from e

    def streaming_sources(self, episode_id: str, category: str = "sub", server: str = "hd-1") -> Sources:
        if "?ep=" not in episode_id:
            raise InvalidEpisodeId()
        return self._fetch("episode/sources", {
            "animeEpisodeId": episode_id,
            "server": server,
            "category": category,
        })

    def home(self) -> Dict[str, List[CatalogItem]]:
        data = self._fetch("home")
        out: Dict[str, List[CatalogItem]] = {}
        for section in HOME_SECTIONS:
            out[section] = [norm_catalog_item(a) for a in data.get(section) or []]
        return out
