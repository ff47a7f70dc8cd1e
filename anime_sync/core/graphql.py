"""AniList GraphQL client with a short-lived cache for anonymous queries."""

import json
import time
import hashlib
import logging
import threading
from typing import Callable, Dict, Any, Optional, Tuple

from .errors import GraphQLQueryError, InvalidResponse, NotAuthenticated
from .http_client import http_post

log = logging.getLogger(__name__)

# Constants
CACHE_TTL = 300  # 5 min
ANILIST_GQL = "https://graphql.anilist.co"
GQL_TIMEOUT = 30


def _cache_key_gql(query: str, variables: dict) -> str:
    """Generate a cache key for GraphQL queries."""
    hq = hashlib.sha1(query.encode("utf-8")).hexdigest()
    hv = hashlib.sha1(json.dumps(variables, sort_keys=True, ensure_ascii=False).encode("utf-8")).hexdigest()
    return f"GQL|{hq}|{hv}"


class GraphQLClient:
    """Executes queries against AniList.

    Authenticated queries send `Authorization: Bearer <token>` using
    `token_provider` and are never cached. Anonymous queries are cached for
    `ttl` seconds.
    """

    def __init__(self, endpoint: str = ANILIST_GQL,
                 token_provider: Optional[Callable[[], Optional[str]]] = None,
                 ttl: int = CACHE_TTL, timeout: int = GQL_TIMEOUT):
        self.endpoint = endpoint
        self.token_provider = token_provider
        self.ttl = ttl
        self.timeout = timeout
        self._cache: Dict[str, Tuple[float, dict]] = {}
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def _cache_get(self, k: str) -> Optional[dict]:
        """Get item from cache if not expired."""
        now = time.time()
        with self._lock:
            it = self._cache.get(k)
            if not it:
                self._misses += 1
                return None
            exp, data = it
            if exp < now:
                self._cache.pop(k, None)
                self._misses += 1
                return None
            self._hits += 1
            return data

    def _cache_set(self, k: str, data: dict) -> None:
        with self._lock:
            self._cache[k] = (time.time() + self.ttl, data)

    def execute(self, query: str, variables: Optional[Dict[str, Any]] = None,
                auth_required: bool = False, use_cache: bool = True) -> Dict[str, Any]:
        """Run a query and return its `data` object."""
        variables = variables or {}
        headers = {"Content-Type": "application/json", "Accept": "application/json"}

        k = None
        if auth_required:
            token = self.token_provider() if self.token_provider else None
            if not token:
                raise NotAuthenticated()
            headers["Authorization"] = f"Bearer {token}"
        elif use_cache:
            k = _cache_key_gql(query, variables)
            cached = self._cache_get(k)
            if cached is not None:
                return cached

        r = http_post(self.endpoint, json={"query": query, "variables": variables},
                      headers=headers, timeout=self.timeout)
        log.debug("AniList HTTP %s", r.status_code)

        try:
            payload = r.json()
        except ValueError as e:
            if r.status_code != 200:
                raise InvalidResponse(f"AniList returned HTTP {r.status_code}", r.status_code) from e
            raise InvalidResponse("AniList returned malformed JSON") from e

        if not isinstance(payload, dict):
            raise InvalidResponse("AniList returned a non-object payload")

        errors = payload.get("errors")
        if errors:
            messages = [e.get("message", "") for e in errors if isinstance(e, dict)]
            log.warning("AniList GraphQL errors: %s", "; ".join(messages))
            raise GraphQLQueryError(messages, r.status_code)

        if r.status_code != 200:
            raise InvalidResponse(f"AniList returned HTTP {r.status_code}", r.status_code)

        out = payload.get("data")
        if not isinstance(out, dict):
            raise InvalidResponse("No data in AniList response")

        if k is not None:
            self._cache_set(k, out)
        return out

    def cache_info(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._lock:
            return {
                "hits": self._hits,
                "misses": self._misses,
                "size": len(self._cache),
                "ttlSec": self.ttl,
            }

    def cache_clear(self) -> int:
        """Clear cache and return number of cleared items."""
        with self._lock:
            n = len(self._cache)
            self._cache.clear()
            return n
