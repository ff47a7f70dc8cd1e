"""Low-frequency coordination between the stores and the offline cache."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import requests

from ..core.cancellation import CancellationToken, RequestSlots
from ..core.content_api import ContentAPI
from ..core.errors import NetworkError
from ..core.http_client import http_get
from ..models.records import WatchProgressRecord
from ..models.types import CatalogItem, OfflineCacheEntry
from .bookmarks import BookmarkStore
from .content_cache import ContentCache, build_entry
from .remote_sync import RemoteLibrarySync
from .watch_progress import WatchProgressTracker

log = logging.getLogger(__name__)

PROBE_URL = "https://www.apple.com"
PROBE_TIMEOUT = 3


class SyncOrchestrator:
    def __init__(self, bookmarks: BookmarkStore, progress: WatchProgressTracker,
                 cache: ContentCache, api: Optional[ContentAPI] = None,
                 remote: Optional[RemoteLibrarySync] = None,
                 probe_url: str = PROBE_URL, get: Callable[..., Any] = http_get,
                 slots: Optional[RequestSlots] = None):
        self.bookmarks = bookmarks
        self.progress = progress
        self.cache = cache
        self.api = api
        self.remote = remote
        self.probe_url = probe_url
        self._get = get
        self.slots = slots or RequestSlots()
        self._executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="show-thumbs")

    def offline_snapshot(self) -> Dict[str, int]:
        """Mirror bookmarks and watch history into the cache's offline area."""
        bookmarks = self.bookmarks.list()
        history = self.progress.history()
        self.cache.mirror_bookmarks(bookmarks)
        self.cache.mirror_watch_progress(history)
        log.debug("Mirrored %d bookmarks and %d progress records", len(bookmarks), len(history))
        return {"bookmarks": len(bookmarks), "progress": len(history)}

    def is_offline(self) -> bool:
        """Reachability heuristic: any non-2xx or transport failure counts as offline."""
        try:
            r = self._get(self.probe_url, timeout=PROBE_TIMEOUT)
        except (NetworkError, requests.RequestException) as e:
            log.debug("Reachability probe failed: %s", e)
            return True
        return not 200 <= r.status_code < 300

    def offline_bootstrap(self) -> Dict[str, List[Any]]:
        bookmarks: List[CatalogItem] = self.cache.read_offline_bookmarks()
        progress: List[WatchProgressRecord] = self.cache.read_offline_progress()
        return {"bookmarks": bookmarks, "progress": progress}

    def checkpoint(self) -> Dict[str, Any]:
        """Foreground/periodic maintenance pass."""
        cleaned = self.progress.cleanup_finished_episodes()
        mirrored = self.offline_snapshot()
        evicted = self.cache.sweep_expired()
        stats = self.cache.stats()
        if stats["overLimit"]:
            log.warning("Offline cache is %d bytes, above the %d byte ceiling",
                        stats["totalBytes"], stats["maxBytes"])
        return {"cleaned": cleaned, "mirrored": mirrored, "evicted": evicted, "stats": stats}

    def load_show(self, show_id: str, view: str = "detail") -> Optional[OfflineCacheEntry]:
        """Fetch details + episodes, cache them, fall back to the cache when offline.

        Returns as soon as details and episodes are known; episode thumbnails
        are resolved in the background and written into the cached entry.
        A newer load for the same (view, show) cancels this one: a cancelled
        load raises Cancelled and writes nothing, and a superseded thumbnail
        job is dropped.
        """
        token = self.slots.begin(view, show_id)
        handed_off = False
        try:
            if self.api is None:
                return self.cache.get(show_id)
            try:
                detail = self.api.details(show_id)
                episodes = self.api.episodes(show_id)
            except NetworkError as e:
                log.info("Loading %s from offline cache: %s", show_id, e)
                token.raise_if_cancelled()
                return self.cache.get(show_id)

            token.raise_if_cancelled()
            self.cache.put(show_id, detail, episodes, {}, cancel=token)
            entry = self.cache.get(show_id)
            if entry is None:
                log.debug("Serving %s uncached", show_id)
                entry = build_entry(show_id, detail, episodes, {}, time.time())
            if self.remote is not None:
                self._executor.submit(self._resolve_thumbnails, show_id, view, detail, episodes, token)
                handed_off = True
            return entry
        finally:
            if not handed_off:
                self.slots.finish(view, show_id, token)

    def _resolve_thumbnails(self, show_id: str, view: str, detail: Dict[str, Any],
                            episodes: List[Dict[str, Any]], token: CancellationToken) -> None:
        try:
            thumbnails = self.episode_thumbnails(detail, episodes)
            if thumbnails and not token.cancelled:
                self.cache.put(show_id, detail, episodes, thumbnails, cancel=token)
        finally:
            self.slots.finish(view, show_id, token)

    def close(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)

    def episode_thumbnails(self, detail: Dict[str, Any], episodes: List[Dict[str, Any]]) -> Dict[int, str]:
        """Episode number -> AniList streaming thumbnail, best effort."""
        if self.remote is None:
            return {}
        try:
            remote_id = detail.get("anilistId") or self.remote.match_local_title(detail.get("title") or "")
            if not remote_id:
                return {}
            thumbs = self.remote.fetch_episode_thumbnails(int(remote_id))
        except Exception as e:
            log.warning("Episode thumbnails unavailable for %s: %s", detail.get("id"), e)
            return {}
        out: Dict[int, str] = {}
        for ep in episodes:
            n = ep["number"]
            if 1 <= n <= len(thumbs):
                out[n] = thumbs[n - 1].thumbnail
        return out
