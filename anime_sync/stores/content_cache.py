"""Disk-backed offline cache for show details, thumbnails and state mirrors.

Entries expire lazily: a read older than MAX_CACHE_AGE deletes the entry and
reports a miss. `sweep_expired` is the only bulk eviction and is meant to run
at low frequency. Every local storage failure is logged and turned into a
miss; caching never raises into the caller.
"""

import base64
import logging
import shutil
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import quote

from ..core.cancellation import CancellationToken
from ..core.http_client import fetch_bytes
from ..core.kv_store import FileKeyValueStore
from ..core.retry import RetryPolicy
from ..models.records import WatchProgressRecord
from ..models.types import CacheStats, CatalogItem, Detail, Episode, OfflineCacheEntry

log = logging.getLogger(__name__)

MAX_CACHE_AGE = 7 * 24 * 60 * 60
MAX_CACHE_BYTES = 500 * 1024 * 1024
THUMBNAIL_WORKERS = 4

DETAIL_PREFIX = "anime/"
THUMB_PREFIX = "thumbnails/"
BOOKMARKS_MIRROR = "offline/bookmarks"
PROGRESS_MIRROR = "offline/watch_progress"

_CACHE_ERRORS = (OSError, ValueError, TypeError, KeyError)


def _detail_key(show_id: str) -> str:
    return DETAIL_PREFIX + quote(show_id, safe="")


def _thumb_dir(show_id: str) -> str:
    return f"{THUMB_PREFIX}{quote(show_id, safe='')}/"


def _thumb_key(show_id: str, episode_number: int) -> str:
    return f"{_thumb_dir(show_id)}episode_{int(episode_number)}"


def build_entry(show_id: str, detail: Detail, episodes: List[Episode],
                thumbnails: Dict[int, str], cached_at: float) -> OfflineCacheEntry:
    return {
        "id": show_id,
        "detail": detail,
        "episodes": list(episodes),
        "thumbnailURLs": {str(n): url for n, url in thumbnails.items()},
        "cachedAt": cached_at,
    }


class ContentCache:
    def __init__(self, store: FileKeyValueStore,
                 fetch: Callable[[str], bytes] = fetch_bytes,
                 clock: Callable[[], float] = time.time,
                 retry: Optional[RetryPolicy] = None,
                 max_age: float = MAX_CACHE_AGE,
                 max_bytes: int = MAX_CACHE_BYTES,
                 executor: Optional[ThreadPoolExecutor] = None):
        self._store = store
        self._fetch = fetch
        self._clock = clock
        self._retry = retry or RetryPolicy()
        self.max_age = max_age
        self.max_bytes = max_bytes
        self._executor = executor or ThreadPoolExecutor(
            max_workers=THUMBNAIL_WORKERS, thread_name_prefix="thumb")

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)

    def _expired(self, cached_at: float, now: Optional[float] = None) -> bool:
        now = self._clock() if now is None else now
        return now - cached_at > self.max_age

    # details

    def put(self, show_id: str, detail: Detail, episodes: List[Episode],
            thumbnails: Dict[int, str], cancel: Optional[CancellationToken] = None) -> List[Future]:
        """Store details + episodes, then download thumbnails in the background.

        Returns one future per scheduled thumbnail download; each resolves to
        True when the image was cached. Failures never propagate.
        """
        if cancel is not None and cancel.cancelled:
            return []
        entry = build_entry(show_id, detail, episodes, thumbnails, self._clock())
        try:
            self._store.set_json(_detail_key(show_id), entry)
        except _CACHE_ERRORS as e:
            log.warning("Failed to cache details for %s: %s", show_id, e)
            return []

        futures = []
        for number, url in thumbnails.items():
            if not url:
                continue
            futures.append(self._executor.submit(self._cache_thumbnail, show_id, int(number), url, cancel))
        return futures

    def get(self, show_id: str) -> Optional[OfflineCacheEntry]:
        try:
            entry = self._store.get_json(_detail_key(show_id))
        except _CACHE_ERRORS as e:
            log.warning("Dropping unreadable cache entry for %s: %s", show_id, e)
            self.remove(show_id)
            return None
        if entry is None:
            return None
        try:
            stale = self._expired(float(entry["cachedAt"]))
        except _CACHE_ERRORS:
            stale = True
        if stale:
            log.debug("Cache entry for %s expired", show_id)
            self.remove(show_id)
            return None
        return entry

    def remove(self, show_id: str) -> None:
        try:
            self._store.remove(_detail_key(show_id))
            self._store.remove_prefix(_thumb_dir(show_id))
        except (OSError, ValueError) as e:
            log.warning("Failed to remove cache for %s: %s", show_id, e)

    # thumbnails

    def _cache_thumbnail(self, show_id: str, episode_number: int, url: str,
                         cancel: Optional[CancellationToken]) -> bool:
        try:
            if cancel is not None and cancel.cancelled:
                return False
            data = self._retry.call(self._fetch, url)
            if cancel is not None and cancel.cancelled:
                return False
            self._store.set_json(_thumb_key(show_id, episode_number), {
                "url": url,
                "episodeNumber": episode_number,
                "data": base64.b64encode(data).decode("ascii"),
                "cachedAt": self._clock(),
            })
            return True
        except Exception as e:
            log.warning("Failed to cache thumbnail %s for %s ep %d: %s", url, show_id, episode_number, e)
            return False

    def get_thumbnail(self, show_id: str, episode_number: int) -> Optional[bytes]:
        key = _thumb_key(show_id, episode_number)
        try:
            blob = self._store.get_json(key)
            if blob is None:
                return None
            if self._expired(float(blob["cachedAt"])):
                self._store.remove(key)
                return None
            return base64.b64decode(blob["data"])
        except _CACHE_ERRORS as e:
            log.warning("Dropping unreadable thumbnail %s: %s", key, e)
            try:
                self._store.remove(key)
            except (OSError, ValueError):
                pass
            return None

    # statistics and eviction

    def size(self) -> int:
        try:
            return self._store.size_bytes()
        except OSError:
            return 0

    def stats(self) -> CacheStats:
        try:
            keys = self._store.keys()
        except OSError:
            keys = []
        total = self.size()
        return {
            "totalBytes": total,
            "showCount": sum(1 for k in keys if k.startswith(DETAIL_PREFIX)),
            "imageCount": sum(1 for k in keys if k.startswith(THUMB_PREFIX)),
            "maxBytes": self.max_bytes,
            "overLimit": total > self.max_bytes,
        }

    def _cached_at(self, key: str) -> Optional[float]:
        try:
            blob = self._store.get_json(key)
            if isinstance(blob, dict) and "cachedAt" in blob:
                return float(blob["cachedAt"])
        except _CACHE_ERRORS:
            pass
        return self._store.mtime(key)

    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Delete details and thumbnails older than max_age; returns the number removed.

        Offline mirrors are left alone.
        """
        now = self._clock() if now is None else now
        removed = 0
        try:
            keys = [k for k in self._store.keys() if k.startswith((DETAIL_PREFIX, THUMB_PREFIX))]
        except OSError as e:
            log.warning("Cache sweep failed: %s", e)
            return 0
        for key in keys:
            cached_at = self._cached_at(key)
            if cached_at is None or not self._expired(cached_at, now):
                continue
            try:
                self._store.remove(key)
                removed += 1
            except OSError as e:
                log.warning("Failed to evict %s: %s", key, e)
        self._store.prune_empty_dirs()
        if removed:
            log.info("Evicted %d expired cache entries", removed)
        return removed

    def clear_all(self) -> None:
        root = self._store.root
        try:
            for child in root.iterdir():
                if child.is_dir():
                    shutil.rmtree(child, ignore_errors=True)
                else:
                    child.unlink(missing_ok=True)
        except OSError as e:
            log.warning("Failed to clear cache: %s", e)

    # offline mirrors

    def _mirror(self, key: str, items: List[Any]) -> None:
        try:
            self._store.set_json(key, {"cachedAt": self._clock(), "items": items})
        except _CACHE_ERRORS as e:
            log.warning("Failed to write offline mirror %s: %s", key, e)

    def _read_mirror(self, key: str) -> List[Any]:
        try:
            blob = self._store.get_json(key)
            items = blob.get("items") if isinstance(blob, dict) else None
            return items if isinstance(items, list) else []
        except _CACHE_ERRORS:
            return []

    def mirror_bookmarks(self, bookmarks: List[CatalogItem]) -> None:
        self._mirror(BOOKMARKS_MIRROR, list(bookmarks))

    def mirror_watch_progress(self, records: List[WatchProgressRecord]) -> None:
        self._mirror(PROGRESS_MIRROR, [r.to_dict() for r in records])

    def read_offline_bookmarks(self) -> List[CatalogItem]:
        return self._read_mirror(BOOKMARKS_MIRROR)

    def read_offline_progress(self) -> List[WatchProgressRecord]:
        try:
            return [WatchProgressRecord.from_dict(d) for d in self._read_mirror(PROGRESS_MIRROR)]
        except _CACHE_ERRORS:
            return []
