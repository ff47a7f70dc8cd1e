"""Per-episode playback positions and the "continue watching" row."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from ..core.kv_store import KeyValueStore
from ..models.records import PROGRESS_EPSILON, WatchProgressRecord, progress_key

log = logging.getLogger(__name__)

HISTORY_KEY = "watch_progress/history"
CONTINUE_KEY = "watch_progress/continue_watching"
CONTINUE_WATCHING_LIMIT = 20
FINISHED_GRACE_PERIOD = 24 * 60 * 60


class WatchProgressTracker:
    """Stores one record per (show, episode).

    The continue-watching projection holds at most one record per show, the
    most recently updated one, ordered newest first and capped at
    CONTINUE_WATCHING_LIMIT. Both the full map and the projection are
    persisted as separate blobs on every mutation.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], float] = time.time,
                 limit: int = CONTINUE_WATCHING_LIMIT, grace_period: float = FINISHED_GRACE_PERIOD):
        self._store = store
        self._clock = clock
        self.limit = limit
        self.grace_period = grace_period
        self._lock = threading.RLock()

    # persistence

    def _load_history(self) -> Dict[str, WatchProgressRecord]:
        try:
            raw = self._store.get_json(HISTORY_KEY, {})
            return {k: WatchProgressRecord.from_dict(v) for k, v in raw.items()}
        except (ValueError, KeyError, TypeError, AttributeError):
            log.warning("Watch history blob is unreadable; starting empty")
            return {}

    def _load_projection(self) -> List[WatchProgressRecord]:
        try:
            raw = self._store.get_json(CONTINUE_KEY, [])
            return [WatchProgressRecord.from_dict(d) for d in raw]
        except (ValueError, KeyError, TypeError, AttributeError):
            log.warning("Continue-watching blob is unreadable; starting empty")
            return []

    def _persist(self, history: Dict[str, WatchProgressRecord],
                 projection: List[WatchProgressRecord]) -> None:
        self._store.set_json(HISTORY_KEY, {k: r.to_dict() for k, r in history.items()})
        self._store.set_json(CONTINUE_KEY, [r.to_dict() for r in projection])

    def _place(self, projection: List[WatchProgressRecord], record: WatchProgressRecord) -> List[WatchProgressRecord]:
        """Insert `record` as its show's slot, keeping newest-first order and the cap."""
        out = [r for r in projection if r.show_id != record.show_id]
        idx = next((i for i, r in enumerate(out) if r.last_updated <= record.last_updated), len(out))
        out.insert(idx, record)
        return out[: self.limit]

    @staticmethod
    def _latest_for_show(history: Dict[str, WatchProgressRecord], show_id: str) -> Optional[WatchProgressRecord]:
        recs = [r for r in history.values() if r.show_id == show_id]
        return max(recs, key=lambda r: r.last_updated) if recs else None

    # operations

    def save_progress(self, show_id: str, episode_id: str, episode_number: int,
                      position: float, duration: float, title: str,
                      thumbnail_url: Optional[str] = None,
                      updated_at: Optional[float] = None) -> WatchProgressRecord:
        """Upsert progress for one episode.

        Saves are last-write-wins by timestamp: a save older than the stored
        record for the same pair is ignored and the stored record returned.
        """
        if episode_number < 1:
            raise ValueError("episode_number must be >= 1")
        if duration <= 0:
            raise ValueError("duration must be > 0")
        if position < 0:
            raise ValueError("position must be >= 0")
        if position > duration + PROGRESS_EPSILON:
            log.debug("Clamping position %.1f to duration %.1f", position, duration)
        position = min(position, duration)

        ts = self._clock() if updated_at is None else updated_at
        key = progress_key(show_id, episode_id)

        with self._lock:
            history = self._load_history()
            existing = history.get(key)
            if existing is not None and existing.last_updated > ts:
                log.debug("Ignoring stale progress save for %s/%s", show_id, episode_id)
                return existing

            record = WatchProgressRecord(
                show_id=show_id,
                episode_id=episode_id,
                episode_number=episode_number,
                position_seconds=float(position),
                duration_seconds=float(duration),
                last_updated=ts,
                title=title,
                thumbnail_url=thumbnail_url,
            )
            history[key] = record
            best = self._latest_for_show(history, show_id)
            projection = self._place(self._load_projection(), best)
            self._persist(history, projection)
            return record

    def get_progress(self, show_id: str, episode_id: str) -> Optional[WatchProgressRecord]:
        with self._lock:
            return self._load_history().get(progress_key(show_id, episode_id))

    def continue_watching(self) -> List[WatchProgressRecord]:
        with self._lock:
            return self._load_projection()[: self.limit]

    def history(self) -> List[WatchProgressRecord]:
        """Every record, newest first."""
        with self._lock:
            return sorted(self._load_history().values(), key=lambda r: r.last_updated, reverse=True)

    def remove_progress(self, show_id: str, episode_id: str) -> bool:
        """Delete one record; the show's projection slot falls back to its next-best record."""
        key = progress_key(show_id, episode_id)
        with self._lock:
            history = self._load_history()
            if history.pop(key, None) is None:
                return False
            projection = self._load_projection()
            slot = next((r for r in projection if r.show_id == show_id), None)
            if slot is not None and slot.episode_id == episode_id:
                projection = [r for r in projection if r.show_id != show_id]
                nxt = self._latest_for_show(history, show_id)
                if nxt is not None:
                    projection = self._place(projection, nxt)
            self._persist(history, projection)
            return True

    def cleanup_finished_episodes(self, now: Optional[float] = None) -> int:
        """Drop completed records older than the grace period from the projection.

        The full history keeps them. Returns how many slots were dropped.
        """
        now = self._clock() if now is None else now
        with self._lock:
            projection = self._load_projection()
            kept = [r for r in projection
                    if not (r.is_completed and now - r.last_updated > self.grace_period)]
            dropped = len(projection) - len(kept)
            if dropped:
                self._store.set_json(CONTINUE_KEY, [r.to_dict() for r in kept])
                log.info("Removed %d finished episode(s) from continue watching", dropped)
            return dropped

    def clear_history(self) -> None:
        with self._lock:
            self._store.remove(HISTORY_KEY)
            self._store.remove(CONTINUE_KEY)
