"""User bookmarks: an ordered, id-unique list of catalog items."""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List

from ..core.kv_store import KeyValueStore
from ..models.types import CatalogItem

log = logging.getLogger(__name__)

BOOKMARKS_KEY = "bookmarks"


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class BookmarkChange:
    kind: ChangeKind
    id: str


Listener = Callable[[BookmarkChange], None]


class BookmarkStore:
    """Bookmarks persisted as one blob; every mutation notifies subscribers."""

    def __init__(self, store: KeyValueStore, key: str = BOOKMARKS_KEY):
        self._store = store
        self._key = key
        self._listeners: List[Listener] = []
        self._lock = threading.RLock()

    def _load(self) -> List[CatalogItem]:
        try:
            items = self._store.get_json(self._key, [])
        except ValueError:
            log.warning("Bookmark blob is unreadable; starting from an empty set")
            return []
        return items if isinstance(items, list) else []

    def list(self) -> List[CatalogItem]:
        with self._lock:
            return self._load()

    def contains(self, item) -> bool:
        item_id = item["id"] if isinstance(item, dict) else str(item)
        with self._lock:
            return any(b.get("id") == item_id for b in self._load())

    def toggle(self, item: CatalogItem) -> bool:
        """Add `item` if absent, else remove it. Returns True when added."""
        item_id = item["id"]
        with self._lock:
            items = self._load()
            idx = next((i for i, b in enumerate(items) if b.get("id") == item_id), None)
            if idx is None:
                items.append(dict(item))
                change = BookmarkChange(ChangeKind.ADDED, item_id)
            else:
                items.pop(idx)
                change = BookmarkChange(ChangeKind.REMOVED, item_id)
            self._store.set_json(self._key, items)
        self._notify(change)
        return change.kind is ChangeKind.ADDED

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe():
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)
        return unsubscribe

    def _notify(self, change: BookmarkChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for fn in listeners:
            try:
                fn(change)
            except Exception:
                log.exception("Bookmark listener failed for %s", change)
