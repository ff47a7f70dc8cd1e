"""Local stores and the AniList sync for anime-sync."""

from .bookmarks import BookmarkStore, BookmarkChange, ChangeKind
from .watch_progress import WatchProgressTracker
from .content_cache import ContentCache
from .remote_sync import RemoteLibrarySync
from .title_matcher import TitleMatcher
from .orchestrator import SyncOrchestrator

__all__ = [
    "BookmarkStore", "BookmarkChange", "ChangeKind",
    "WatchProgressTracker", "ContentCache", "RemoteLibrarySync",
    "TitleMatcher", "SyncOrchestrator",
]
