"""Models and type definitions for anime-sync."""

from .types import CatalogItem, Detail, Episode, EpisodeCounts, OfflineCacheEntry, CacheStats, Sources
from .records import (
    WatchProgressRecord, AuthSession, AuthState, LibraryStatus,
    RemoteLibraryItem, RemoteUserProfile, EpisodeThumbnail, TitleCandidate,
)

__all__ = [
    "CatalogItem", "Detail", "Episode", "EpisodeCounts", "OfflineCacheEntry", "CacheStats", "Sources",
    "WatchProgressRecord", "AuthSession", "AuthState", "LibraryStatus",
    "RemoteLibraryItem", "RemoteUserProfile", "EpisodeThumbnail", "TitleCandidate",
]
