"""Composition root: builds every service once and wires them together."""

from dataclasses import dataclass
from typing import Optional

from .config import Settings
from .core.content_api import ContentAPI
from .core.graphql import GraphQLClient
from .core.kv_store import FileKeyValueStore, KeyValueStore
from .stores.bookmarks import BookmarkStore
from .stores.content_cache import ContentCache
from .stores.orchestrator import SyncOrchestrator
from .stores.remote_sync import RemoteLibrarySync
from .stores.watch_progress import WatchProgressTracker


@dataclass
class Services:
    settings: Settings
    state: KeyValueStore
    bookmarks: BookmarkStore
    progress: WatchProgressTracker
    cache: ContentCache
    api: ContentAPI
    anilist: RemoteLibrarySync
    sync: SyncOrchestrator

    def close(self) -> None:
        self.sync.close()
        self.cache.close()


def build_services(settings: Optional[Settings] = None,
                   state: Optional[KeyValueStore] = None,
                   cache_store: Optional[FileKeyValueStore] = None) -> Services:
    settings = settings or Settings.from_env()
    state = state or FileKeyValueStore(settings.state_dir)
    cache_store = cache_store or FileKeyValueStore(settings.cache_dir)

    bookmarks = BookmarkStore(state)
    progress = WatchProgressTracker(state)
    cache = ContentCache(cache_store)
    api = ContentAPI(settings.api_base_url)
    anilist = RemoteLibrarySync(state, GraphQLClient(settings.anilist_endpoint))
    sync = SyncOrchestrator(bookmarks, progress, cache, api=api, remote=anilist,
                            probe_url=settings.probe_url)
    return Services(settings, state, bookmarks, progress, cache, api, anilist, sync)
