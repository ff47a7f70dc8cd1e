import threading

import pytest
import requests

from anime_sync.core.errors import Cancelled, NetworkError
from anime_sync.core.kv_store import FileKeyValueStore
from anime_sync.core.retry import RetryPolicy
from anime_sync.models.records import EpisodeThumbnail
from anime_sync.stores.bookmarks import BookmarkStore
from anime_sync.stores.content_cache import ContentCache
from anime_sync.stores.orchestrator import SyncOrchestrator
from anime_sync.stores.watch_progress import WatchProgressTracker

DETAIL = {"id": "frieren-18542", "title": "Frieren", "anilistId": None}
EPISODES = [
    {"episodeId": "frieren-18542?ep=1", "number": 1, "title": None, "isFiller": False},
    {"episodeId": "frieren-18542?ep=2", "number": 2, "title": None, "isFiller": False},
    {"episodeId": "frieren-18542?ep=3", "number": 3, "title": None, "isFiller": False},
]


class DummyResponse:
    def __init__(self, status_code):
        self.status_code = status_code


class FakeAPI:
    def __init__(self, detail=DETAIL, fail=None, during=None):
        self.detail = detail
        self.fail = fail
        self.during = during

    def details(self, show_id):
        if self.during:
            self.during()
        if self.fail:
            raise self.fail
        return dict(self.detail)

    def episodes(self, show_id):
        return list(EPISODES)


class FakeRemote:
    def __init__(self, remote_id=154587, thumbs=2):
        self.remote_id = remote_id
        self.thumbs = [EpisodeThumbnail(f"https://img/{i}.jpg") for i in range(1, thumbs + 1)]
        self.matched = []

    def match_local_title(self, title):
        self.matched.append(title)
        return self.remote_id

    def fetch_episode_thumbnails(self, remote_id):
        return self.thumbs


@pytest.fixture
def parts(tmp_path, memstore, clock):
    bookmarks = BookmarkStore(memstore)
    progress = WatchProgressTracker(memstore, clock=clock)
    cache = ContentCache(FileKeyValueStore(tmp_path / "OfflineCache"), clock=clock,
                         fetch=lambda url: b"img", retry=RetryPolicy(sleep=lambda _: None))
    yield bookmarks, progress, cache
    cache.close()


def make(parts, **kw):
    bookmarks, progress, cache = parts
    return SyncOrchestrator(bookmarks, progress, cache, **kw)


def test_offline_snapshot_and_bootstrap(parts):
    bookmarks, progress, cache = parts
    bookmarks.toggle({"id": "a", "title": "A"})
    bookmarks.toggle({"id": "b", "title": "B"})
    progress.save_progress("a", "a?ep=1", 1, 30, 1400, "A")
    o = make(parts)
    assert o.offline_snapshot() == {"bookmarks": 2, "progress": 1}
    boot = o.offline_bootstrap()
    assert [b["id"] for b in boot["bookmarks"]] == ["a", "b"]
    assert boot["progress"][0].show_id == "a"


def test_is_offline():
    def probe(status=None, exc=None):
        def get(url, timeout=None):
            assert timeout == 3
            if exc:
                raise exc
            return DummyResponse(status)
        return get

    assert not SyncOrchestrator(None, None, None, get=probe(200)).is_offline()
    assert SyncOrchestrator(None, None, None, get=probe(503)).is_offline()
    assert SyncOrchestrator(None, None, None, get=probe(exc=NetworkError("down"))).is_offline()
    assert SyncOrchestrator(None, None, None, get=probe(exc=requests.ConnectionError())).is_offline()


def test_checkpoint(parts, clock):
    bookmarks, progress, cache = parts
    progress.save_progress("done", "done?ep=1", 1, 1400, 1400, "Done")
    cache.put("old", DETAIL, EPISODES, {})
    clock.advance(8 * 24 * 3600)
    res = make(parts).checkpoint()
    assert res["cleaned"] == 1
    assert res["mirrored"] == {"bookmarks": 0, "progress": 1}
    assert res["evicted"] == 1
    assert res["stats"]["overLimit"] is False


def test_load_show_returns_before_thumbnails_then_fills_them(parts):
    _, _, cache = parts
    remote = FakeRemote(thumbs=2)
    o = make(parts, api=FakeAPI(), remote=remote)
    entry = o.load_show("frieren-18542")
    assert entry["detail"]["title"] == "Frieren"
    assert entry["episodes"] == EPISODES
    o.close(wait=True)
    cached = cache.get("frieren-18542")
    assert cached["thumbnailURLs"] == {"1": "https://img/1.jpg", "2": "https://img/2.jpg"}
    assert remote.matched == ["Frieren"]
    assert o.slots.outstanding() == 0


def test_load_show_uses_anilist_id_when_known(parts):
    remote = FakeRemote()
    o = make(parts, api=FakeAPI(detail={**DETAIL, "anilistId": 154587}), remote=remote)
    o.load_show("frieren-18542")
    o.close(wait=True)
    assert remote.matched == []


def test_load_show_does_not_wait_for_thumbnails(parts):
    release = threading.Event()

    class Slow(FakeRemote):
        def fetch_episode_thumbnails(self, remote_id):
            release.wait(5)
            return self.thumbs

    o = make(parts, api=FakeAPI(), remote=Slow())
    try:
        entry = o.load_show("frieren-18542")
        assert entry["thumbnailURLs"] == {}
        assert o.slots.outstanding() == 1
    finally:
        release.set()
        o.close(wait=True)
    assert o.slots.outstanding() == 0


def test_newer_load_drops_stale_thumbnail_job(parts, monkeypatch):
    _, _, cache = parts
    release = threading.Event()
    thumbnail_puts = []
    real_put = cache.put

    def recording_put(show_id, detail, episodes, thumbnails, cancel=None):
        if thumbnails:
            thumbnail_puts.append(show_id)
        return real_put(show_id, detail, episodes, thumbnails, cancel=cancel)

    monkeypatch.setattr(cache, "put", recording_put)

    class Slow(FakeRemote):
        def fetch_episode_thumbnails(self, remote_id):
            release.wait(5)
            return self.thumbs

    o = make(parts, api=FakeAPI(), remote=Slow())
    try:
        o.load_show("frieren-18542")
        o.load_show("frieren-18542")
    finally:
        release.set()
        o.close(wait=True)
    assert thumbnail_puts == ["frieren-18542"]


def test_load_show_falls_back_to_cache_when_offline(parts):
    _, _, cache = parts
    cache.put("frieren-18542", DETAIL, EPISODES, {})
    o = make(parts, api=FakeAPI(fail=NetworkError("offline")))
    assert o.load_show("frieren-18542")["episodes"] == EPISODES
    assert make(parts, api=FakeAPI(fail=NetworkError("offline"))).load_show("other") is None


class FullDiskStore(FileKeyValueStore):
    def set(self, key, value):
        raise OSError(28, "No space left on device")


def test_load_show_serves_live_data_when_cache_write_fails(tmp_path, memstore, clock):
    cache = ContentCache(FullDiskStore(tmp_path / "OfflineCache"), clock=clock,
                         fetch=lambda url: b"img")
    try:
        o = SyncOrchestrator(BookmarkStore(memstore), WatchProgressTracker(memstore, clock=clock),
                             cache, api=FakeAPI())
        entry = o.load_show("frieren-18542")
        assert entry is not None
        assert entry["id"] == "frieren-18542"
        assert entry["detail"]["title"] == "Frieren"
        assert entry["episodes"] == EPISODES
        assert cache.get("frieren-18542") is None
    finally:
        cache.close()


def test_superseded_load_writes_nothing(parts):
    _, _, cache = parts
    holder = {}
    api = FakeAPI(during=lambda: holder["o"].slots.begin("detail", "frieren-18542"))
    o = holder["o"] = make(parts, api=api)
    with pytest.raises(Cancelled):
        o.load_show("frieren-18542")
    assert cache.get("frieren-18542") is None


def test_thumbnail_lookup_failure_is_ignored(parts):
    _, _, cache = parts

    class Broken(FakeRemote):
        def fetch_episode_thumbnails(self, remote_id):
            raise NetworkError("offline")

    o = make(parts, api=FakeAPI(), remote=Broken())
    o.load_show("frieren-18542")
    o.close(wait=True)
    assert cache.get("frieren-18542")["thumbnailURLs"] == {}
    assert o.slots.outstanding() == 0
