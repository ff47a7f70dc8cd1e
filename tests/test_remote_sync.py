import pytest

from anime_sync.core.errors import (
    AuthenticationFailed, FailedToFetchLibrary, NetworkError, NoRefreshToken,
    NotAuthenticated, TokenRefreshFailed, GraphQLQueryError,
)
from anime_sync.core import graphql
from anime_sync.core.graphql import GraphQLClient
from anime_sync.core.retry import RetryPolicy
from anime_sync.models.records import AuthState, LibraryStatus
from anime_sync.stores.remote_sync import (
    RemoteLibrarySync, AUTH_MUTATION, REFRESH_MUTATION, VIEWER_QUERY, LIBRARY_QUERY,
    LIBRARY_BY_STATUS_QUERY, THUMBNAILS_QUERY, SESSION_KEY, IMPLICIT_TOKEN_LIFETIME,
)
from fakes import FakeGQL, media

VIEWER = {"Viewer": {"id": 42, "name": "maki", "avatar": {"large": "https://a/l.png"},
                     "statistics": {"anime": {"count": 3, "episodesWatched": 61, "meanScore": 81.5}}}}


def tokens(access="acc", refresh="ref", expires_in=3600):
    return {"access_token": access, "refresh_token": refresh, "expires_in": expires_in}


@pytest.fixture
def gql():
    return FakeGQL({
        AUTH_MUTATION: lambda v: {"authenticate": tokens()},
        REFRESH_MUTATION: lambda v: {"refreshToken": tokens("acc2", "ref2")},
        VIEWER_QUERY: lambda v: VIEWER,
    })


@pytest.fixture
def sync(memstore, gql, clock):
    return RemoteLibrarySync(memstore, client=gql, clock=clock,
                             retry=RetryPolicy(sleep=lambda _: None))


def put_session(store, access, refresh, expires_at):
    store.set_json(SESSION_KEY, {"accessToken": access, "refreshToken": refresh, "expiresAt": expires_at})


def test_authenticate_stores_session(sync, clock):
    assert sync.state is AuthState.UNAUTHENTICATED
    assert sync.authenticate("code123") is True
    s = sync.session
    assert (s.access_token, s.refresh_token) == ("acc", "ref")
    assert s.expires_at == clock.now + 3600
    assert sync.state is AuthState.AUTHENTICATED


def test_failed_authenticate_keeps_previous_session(sync, gql, memstore, clock):
    put_session(memstore, "old", "oldref", clock.now + 100)

    def reject(v):
        raise GraphQLQueryError(["invalid_grant"])

    gql.routes[AUTH_MUTATION] = reject
    with pytest.raises(AuthenticationFailed):
        sync.authenticate("bad")
    assert sync.session.access_token == "old"
    assert sync.is_authenticated


def test_authenticate_with_partial_payload_fails(sync, gql):
    gql.routes[AUTH_MUTATION] = lambda v: {"authenticate": {"access_token": "x"}}
    with pytest.raises(AuthenticationFailed):
        sync.authenticate("code")
    assert sync.session.is_empty


def test_implicit_token_has_no_refresh(sync, clock):
    sync.store_access_token(" tok ")
    s = sync.session
    assert s.access_token == "tok"
    assert s.refresh_token is None
    assert s.expires_at == clock.now + IMPLICIT_TOKEN_LIFETIME
    with pytest.raises(ValueError):
        sync.store_access_token("   ")


def test_expired_session_without_refresh_token(sync, memstore, clock):
    put_session(memstore, "abc", None, clock.now - 1)
    assert not sync.is_authenticated
    with pytest.raises(NoRefreshToken):
        sync.refresh()
    assert sync.session.is_empty


def test_refresh_replaces_all_fields(sync, memstore, clock):
    put_session(memstore, "acc", "ref", clock.now - 1)
    sync.refresh()
    s = sync.session
    assert (s.access_token, s.refresh_token, s.expires_at) == ("acc2", "ref2", clock.now + 3600)


def test_failed_refresh_clears_session(sync, gql, memstore, clock):
    put_session(memstore, "acc", "ref", clock.now - 1)

    def down(v):
        raise NetworkError("offline")

    gql.routes[REFRESH_MUTATION] = down
    with pytest.raises(TokenRefreshFailed):
        sync.refresh()
    assert sync.session.is_empty
    assert sync.state is AuthState.UNAUTHENTICATED


def test_ensure_authenticated_refreshes_expired_session(sync, gql, memstore, clock):
    put_session(memstore, "acc", "ref", clock.now - 1)
    profile = sync.fetch_profile()
    assert profile.id == 42
    assert profile.episodes_watched == 61
    assert len(gql.queries(REFRESH_MUTATION)) == 1
    assert sync.session.access_token == "acc2"


def test_ensure_authenticated_drops_expired_implicit_session(sync, memstore, clock):
    put_session(memstore, "abc", None, clock.now - 1)
    with pytest.raises(NotAuthenticated):
        sync.fetch_profile()
    assert memstore.get(SESSION_KEY) is None


def test_logout(sync):
    sync.authenticate("code")
    sync.logout()
    assert sync.session.is_empty
    with pytest.raises(NotAuthenticated):
        sync.fetch_library()


def library_payload():
    return {"MediaListCollection": {"lists": [
        {"entries": [
            {"id": 1, "mediaId": 16498, "status": "CURRENT", "score": 9, "progress": 12,
             "media": {**media(16498, "Shingeki no Kyojin", "Attack on Titan"),
                       "coverImage": {"large": "https://img/aot.jpg"}}},
            {"id": 2, "status": "PLANNING", "progress": None,
             "media": media(5114, "Hagane no Renkinjutsushi: FULLMETAL ALCHEMIST")},
            {"id": 3, "status": "CURRENT", "media": None},
            {"id": 4, "status": "WHATEVER", "media": media(1, "X")},
            None,
        ]},
        None,
        {"entries": [{"status": "COMPLETED", "media": {"id": 21, "title": None}}]},
    ]}}


def test_fetch_library_normalizes_entries(sync, gql):
    gql.routes[LIBRARY_QUERY] = lambda v: library_payload()
    sync.authenticate("code")
    items = sync.fetch_library()
    assert [i.remote_id for i in items] == [16498, 5114]
    aot, fma = items
    assert aot.title == "Attack on Titan"
    assert aot.local_title_candidates == ["Shingeki no Kyojin", "Attack on Titan"]
    assert aot.image_url == "https://img/aot.jpg"
    assert aot.progress_text == "12/25"
    assert fma.title == "Hagane no Renkinjutsushi: FULLMETAL ALCHEMIST"
    assert fma.progress == 0
    assert fma.entry_id == 2
    assert gql.queries(LIBRARY_QUERY) == [{"userId": 42}]
    assert sync.library_snapshot() == items


def test_fetch_library_by_status(sync, gql):
    gql.routes[LIBRARY_BY_STATUS_QUERY] = lambda v: library_payload()
    sync.authenticate("code")
    sync.fetch_library(LibraryStatus.CURRENT)
    assert gql.queries(LIBRARY_BY_STATUS_QUERY) == [{"userId": 42, "status": "CURRENT"}]


def test_fetch_library_shape_mismatch(sync, gql):
    gql.routes[LIBRARY_QUERY] = lambda v: {"MediaListCollection": {"lists": "nope"}}
    sync.authenticate("code")
    with pytest.raises(FailedToFetchLibrary):
        sync.fetch_library()
    assert sync.library_snapshot() is None


def test_fetch_library_requires_auth(sync):
    with pytest.raises(NotAuthenticated):
        sync.fetch_library()


def test_thumbnails_retried_on_transient_errors(sync, gql):
    calls = {"n": 0}

    def flaky(v):
        calls["n"] += 1
        if calls["n"] < 3:
            raise NetworkError("offline")
        return {"Media": {"streamingEpisodes": [
            {"thumbnail": "https://img/e1.jpg", "title": "Episode 1", "site": "Crunchyroll"},
            {"thumbnail": None, "title": "Episode 2"},
        ]}}

    gql.routes[THUMBNAILS_QUERY] = flaky
    thumbs = sync.fetch_episode_thumbnails(16498)
    assert calls["n"] == 3
    assert [t.thumbnail for t in thumbs] == ["https://img/e1.jpg"]


def test_thumbnails_give_up_after_three_attempts(sync, gql):
    def down(v):
        raise NetworkError("offline")

    gql.routes[THUMBNAILS_QUERY] = down
    with pytest.raises(NetworkError):
        sync.fetch_episode_thumbnails(1)
    assert len(gql.queries(THUMBNAILS_QUERY)) == 3


class DummyResponse:
    def __init__(self, status_code=200, json_data=None):
        self.status_code = status_code
        self._json = json_data

    def json(self):
        return self._json


def test_thumbnails_retried_when_anilist_rate_limits(memstore, clock, monkeypatch):
    calls = {"n": 0}

    def fake_post(url, json=None, headers=None, timeout=None):
        calls["n"] += 1
        return DummyResponse(429, {"errors": [{"message": "Too Many Requests.", "status": 429}],
                                   "data": None})

    monkeypatch.setattr(graphql, "http_post", fake_post)
    sleeps = []
    sync = RemoteLibrarySync(memstore, client=GraphQLClient(), clock=clock,
                             retry=RetryPolicy(sleep=sleeps.append))
    with pytest.raises(GraphQLQueryError) as ei:
        sync.fetch_episode_thumbnails(1)
    assert ei.value.status_code == 429
    assert calls["n"] == 3
    assert sleeps == [2.0, 4.0]
