"""AniList account: token lifecycle and remote library reconciliation."""

import logging
import threading
import time
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..core.errors import (
    AnimeSyncError, AuthenticationFailed, FailedToFetchLibrary, FailedToFetchProfile,
    NoRefreshToken, NotAuthenticated, TokenRefreshFailed,
)
from ..core.graphql import GraphQLClient
from ..core.kv_store import KeyValueStore
from ..core.normalizers import (
    norm_library_from_anilist, norm_profile_from_anilist, norm_thumbnails_from_anilist,
)
from ..core.retry import RetryPolicy
from ..models.anilist import TokenPayload
from ..models.records import (
    AuthSession, AuthState, EpisodeThumbnail, LibraryStatus, RemoteLibraryItem, RemoteUserProfile,
)
from .title_matcher import TitleMatcher

log = logging.getLogger(__name__)

SESSION_KEY = "anilist/session"
IMPLICIT_TOKEN_LIFETIME = 365 * 24 * 60 * 60

AUTH_MUTATION = """
mutation ($code: String!) {
  authenticate(code: $code) { access_token refresh_token expires_in }
}"""

REFRESH_MUTATION = """
mutation ($refreshToken: String!) {
  refreshToken(refreshToken: $refreshToken) { access_token refresh_token expires_in }
}"""

VIEWER_QUERY = """
query {
  Viewer {
    id name
    avatar { large medium }
    statistics { anime { count episodesWatched meanScore } }
  }
}"""

_LIST_FIELDS = """
    lists {
      entries {
        id mediaId status score progress
        media {
          id
          title { romaji english native }
          synonyms
          coverImage { large medium }
          episodes status format
        }
      }
    }
"""

LIBRARY_QUERY = """
query ($userId: Int!) {
  MediaListCollection(userId: $userId, type: ANIME) {%s}
}""" % _LIST_FIELDS

LIBRARY_BY_STATUS_QUERY = """
query ($userId: Int!, $status: MediaListStatus!) {
  MediaListCollection(userId: $userId, type: ANIME, status: $status) {%s}
}""" % _LIST_FIELDS

THUMBNAILS_QUERY = """
query ($id: Int) {
  Media(id: $id, isAdult: false) {
    streamingEpisodes { thumbnail title site url }
    episodes
    format
  }
}"""

# parse failures of a token/library payload
_SHAPE_ERRORS = (ValidationError, AttributeError, TypeError, KeyError)


class RemoteLibrarySync:
    """Owns the AniList session and everything that needs it.

    State machine: UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED ->
    REFRESHING -> AUTHENTICATED | UNAUTHENTICATED. An expired session with no
    refresh token is dropped lazily on the next authenticated call.
    """

    def __init__(self, store: KeyValueStore, client: Optional[GraphQLClient] = None,
                 clock: Callable[[], float] = time.time,
                 retry: Optional[RetryPolicy] = None):
        self._store = store
        self._clock = clock
        self.client = client or GraphQLClient()
        if self.client.token_provider is None:
            self.client.token_provider = self._current_token
        self.retry = retry or RetryPolicy()
        self.matcher = TitleMatcher(self.client)
        self._lock = threading.RLock()
        self._pending: Optional[AuthState] = None
        self._library: Dict[Optional[LibraryStatus], List[RemoteLibraryItem]] = {}

    # session

    @property
    def session(self) -> AuthSession:
        try:
            d = self._store.get_json(SESSION_KEY)
        except ValueError:
            log.warning("AniList session blob is unreadable; treating as logged out")
            return AuthSession()
        if not isinstance(d, dict):
            return AuthSession()
        return AuthSession(
            access_token=d.get("accessToken"),
            refresh_token=d.get("refreshToken"),
            expires_at=d.get("expiresAt"),
        )

    def _save_session(self, session: AuthSession) -> None:
        self._store.set_json(SESSION_KEY, {
            "accessToken": session.access_token,
            "refreshToken": session.refresh_token,
            "expiresAt": session.expires_at,
        })
        self._library.clear()

    def _clear_session(self) -> None:
        self._store.remove(SESSION_KEY)
        self._library.clear()

    def _current_token(self) -> Optional[str]:
        s = self.session
        return s.access_token if s.is_authenticated(self._clock()) else None

    @property
    def is_authenticated(self) -> bool:
        return self.session.is_authenticated(self._clock())

    @property
    def state(self) -> AuthState:
        if self._pending is not None:
            return self._pending
        return AuthState.AUTHENTICATED if self.is_authenticated else AuthState.UNAUTHENTICATED

    def _session_from(self, payload: TokenPayload) -> AuthSession:
        return AuthSession(
            access_token=payload.access_token,
            refresh_token=payload.refresh_token,
            expires_at=self._clock() + payload.expires_in,
        )

    def authenticate(self, code: str) -> bool:
        """Exchange an authorization code for tokens.

        On failure the previous session, if any, is left as it was.
        """
        with self._lock:
            self._pending = AuthState.AUTHENTICATING
            try:
                data = self.client.execute(AUTH_MUTATION, {"code": code}, use_cache=False)
                payload = TokenPayload.model_validate(data.get("authenticate"))
            except (AnimeSyncError,) + _SHAPE_ERRORS as e:
                log.warning("AniList authentication failed: %s", e)
                raise AuthenticationFailed() from e
            finally:
                self._pending = None
            self._save_session(self._session_from(payload))
            log.info("Authenticated with AniList")
            return True

    def store_access_token(self, token: str) -> bool:
        """Implicit-grant path: a long-lived token with no refresh token."""
        if not token or not token.strip():
            raise ValueError("access token must not be empty")
        with self._lock:
            self._save_session(AuthSession(
                access_token=token.strip(),
                refresh_token=None,
                expires_at=self._clock() + IMPLICIT_TOKEN_LIFETIME,
            ))
        log.info("Stored AniList access token (implicit grant)")
        return True

    def refresh(self) -> bool:
        """Swap the refresh token for a new token triple.

        A failed refresh drops the session; the user has to log in again.
        """
        with self._lock:
            s = self.session
            refresh_token = s.refresh_token
            if not refresh_token:
                if not s.is_empty and s.is_expired(self._clock()):
                    self._clear_session()
                raise NoRefreshToken()
            self._pending = AuthState.REFRESHING
            try:
                data = self.client.execute(REFRESH_MUTATION, {"refreshToken": refresh_token}, use_cache=False)
                payload = TokenPayload.model_validate(data.get("refreshToken"))
            except (AnimeSyncError,) + _SHAPE_ERRORS as e:
                log.warning("AniList token refresh failed: %s", e)
                self._clear_session()
                raise TokenRefreshFailed() from e
            finally:
                self._pending = None
            self._save_session(self._session_from(payload))
            log.info("Refreshed AniList token")
            return True

    def logout(self) -> None:
        with self._lock:
            self._clear_session()
            self.matcher.clear()
        log.info("Logged out of AniList")

    def ensure_authenticated(self) -> AuthSession:
        """Return a live session, refreshing an expired one when possible."""
        with self._lock:
            s = self.session
            if s.is_authenticated(self._clock()):
                return s
            if s.access_token and s.refresh_token:
                self.refresh()
                return self.session
            if not s.is_empty:
                log.info("AniList session expired without a refresh token")
                self._clear_session()
            raise NotAuthenticated()

    # remote data

    def fetch_profile(self) -> RemoteUserProfile:
        self.ensure_authenticated()
        try:
            data = self.client.execute(VIEWER_QUERY, auth_required=True)
            return norm_profile_from_anilist(data)
        except NotAuthenticated:
            raise
        except (AnimeSyncError,) + _SHAPE_ERRORS as e:
            raise FailedToFetchProfile() from e

    def fetch_library(self, status: Optional[LibraryStatus] = None) -> List[RemoteLibraryItem]:
        """Fetch and reconcile the user's list; all or nothing."""
        self.ensure_authenticated()
        try:
            profile = self.fetch_profile()
            if status is None:
                data = self.client.execute(LIBRARY_QUERY, {"userId": profile.id}, auth_required=True)
            else:
                data = self.client.execute(LIBRARY_BY_STATUS_QUERY,
                                           {"userId": profile.id, "status": LibraryStatus(status).value},
                                           auth_required=True)
            items = norm_library_from_anilist(data)
        except NotAuthenticated:
            raise
        except (AnimeSyncError, ValueError) + _SHAPE_ERRORS as e:
            log.warning("AniList library fetch failed: %s", e)
            raise FailedToFetchLibrary() from e

        self._library[status] = items
        log.info("Fetched %d AniList library entries", len(items))
        return items

    def library_snapshot(self, status: Optional[LibraryStatus] = None) -> Optional[List[RemoteLibraryItem]]:
        """Last fetched library for `status` in this session, if any."""
        return self._library.get(status)

    def match_local_title(self, title: str) -> Optional[int]:
        return self.matcher.match(title)

    def _fetch_thumbnails_once(self, remote_id: int) -> List[EpisodeThumbnail]:
        data = self.client.execute(THUMBNAILS_QUERY, {"id": remote_id}, use_cache=False)
        return norm_thumbnails_from_anilist(data)

    def fetch_episode_thumbnails(self, remote_id: int) -> List[EpisodeThumbnail]:
        thumbs = self.retry.call(self._fetch_thumbnails_once, remote_id)
        log.info("Fetched %d thumbnails for AniList %d", len(thumbs), remote_id)
        return thumbs
