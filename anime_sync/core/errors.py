"""Error taxonomy for anime-sync."""

from typing import List, Optional

import requests

RETRY_STATUS_CODES = {429, 500, 502, 503, 504}


class AnimeSyncError(Exception):
    """Base class for every error raised by this package."""

    code = "UNEXPECTED"
    message = "Unexpected error"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class Cancelled(AnimeSyncError):
    code = "CANCELLED"
    message = "Operation was superseded"


# Content API

class ContentAPIError(AnimeSyncError):
    pass


class NotConfigured(ContentAPIError):
    code = "NOT_CONFIGURED"
    message = "API URL not configured"


class InvalidEndpoint(ContentAPIError):
    code = "INVALID_ENDPOINT"
    message = "Invalid API endpoint"


class InvalidEpisodeId(ContentAPIError):
    code = "BAD_REQUEST"
    message = "Invalid episode ID format"


class QueryTooShort(ContentAPIError):
    code = "BAD_REQUEST"
    message = "Search query must be at least 3 characters"


SearchQueryTooShort = QueryTooShort


class ServerError(ContentAPIError):
    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.server_message = message
        super().__init__(message or f"Server error with code: {status_code}")

    @property
    def code(self) -> str:
        return f"UPSTREAM_{self.status_code}"

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class NetworkError(ContentAPIError):
    code = "NETWORK"
    message = "Network error"

    @property
    def is_timeout(self) -> bool:
        return isinstance(self.__cause__, requests.Timeout)


class DecodingError(ContentAPIError):
    code = "DECODING"
    message = "Failed to decode response"


# GraphQL

class InvalidResponse(AnimeSyncError):
    code = "INVALID_RESPONSE"
    message = "Invalid response from AniList"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class GraphQLQueryError(AnimeSyncError):
    code = "GRAPHQL_ERRORS"

    def __init__(self, messages: List[str], status_code: Optional[int] = None):
        self.messages = messages
        self.status_code = status_code
        super().__init__("GraphQL errors: " + "; ".join(messages))

    @property
    def is_not_found(self) -> bool:
        if self.status_code == 404:
            return True
        return any(m.strip().rstrip(".").lower() == "not found" for m in self.messages)


# AniList account

class AniListError(AnimeSyncError):
    pass


class NotAuthenticated(AniListError):
    code = "NOT_AUTHENTICATED"
    message = "Not authenticated with AniList"


class AuthenticationFailed(AniListError):
    code = "AUTHENTICATION_FAILED"
    message = "Failed to authenticate with AniList"


class TokenRefreshFailed(AniListError):
    code = "TOKEN_REFRESH_FAILED"
    message = "Failed to refresh AniList token"


class NoRefreshToken(AniListError):
    code = "NO_REFRESH_TOKEN"
    message = "No refresh token available"


class FailedToFetchLibrary(AniListError):
    code = "FETCH_LIBRARY_FAILED"
    message = "Failed to fetch library from AniList"


class FailedToFetchProfile(AniListError):
    code = "FETCH_PROFILE_FAILED"
    message = "Failed to fetch profile from AniList"


def is_transient(exc: BaseException) -> bool:
    """True for failures worth retrying: transport errors and 429/5xx."""
    if isinstance(exc, NetworkError):
        return True
    if isinstance(exc, (ServerError, InvalidResponse, GraphQLQueryError)):
        return exc.status_code in RETRY_STATUS_CODES
    if isinstance(exc, requests.HTTPError):
        resp = getattr(exc, "response", None)
        return resp is not None and resp.status_code in RETRY_STATUS_CODES
    return isinstance(exc, (requests.ConnectionError, requests.Timeout))
