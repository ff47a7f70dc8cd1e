"""Core functionality for anime-sync."""

from .kv_store import KeyValueStore, FileKeyValueStore, MemoryKeyValueStore
from .graphql import GraphQLClient
from .content_api import ContentAPI, validate_base_url
from .http_client import http_get, http_post, err_payload, err_from_exc
from .retry import RetryPolicy
from .cancellation import CancellationToken, RequestSlots

__all__ = [
    "KeyValueStore", "FileKeyValueStore", "MemoryKeyValueStore",
    "GraphQLClient", "ContentAPI", "validate_base_url",
    "http_get", "http_post", "err_payload", "err_from_exc",
    "RetryPolicy", "CancellationToken", "RequestSlots",
]
