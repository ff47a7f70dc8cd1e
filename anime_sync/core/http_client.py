"""HTTP client and network functions for anime-sync."""

from typing import Dict, Any

import requests

from .errors import AnimeSyncError, NetworkError, ServerError

# Constants
DEFAULT_TIMEOUT = 15
UA = "anime-sync/0.1"
SCHEMA = "1.0.0"


def _req(method: str, url: str, **kw) -> requests.Response:
    """Single request with a bounded timeout; transport failures become NetworkError."""
    timeout = kw.pop("timeout", DEFAULT_TIMEOUT)
    headers = {"User-Agent": UA, **kw.pop("headers", {})}

    try:
        return requests.request(method, url, timeout=timeout, headers=headers, **kw)
    except requests.Timeout as e:
        raise NetworkError(f"Timed out after {timeout}s: {url}") from e
    except requests.RequestException as e:
        raise NetworkError(f"Network error: {e}") from e


def http_get(url: str, **kw) -> requests.Response:
    return _req("GET", url, **kw)


def http_post(url: str, **kw) -> requests.Response:
    return _req("POST", url, **kw)


def fetch_bytes(url: str, **kw) -> bytes:
    """GET a binary resource; raises on non-2xx."""
    r = http_get(url, **kw)
    if not 200 <= r.status_code < 300:
        raise ServerError(r.status_code)
    return r.content


def err_payload(source: str, code: str, message: str) -> Dict[str, Any]:
    return {"schemaVersion": SCHEMA, "error": {"code": code, "message": message, "source": source}}


def err_from_exc(source: str, exc: Exception) -> Dict[str, Any]:
    """Map an exception to an error payload, keeping typed codes."""
    if isinstance(exc, NetworkError) and exc.is_timeout:
        return err_payload(source, "TIMEOUT", "Upstream timed out")
    if isinstance(exc, AnimeSyncError):
        return err_payload(source, exc.code, str(exc))
    if isinstance(exc, ValueError):
        return err_payload(source, "BAD_REQUEST", str(exc))
    return err_payload(source, "UNEXPECTED", str(exc))
