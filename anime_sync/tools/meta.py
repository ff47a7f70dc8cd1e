"""Metadata and help tools for anime-sync."""

from importlib.metadata import version, PackageNotFoundError

from ..core.content_api import API_TIMEOUT
from ..core.graphql import ANILIST_GQL
from ..stores.content_cache import MAX_CACHE_AGE, MAX_CACHE_BYTES
from ..stores.watch_progress import CONTINUE_WATCHING_LIMIT

# Version info
try:
    __VERSION__ = version("anime-sync")   # package name in pyproject
except PackageNotFoundError:
    __VERSION__ = "0.0.0+dev"


def health():
    """Health check endpoint."""
    return {"schemaVersion": "1.0.0", "ok": True, "sources": ["anilist", "content"]}


def help():
    """Use cases and invocation examples (for hosts and users)."""
    return {
        "schemaVersion": "1.0.0",
        "name": "anime-sync",
        "version": __VERSION__,
        "summary": "Bookmarks, watch progress, offline cache and AniList sync for an anime client.",
        "features": [
            "bookmark_toggle / bookmark_list / bookmark_contains: saved shows",
            "progress_save / progress_get / progress_remove: per-episode playback position",
            "continue_watching: latest episode per show (max 20)",
            "progress_cleanup: hide finished episodes after 24h",
            "cache_stats / cache_sweep / cache_clear / cache_get_show: offline cache (7 days)",
            "anilist_store_token / anilist_authenticate / anilist_refresh / anilist_logout",
            "anilist_profile / anilist_library(status): remote list",
            "anilist_match_title: local title -> AniList id",
            "anilist_thumbnails: episode thumbnails",
            "offline_snapshot / offline_status / checkpoint / load_show",
        ],
        "examples": [
            {"title": "Continue watching", "prompt": "anime-sync__continue_watching {}"},
            {"title": "Save progress", "prompt": "anime-sync__progress_save {\"show_id\":\"one-piece-100\",\"episode_id\":\"one-piece-100?ep=2142\",\"episode_number\":1,\"position\":312.5,\"duration\":1420,\"title\":\"One Piece\"}"},
            {"title": "Match title", "prompt": "anime-sync__anilist_match_title {\"title\":\"Attack on Titan Season 2\"}"},
            {"title": "Library", "prompt": "anime-sync__anilist_library {\"status\":\"CURRENT\"}"},
        ],
        "notes": [
            "Always returns schemaVersion, on success and on error.",
            "AniList tools other than match/thumbnails need a stored token.",
            "Show ids are the content provider's ids; AniList ids are integers.",
        ],
    }


def about():
    """About information for the service."""
    return {
        "schemaVersion": "1.0.0",
        "name": "anime-sync",
        "version": __VERSION__,
        "endpoints": {"anilist": ANILIST_GQL},
        "limits": {
            "continueWatching": CONTINUE_WATCHING_LIMIT,
            "cacheMaxAgeSec": MAX_CACHE_AGE,
            "cacheMaxBytes": MAX_CACHE_BYTES,
            "timeoutSec": API_TIMEOUT,
        },
    }


def register_tools(mcp, services=None):
    """Register meta/help tools with FastMCP."""
    mcp.tool()(health)
    mcp.tool()(help)
    mcp.tool()(about)
