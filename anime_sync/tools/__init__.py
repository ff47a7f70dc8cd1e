"""MCP tools for anime-sync."""

from . import library
from . import cache_tools
from . import anilist
from . import sync
from . import meta

__all__ = [
    "library",
    "cache_tools",
    "anilist",
    "sync",
    "meta",
]
