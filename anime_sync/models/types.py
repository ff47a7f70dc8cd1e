"""Type definitions for anime-sync."""

from typing import TypedDict, Optional, List, Dict


class EpisodeCounts(TypedDict):
    sub: Optional[int]
    dub: Optional[int]


class CatalogItem(TypedDict, total=False):
    id: str                        # provider-assigned, stable
    title: str
    imageURL: Optional[str]
    episodeCounts: Optional[EpisodeCounts]
    type: Optional[str]
    anilistId: Optional[int]


class Detail(TypedDict, total=False):
    id: str
    title: str
    imageURL: Optional[str]
    description: Optional[str]
    type: Optional[str]
    status: Optional[str]
    releaseDate: Optional[str]
    genres: List[str]
    rating: Optional[str]
    anilistId: Optional[int]


class Episode(TypedDict):
    episodeId: str                 # e.g. "show-slug?ep=1234"
    number: int
    title: Optional[str]
    isFiller: Optional[bool]


class OfflineCacheEntry(TypedDict):
    id: str
    detail: Detail
    episodes: List[Episode]
    thumbnailURLs: Dict[str, str]  # episode number (as str) -> URL
    cachedAt: float


class CacheStats(TypedDict):
    totalBytes: int
    showCount: int
    imageCount: int
    maxBytes: int
    overLimit: bool


class Sources(TypedDict, total=False):
    sources: List[Dict[str, str]]
    tracks: List[Dict[str, str]]
    headers: Dict[str, str]
    intro: Optional[Dict[str, int]]
    outro: Optional[Dict[str, int]]
