"""Data normalization functions for different API sources."""

import logging
from typing import Dict, Any, List, Optional

from ..models.anilist import (
    Media, MediaListEntry, LibraryResponse, ViewerResponse, MediaWithEpisodes,
)
from ..models.records import (
    LibraryStatus, RemoteLibraryItem, RemoteUserProfile, EpisodeThumbnail, TitleCandidate,
)
from ..models.types import CatalogItem, Detail, Episode

log = logging.getLogger(__name__)


# Content API (hianime-style JSON)

def norm_catalog_item(a: Dict[str, Any]) -> CatalogItem:
    eps = a.get("episodes") or {}
    return {
        "id": str(a.get("id")),
        "title": a.get("name") or a.get("title") or "",
        "imageURL": a.get("poster") or a.get("imageURL"),
        "episodeCounts": {"sub": eps.get("sub"), "dub": eps.get("dub")} if eps else None,
        "type": a.get("type"),
        "anilistId": a.get("anilistId"),
    }


def norm_detail(anime: Dict[str, Any]) -> Detail:
    info = anime["info"]
    stats = info.get("stats") or {}
    more = anime.get("moreInfo") or {}
    return {
        "id": str(info.get("id")),
        "title": info.get("name") or "",
        "imageURL": info.get("poster"),
        "description": info.get("description"),
        "type": stats.get("type"),
        "status": more.get("status"),
        "releaseDate": more.get("aired"),
        "genres": more.get("genres") or [],
        "rating": stats.get("rating"),
        "anilistId": info.get("anilistId"),
    }


def norm_episode(e: Dict[str, Any]) -> Episode:
    return {
        "episodeId": e["episodeId"],
        "number": int(e["number"]),
        "title": e.get("title"),
        "isFiller": e.get("isFiller"),
    }


# AniList

def _dedupe(titles: List[Optional[str]]) -> List[str]:
    out: List[str] = []
    for t in titles:
        if t and t not in out:
            out.append(t)
    return out


def norm_candidate(m: Dict[str, Any]) -> Optional[TitleCandidate]:
    media = Media.model_validate(m)
    if media.id is None:
        return None
    return TitleCandidate(
        remote_id=media.id,
        romaji=media.title.romaji,
        english=media.title.english,
        native=media.title.native,
        synonyms=[s for s in media.synonyms if s],
    )


def norm_library_entry(entry: MediaListEntry) -> Optional[RemoteLibraryItem]:
    """One list entry -> RemoteLibraryItem, or None when it lacks identity."""
    media = entry.media
    if media is None or media.id is None or not media.title.romaji:
        return None
    try:
        status = LibraryStatus(entry.status)
    except ValueError:
        log.debug("Skipping entry %s with status %r", entry.id, entry.status)
        return None
    t = media.title
    return RemoteLibraryItem(
        remote_id=media.id,
        title=t.english or t.romaji,
        local_title_candidates=_dedupe([t.romaji, t.english, t.native, *media.synonyms]),
        status=status,
        progress=entry.progress or 0,
        total_episodes=media.episodes,
        score=entry.score,
        entry_id=entry.id or 0,
        image_url=media.cover_image.large if media.cover_image else None,
    )


def norm_library_from_anilist(data: Dict[str, Any]) -> List[RemoteLibraryItem]:
    """Parse a MediaListCollection payload. Raises pydantic.ValidationError on shape mismatch."""
    resp = LibraryResponse.model_validate(data)
    items: List[RemoteLibraryItem] = []
    for lst in resp.collection.lists:
        if lst is None:
            continue
        for entry in lst.entries:
            if entry is None:
                continue
            item = norm_library_entry(entry)
            if item is not None:
                items.append(item)
    return items


def norm_profile_from_anilist(data: Dict[str, Any]) -> RemoteUserProfile:
    v = ViewerResponse.model_validate(data).viewer
    anime = v.statistics.anime if v.statistics and v.statistics.anime else None
    return RemoteUserProfile(
        id=v.id,
        name=v.name,
        avatar_url=v.avatar.large if v.avatar else None,
        anime_count=(anime.count if anime else None) or 0,
        episodes_watched=(anime.episodes_watched if anime else None) or 0,
        mean_score=anime.mean_score if anime else None,
    )


def norm_thumbnails_from_anilist(data: Dict[str, Any]) -> List[EpisodeThumbnail]:
    """Streaming episodes with a thumbnail; entries without one are dropped."""
    raw = data.get("Media")
    if not raw:
        return []
    media = MediaWithEpisodes.model_validate(raw)
    out: List[EpisodeThumbnail] = []
    for ep in media.streaming_episodes or []:
        if ep is None or not ep.thumbnail:
            continue
        out.append(EpisodeThumbnail(thumbnail=ep.thumbnail, title=ep.title, site=ep.site, url=ep.url))
    return out
