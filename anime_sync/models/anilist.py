"""Validated shapes of AniList GraphQL responses.

Every field is optional with a documented fallback so a sparse payload still
parses; only the top-level containers are required.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class _Loose(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class MediaTitle(_Loose):
    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None


class CoverImage(_Loose):
    large: Optional[str] = None
    medium: Optional[str] = None


class Media(_Loose):
    id: Optional[int] = None
    title: MediaTitle = Field(default_factory=MediaTitle)
    synonyms: List[str] = Field(default_factory=list)
    episodes: Optional[int] = None
    format: Optional[str] = None
    status: Optional[str] = None
    cover_image: Optional[CoverImage] = Field(default=None, alias="coverImage")

    @field_validator("title", mode="before")
    @classmethod
    def _null_title(cls, v):
        return {} if v is None else v

    @field_validator("synonyms", mode="before")
    @classmethod
    def _null_synonyms(cls, v):
        return [s for s in v if s] if v else []


class MediaListEntry(_Loose):
    id: Optional[int] = None              # -> 0
    media_id: Optional[int] = Field(default=None, alias="mediaId")
    status: Optional[str] = None          # unknown/missing -> entry skipped
    score: Optional[float] = None         # -> None
    progress: Optional[int] = None        # -> 0
    media: Optional[Media] = None         # missing -> entry skipped


class MediaList(_Loose):
    entries: List[Optional[MediaListEntry]] = Field(default_factory=list)


class MediaListCollection(_Loose):
    lists: List[Optional[MediaList]]


class LibraryResponse(_Loose):
    collection: MediaListCollection = Field(alias="MediaListCollection")


class TokenPayload(_Loose):
    access_token: str
    refresh_token: str
    expires_in: int


class Avatar(_Loose):
    large: Optional[str] = None
    medium: Optional[str] = None


class AnimeStatistics(_Loose):
    count: Optional[int] = None               # -> 0
    episodes_watched: Optional[int] = Field(default=None, alias="episodesWatched")  # -> 0
    mean_score: Optional[float] = Field(default=None, alias="meanScore")


class Statistics(_Loose):
    anime: Optional[AnimeStatistics] = None


class Viewer(_Loose):
    id: int
    name: str
    avatar: Optional[Avatar] = None
    statistics: Optional[Statistics] = None


class ViewerResponse(_Loose):
    viewer: Viewer = Field(alias="Viewer")


class StreamingEpisode(_Loose):
    thumbnail: Optional[str] = None
    title: Optional[str] = None
    site: Optional[str] = None
    url: Optional[str] = None


class MediaWithEpisodes(_Loose):
    streaming_episodes: Optional[List[Optional[StreamingEpisode]]] = Field(
        default=None, alias="streamingEpisodes")
    episodes: Optional[int] = None
    format: Optional[str] = None
