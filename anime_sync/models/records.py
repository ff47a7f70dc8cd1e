"""Record types with derived state: progress, auth session, remote library."""

import time
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, List, Optional

COMPLETION_RATIO = 0.9
PROGRESS_EPSILON = 0.5  # seconds of tolerated overshoot before clamping


@dataclass
class WatchProgressRecord:
    show_id: str
    episode_id: str
    episode_number: int
    position_seconds: float
    duration_seconds: float
    last_updated: float
    title: str
    thumbnail_url: Optional[str] = None

    @property
    def key(self) -> str:
        return progress_key(self.show_id, self.episode_id)

    @property
    def is_completed(self) -> bool:
        return self.position_seconds >= COMPLETION_RATIO * self.duration_seconds

    @property
    def progress_percentage(self) -> float:
        return min(self.position_seconds / max(1.0, self.duration_seconds), 1.0)

    @property
    def formatted_position(self) -> str:
        minutes = int(self.position_seconds // 60)
        seconds = int(self.position_seconds % 60)
        return f"{minutes}:{seconds:02d}"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "WatchProgressRecord":
        return cls(
            show_id=str(d["show_id"]),
            episode_id=str(d["episode_id"]),
            episode_number=int(d["episode_number"]),
            position_seconds=float(d["position_seconds"]),
            duration_seconds=float(d["duration_seconds"]),
            last_updated=float(d["last_updated"]),
            title=d.get("title") or "",
            thumbnail_url=d.get("thumbnail_url"),
        )


def progress_key(show_id: str, episode_id: str) -> str:
    return f"{show_id}\x1f{episode_id}"


@dataclass
class AuthSession:
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    expires_at: Optional[float] = None

    def is_authenticated(self, now: Optional[float] = None) -> bool:
        if not self.access_token or self.expires_at is None:
            return False
        return (time.time() if now is None else now) < self.expires_at

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.expires_at is None:
            return True
        return (time.time() if now is None else now) >= self.expires_at

    @property
    def is_empty(self) -> bool:
        return not self.access_token and not self.refresh_token and self.expires_at is None


class AuthState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class LibraryStatus(str, Enum):
    CURRENT = "CURRENT"
    PLANNING = "PLANNING"
    COMPLETED = "COMPLETED"
    DROPPED = "DROPPED"
    PAUSED = "PAUSED"
    REPEATING = "REPEATING"

    @property
    def display_name(self) -> str:
        return _STATUS_NAMES[self]


_STATUS_NAMES = {
    LibraryStatus.CURRENT: "Watching",
    LibraryStatus.PLANNING: "Plan to Watch",
    LibraryStatus.COMPLETED: "Completed",
    LibraryStatus.DROPPED: "Dropped",
    LibraryStatus.PAUSED: "Paused",
    LibraryStatus.REPEATING: "Rewatching",
}


@dataclass
class RemoteLibraryItem:
    remote_id: int
    title: str                                 # English, else romaji
    local_title_candidates: List[str]
    status: LibraryStatus
    progress: int = 0
    total_episodes: Optional[int] = None
    score: Optional[float] = None
    entry_id: int = 0
    image_url: Optional[str] = None

    @property
    def progress_text(self) -> str:
        if self.total_episodes:
            return f"{self.progress}/{self.total_episodes}"
        return str(self.progress)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d["status"] = self.status.value
        d["statusName"] = self.status.display_name
        d["progressText"] = self.progress_text
        return d


@dataclass
class RemoteUserProfile:
    id: int
    name: str
    avatar_url: Optional[str] = None
    anime_count: int = 0
    episodes_watched: int = 0
    mean_score: Optional[float] = None


@dataclass
class EpisodeThumbnail:
    thumbnail: str
    title: Optional[str] = None
    site: Optional[str] = None
    url: Optional[str] = None


@dataclass
class TitleCandidate:
    remote_id: int
    romaji: Optional[str] = None
    english: Optional[str] = None
    native: Optional[str] = None
    synonyms: List[str] = field(default_factory=list)

    def all_titles(self) -> List[str]:
        return [t for t in (self.romaji, self.english, self.native, *self.synonyms) if t]
