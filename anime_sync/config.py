"""Runtime settings, read from the environment."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core.graphql import ANILIST_GQL

DEFAULT_DATA_DIR = "~/.anime-sync"
DEFAULT_PROBE_URL = "https://www.apple.com"


@dataclass
class Settings:
    data_dir: Path = Path(DEFAULT_DATA_DIR).expanduser()
    api_base_url: Optional[str] = None
    anilist_endpoint: str = ANILIST_GQL
    probe_url: str = DEFAULT_PROBE_URL
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def state_dir(self) -> Path:
        return self.data_dir / "state"

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "OfflineCache"

    @classmethod
    def from_env(cls, env=None) -> "Settings":
        env = os.environ if env is None else env
        return cls(
            data_dir=Path(env.get("ANIME_SYNC_DATA_DIR", DEFAULT_DATA_DIR)).expanduser(),
            api_base_url=env.get("ANIME_SYNC_API_URL") or None,
            anilist_endpoint=env.get("ANIME_SYNC_ANILIST_URL", ANILIST_GQL),
            probe_url=env.get("ANIME_SYNC_PROBE_URL", DEFAULT_PROBE_URL),
            log_level=env.get("ANIME_SYNC_LOG_LEVEL", "INFO").upper(),
            log_file=env.get("ANIME_SYNC_LOG_FILE") or None,
        )
