"""AniList account and library tools for anime-sync."""

from dataclasses import asdict
from typing import Optional

from ..core.http_client import err_from_exc, SCHEMA
from ..models.records import LibraryStatus


def register_tools(mcp, services):
    anilist = services.anilist

    @mcp.tool()
    def anilist_status():
        """Authentication state of the AniList session."""
        s = anilist.session
        return {
            "schemaVersion": SCHEMA,
            "state": anilist.state.value,
            "authenticated": anilist.is_authenticated,
            "expiresAt": s.expires_at,
            "canRefresh": bool(s.refresh_token),
        }

    @mcp.tool()
    def anilist_store_token(access_token: str):
        """Store a token obtained through the implicit-grant flow."""
        try:
            anilist.store_access_token(access_token)
            return {"schemaVersion": SCHEMA, "authenticated": anilist.is_authenticated}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_authenticate(code: str):
        """Exchange an OAuth authorization code for tokens."""
        try:
            anilist.authenticate(code)
            return {"schemaVersion": SCHEMA, "authenticated": True}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_refresh():
        try:
            anilist.refresh()
            return {"schemaVersion": SCHEMA, "authenticated": True}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_logout():
        anilist.logout()
        return {"schemaVersion": SCHEMA, "authenticated": False}

    @mcp.tool()
    def anilist_profile():
        try:
            return {"schemaVersion": SCHEMA, "result": asdict(anilist.fetch_profile())}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_library(status: Optional[str] = None):
        """
        The user's AniList anime list.
        status: CURRENT, PLANNING, COMPLETED, DROPPED, PAUSED or REPEATING (optional).
        """
        try:
            st = LibraryStatus(status.upper()) if status else None
            items = anilist.fetch_library(st)
            return {"schemaVersion": SCHEMA, "status": status, "count": len(items),
                    "results": [i.to_dict() for i in items]}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_match_title(title: str):
        """Resolve a local show title to an AniList id."""
        try:
            remote_id = anilist.match_local_title(title)
            if remote_id is None:
                return {"schemaVersion": SCHEMA, "query": title, "status": "NOT_FOUND"}
            return {"schemaVersion": SCHEMA, "query": title, "anilistId": remote_id}
        except Exception as e:
            return err_from_exc("anilist", e)

    @mcp.tool()
    def anilist_thumbnails(anilist_id: int):
        """Episode thumbnails from AniList streaming data."""
        try:
            thumbs = anilist.fetch_episode_thumbnails(anilist_id)
            return {"schemaVersion": SCHEMA, "anilistId": anilist_id,
                    "results": [asdict(t) for t in thumbs]}
        except Exception as e:
            return err_from_exc("anilist", e)
