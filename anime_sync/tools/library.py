"""Bookmark and watch-progress tools for anime-sync."""

from typing import Optional, Dict, Any

from ..core.http_client import err_from_exc, SCHEMA
from ..models.records import WatchProgressRecord
from ..models.types import CatalogItem


def record_out(r: WatchProgressRecord) -> Dict[str, Any]:
    d = r.to_dict()
    d["isCompleted"] = r.is_completed
    d["progressPercentage"] = round(r.progress_percentage, 4)
    d["formattedPosition"] = r.formatted_position
    return d


def register_tools(mcp, services):
    bookmarks = services.bookmarks
    progress = services.progress

    @mcp.tool()
    def bookmark_toggle(id: str, title: str, image_url: Optional[str] = None,
                        sub: Optional[int] = None, dub: Optional[int] = None):
        """Bookmark a show, or remove the bookmark if it already exists."""
        try:
            item: CatalogItem = {"id": id, "title": title, "imageURL": image_url,
                                 "episodeCounts": {"sub": sub, "dub": dub} if sub is not None or dub is not None else None}
            added = bookmarks.toggle(item)
            return {"schemaVersion": SCHEMA, "id": id, "bookmarked": added}
        except Exception as e:
            return err_from_exc("bookmarks", e)

    @mcp.tool()
    def bookmark_list():
        """All bookmarks in insertion order."""
        items = bookmarks.list()
        return {"schemaVersion": SCHEMA, "count": len(items), "results": items}

    @mcp.tool()
    def bookmark_contains(id: str):
        return {"schemaVersion": SCHEMA, "id": id, "bookmarked": bookmarks.contains(id)}

    @mcp.tool()
    def progress_save(show_id: str, episode_id: str, episode_number: int,
                      position: float, duration: float, title: str,
                      thumbnail_url: Optional[str] = None):
        """Record the playback position of an episode."""
        try:
            r = progress.save_progress(show_id, episode_id, episode_number, position, duration,
                                       title, thumbnail_url)
            return {"schemaVersion": SCHEMA, "result": record_out(r)}
        except Exception as e:
            return err_from_exc("progress", e)

    @mcp.tool()
    def progress_get(show_id: str, episode_id: str):
        r = progress.get_progress(show_id, episode_id)
        if r is None:
            return {"schemaVersion": SCHEMA, "status": "NOT_FOUND"}
        return {"schemaVersion": SCHEMA, "result": record_out(r)}

    @mcp.tool()
    def continue_watching():
        """Most recently watched episode per show, newest first (max 20)."""
        items = [record_out(r) for r in progress.continue_watching()]
        return {"schemaVersion": SCHEMA, "count": len(items), "results": items}

    @mcp.tool()
    def progress_remove(show_id: str, episode_id: str):
        return {"schemaVersion": SCHEMA, "removed": progress.remove_progress(show_id, episode_id)}

    @mcp.tool()
    def progress_cleanup():
        """Drop finished episodes from continue watching."""
        return {"schemaVersion": SCHEMA, "removed": progress.cleanup_finished_episodes()}
