"""Offline sync tools for anime-sync."""

from ..core.http_client import err_from_exc, SCHEMA
from .library import record_out


def register_tools(mcp, services):
    sync = services.sync

    @mcp.tool()
    def offline_snapshot():
        """Mirror bookmarks and watch progress for offline start-up."""
        return {"schemaVersion": SCHEMA, "mirrored": sync.offline_snapshot()}

    @mcp.tool()
    def offline_status():
        """Reachability probe (3s). A heuristic: 'online' does not guarantee the API is up."""
        offline = sync.is_offline()
        out = {"schemaVersion": SCHEMA, "offline": offline}
        if offline:
            boot = sync.offline_bootstrap()
            out["bookmarks"] = boot["bookmarks"]
            out["progress"] = [record_out(r) for r in boot["progress"]]
        return out

    @mcp.tool()
    def checkpoint():
        """Foreground maintenance: cleanup, mirror, sweep."""
        res = sync.checkpoint()
        res["schemaVersion"] = SCHEMA
        return res

    @mcp.tool()
    def load_show(show_id: str):
        """Show details + episodes, from the API or the offline cache."""
        try:
            entry = sync.load_show(show_id)
            if entry is None:
                return {"schemaVersion": SCHEMA, "showId": show_id, "status": "NOT_FOUND"}
            return {"schemaVersion": SCHEMA, "result": entry}
        except Exception as e:
            return err_from_exc("content", e)
