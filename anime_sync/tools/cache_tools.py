"""Cache management tools for anime-sync."""

from ..core.http_client import SCHEMA


def register_tools(mcp, services):
    cache = services.cache
    gql = services.anilist.client

    @mcp.tool()
    def cache_stats():
        """Offline cache size and entry counts."""
        info = dict(cache.stats())
        info["schemaVersion"] = SCHEMA
        return info

    @mcp.tool()
    def cache_sweep():
        """Delete offline cache entries older than 7 days."""
        return {"schemaVersion": SCHEMA, "evicted": cache.sweep_expired()}

    @mcp.tool()
    def cache_clear():
        """Wipe the whole offline cache."""
        cache.clear_all()
        return {"schemaVersion": SCHEMA, "cleared": True}

    @mcp.tool()
    def cache_get_show(show_id: str):
        entry = cache.get(show_id)
        if entry is None:
            return {"schemaVersion": SCHEMA, "showId": show_id, "status": "NOT_FOUND"}
        return {"schemaVersion": SCHEMA, "result": entry}

    @mcp.tool()
    def gql_cache_info():
        """Simple stats for the AniList GraphQL cache."""
        info = gql.cache_info()
        info["schemaVersion"] = SCHEMA
        return info

    @mcp.tool()
    def gql_cache_clear():
        """Clear the AniList GraphQL cache."""
        return {"schemaVersion": SCHEMA, "cleared": gql.cache_clear()}
