# SPDX-License-Identifier: MIT
"""
anime-sync server entrypoint.

Builds the services once and wires FastMCP with all tool modules under
anime_sync/tools/.
"""

from __future__ import annotations

from typing import Optional

from mcp.server.fastmcp import FastMCP

from .app import Services, build_services
from .config import Settings
from .utils.logger import setup_logging

# Import tool modules (each provides register_tools(mcp, services))
from .tools import library, cache_tools, anilist, sync, meta


def create_app(settings: Optional[Settings] = None, services: Optional[Services] = None) -> FastMCP:
    services = services or build_services(settings)
    mcp = FastMCP("anime-sync")

    # Register tools from each module
    library.register_tools(mcp, services)
    cache_tools.register_tools(mcp, services)
    anilist.register_tools(mcp, services)
    sync.register_tools(mcp, services)
    meta.register_tools(mcp, services)

    return mcp


def main() -> None:
    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_file)
    app = create_app(settings)
    app.run()


if __name__ == "__main__":
    main()
