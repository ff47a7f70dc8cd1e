"""anime-sync package.

Exports the FastMCP app factory `create_app` and the services composition root.
"""
from .server import create_app
from .app import Services, build_services

__all__ = ["create_app", "Services", "build_services"]
