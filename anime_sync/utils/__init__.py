"""Utilities for anime-sync."""
