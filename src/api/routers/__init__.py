"""API routers."""

from api.routers import outreach, search

__all__ = ["search", "outreach"]
