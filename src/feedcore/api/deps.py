"""Shared router dependencies."""

from fastapi import Request

from feedcore.ingestion.cached_api import CachedApi


def get_cached_api(request: Request) -> CachedApi:
    """The CachedApi owned by the application lifespan."""
    return request.app.state.cached_api
