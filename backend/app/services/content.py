"""Application wiring for the content entitlement service."""
from __future__ import annotations

from functools import lru_cache

from ..content import ContentService
from .store import get_entitlement_store


@lru_cache(maxsize=1)
def get_content_service() -> ContentService:
    return ContentService(store=get_entitlement_store())


__all__ = ["get_content_service"]
