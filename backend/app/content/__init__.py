"""Bonus content entitlement package."""

from .service import ContentListing, ContentService

__all__ = ["ContentListing", "ContentService"]
