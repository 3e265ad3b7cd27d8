"""API schemas for bonus content endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..content import ContentListing
from ..store.models import BonusContent, ContentType


class ContentOut(BaseModel):
    id: int
    title: str
    description: str
    content_type: ContentType = Field(alias="contentType")
    content_url: str = Field(alias="contentUrl")
    thumbnail_url: Optional[str] = Field(default=None, alias="thumbnailUrl")
    duration: Optional[str] = None
    category: str
    is_featured: bool = Field(alias="isFeatured")
    subscriber_only: bool = Field(alias="subscriberOnly")
    published_at: datetime = Field(alias="publishedAt")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_content(cls, item: BonusContent) -> "ContentOut":
        return cls(**item.model_dump())


class ContentListResponse(BaseModel):
    has_subscription: bool = Field(alias="hasSubscription")
    content: List[ContentOut] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_listing(cls, listing: ContentListing) -> "ContentListResponse":
        return cls(
            has_subscription=listing.has_subscription,
            content=[ContentOut.from_content(item) for item in listing.items],
        )
