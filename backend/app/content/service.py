"""Gates bonus content by subscription status."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from ..exceptions import ContentNotFound, SubscriptionRequired
from ..store.base import EntitlementStore
from ..store.models import BonusContent, SubscriptionStatus

logger = logging.getLogger(__name__)


class ContentListing(BaseModel):
    """Content visible to a caller along with the entitlement that shaped it."""

    has_subscription: bool
    items: List[BonusContent]

    model_config = ConfigDict(frozen=True)


@dataclass
class ContentService:
    store: EntitlementStore
    featured_limit: int = 3
    latest_limit: int = 5

    def has_active_subscription(self, user_id: int) -> bool:
        return self.store.find_subscription(user_id, [SubscriptionStatus.ACTIVE]) is not None

    def list_visible(self, user_id: int, category: Optional[str] = None) -> ContentListing:
        subscribed = self.has_active_subscription(user_id)
        items = self.store.list_content(
            category=category,
            include_subscriber_only=subscribed,
        )
        return ContentListing(has_subscription=subscribed, items=list(items))

    def get_one(self, user_id: int, content_id: int) -> BonusContent:
        item = self.store.get_content(content_id)
        if item is None:
            raise ContentNotFound(detail={"content_id": content_id})
        if item.subscriber_only and not self.has_active_subscription(user_id):
            logger.warning("Denied subscriber content %s to user %s", content_id, user_id)
            raise SubscriptionRequired(detail={"requires_subscription": True})
        return item

    def featured(self, limit: Optional[int] = None) -> Sequence[BonusContent]:
        return self.store.list_content(
            featured_only=True,
            limit=limit if limit is not None else self.featured_limit,
        )

    def latest(self, limit: Optional[int] = None) -> Sequence[BonusContent]:
        return self.store.list_content(limit=limit if limit is not None else self.latest_limit)


__all__ = ["ContentListing", "ContentService"]
