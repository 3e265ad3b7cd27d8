"""Initial plan and bonus content catalog."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Tuple

from .base import EntitlementStore
from .models import BonusContent, ContentType, SubscriptionPlan

logger = logging.getLogger(__name__)


PLAN_SEED: Tuple[Dict[str, Any], ...] = (
    {
        "name": "Relaxation",
        "description": "Perfect for monthly self-care and stress relief",
        "price_monthly": Decimal("89.00"),
        "massages_per_month": 1,
        "duration_minutes": 60,
        "features": [
            "1 x 60-minute massage per month",
            "Access to bonus wellness content",
            "Priority booking",
            "10% off additional services",
        ],
    },
    {
        "name": "Wellness",
        "description": "Ideal for active recovery and ongoing wellness",
        "price_monthly": Decimal("159.00"),
        "massages_per_month": 2,
        "duration_minutes": 60,
        "features": [
            "2 x 60-minute massages per month",
            "Access to all bonus content",
            "Priority booking",
            "15% off additional services",
            "Free aromatherapy upgrade",
        ],
    },
    {
        "name": "Rejuvenation",
        "description": "Complete therapeutic care for chronic pain relief",
        "price_monthly": Decimal("249.00"),
        "massages_per_month": 4,
        "duration_minutes": 60,
        "features": [
            "4 x 60-minute massages per month",
            "Access to all bonus content",
            "Same-day booking when available",
            "20% off additional services",
            "Free aromatherapy & hot stones",
            "Monthly wellness consultation",
        ],
    },
)

# (days before now, fields)
CONTENT_SEED: Tuple[Tuple[int, Dict[str, Any]], ...] = (
    (
        0,
        {
            "title": "Morning Stretch Routine for Back Pain",
            "description": (
                "A gentle 10-minute stretching routine to start your day and "
                "alleviate lower back tension."
            ),
            "content_type": ContentType.VIDEO,
            "content_url": "https://example.com/videos/morning-stretch",
            "thumbnail_url": "https://images.unsplash.com/photo-1544367567-0f2fcb009e0b?w=400",
            "duration": "10:23",
            "category": "wellness",
            "is_featured": True,
            "subscriber_only": False,
        },
    ),
    (
        0,
        {
            "title": "Understanding Ayurvedic Body Types",
            "description": (
                "Learn about Vata, Pitta, and Kapha doshas and how they influence "
                "your wellness journey."
            ),
            "content_type": ContentType.VIDEO,
            "content_url": "https://example.com/videos/ayurveda-doshas",
            "thumbnail_url": "https://images.unsplash.com/photo-1600334129128-685c5582fd35?w=400",
            "duration": "15:47",
            "category": "ayurveda",
            "is_featured": True,
            "subscriber_only": True,
        },
    ),
    (
        7,
        {
            "title": "Self-Massage Techniques for Neck Tension",
            "description": "Professional techniques you can use at home between appointments.",
            "content_type": ContentType.VIDEO,
            "content_url": "https://example.com/videos/neck-self-massage",
            "thumbnail_url": "https://images.unsplash.com/photo-1519823551278-64ac92734fb1?w=400",
            "duration": "8:15",
            "category": "technique",
            "is_featured": False,
            "subscriber_only": True,
        },
    ),
    (
        14,
        {
            "title": "Guided Meditation for Deep Relaxation",
            "description": "A calming 20-minute guided meditation to reduce stress and promote healing.",
            "content_type": ContentType.AUDIO,
            "content_url": "https://example.com/audio/deep-relaxation",
            "thumbnail_url": "https://images.unsplash.com/photo-1506905925346-21bda4d32df4?w=400",
            "duration": "20:00",
            "category": "meditation",
            "is_featured": False,
            "subscriber_only": True,
        },
    ),
    (
        21,
        {
            "title": "The Benefits of Regular Massage Therapy",
            "description": (
                "Discover the science-backed benefits of incorporating massage into "
                "your wellness routine."
            ),
            "content_type": ContentType.ARTICLE,
            "content_url": "https://example.com/articles/massage-benefits",
            "thumbnail_url": "https://images.unsplash.com/photo-1600334089648-b0d9d3028eb2?w=400",
            "duration": "5 min read",
            "category": "wellness",
            "is_featured": False,
            "subscriber_only": False,
        },
    ),
)


def seed_catalog(store: EntitlementStore, now: datetime) -> bool:
    """Insert the plan and content catalog unless plans already exist.

    Returns ``True`` when rows were written.
    """

    if store.list_plans(active_only=False):
        logger.info("Catalog already seeded; skipping")
        return False

    with store.transaction() as tx:
        plans: List[SubscriptionPlan] = [
            tx.insert_plan(SubscriptionPlan(**fields)) for fields in PLAN_SEED
        ]
        for days_ago, fields in CONTENT_SEED:
            tx.insert_content(
                BonusContent(
                    **fields,
                    published_at=now - timedelta(days=days_ago),
                    created_at=now,
                )
            )

    logger.info("Seeded %s plans and %s content items", len(plans), len(CONTENT_SEED))
    return True


__all__ = ["CONTENT_SEED", "PLAN_SEED", "seed_catalog"]
