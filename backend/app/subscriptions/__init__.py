"""Subscription lifecycle package."""

from .models import (
    PaymentCharge,
    SubscriptionDetails,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionReceipt,
)
from .service import (
    PaymentGateway,
    SubscriptionEventLogger,
    SubscriptionService,
    add_one_month,
)

__all__ = [
    "PaymentCharge",
    "PaymentGateway",
    "SubscriptionDetails",
    "SubscriptionEvent",
    "SubscriptionEventLogger",
    "SubscriptionEventType",
    "SubscriptionReceipt",
    "SubscriptionService",
    "add_one_month",
]
