"""Entitlement store: records, persistence contract, and implementations."""

from .base import EntitlementStore
from .memory import InMemoryEntitlementStore
from .models import (
    Appointment,
    AppointmentStatus,
    BonusContent,
    ContentType,
    PaymentRecord,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)
from .repository import PostgresEntitlementStore, managed_connection
from .seed import seed_catalog

__all__ = [
    "Appointment",
    "AppointmentStatus",
    "BonusContent",
    "ContentType",
    "EntitlementStore",
    "InMemoryEntitlementStore",
    "PaymentRecord",
    "PaymentStatus",
    "PostgresEntitlementStore",
    "Subscription",
    "SubscriptionPlan",
    "SubscriptionStatus",
    "User",
    "managed_connection",
    "seed_catalog",
]
