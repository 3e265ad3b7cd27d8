"""Value objects produced by the subscription lifecycle service."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..store.models import PaymentRecord, PaymentStatus, Subscription, SubscriptionPlan


class SubscriptionEventType(str, Enum):
    """Audit event categories emitted on subscription transitions."""

    SUBSCRIBED = "subscribed"
    CANCELLED = "cancelled"
    PAUSED = "paused"
    RESUMED = "resumed"


class SubscriptionEvent(BaseModel):
    """Structured audit event for a subscription state change."""

    event_type: SubscriptionEventType
    user_id: int
    subscription_id: Optional[int] = None
    plan_id: Optional[int] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    occurred_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(frozen=True)


class PaymentCharge(BaseModel):
    """Result reported by a payment gateway for a single charge."""

    transaction_id: str
    status: PaymentStatus = PaymentStatus.COMPLETED
    payment_method: str

    model_config = ConfigDict(frozen=True)


class SubscriptionDetails(BaseModel):
    """A subscription together with the plan it was bought from."""

    subscription: Subscription
    plan: SubscriptionPlan

    model_config = ConfigDict(frozen=True)


class SubscriptionReceipt(BaseModel):
    """Outcome of a successful subscribe call."""

    subscription: Subscription
    plan: SubscriptionPlan
    payment: PaymentRecord

    model_config = ConfigDict(frozen=True)


__all__ = [
    "PaymentCharge",
    "SubscriptionDetails",
    "SubscriptionEvent",
    "SubscriptionEventType",
    "SubscriptionReceipt",
]
