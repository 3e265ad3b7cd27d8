"""Value records persisted by the entitlement store."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SubscriptionStatus(str, Enum):
    """Lifecycle state for a user's subscription."""

    ACTIVE = "active"
    PAUSED = "paused"
    CANCELLED = "cancelled"


class AppointmentStatus(str, Enum):
    """Lifecycle state for a booked appointment."""

    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    """Outcome of a (mock) payment attempt."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ContentType(str, Enum):
    """Kinds of bonus content offered to members."""

    VIDEO = "video"
    ARTICLE = "article"
    AUDIO = "audio"


class User(BaseModel):
    """Registered account holder."""

    id: Optional[int] = None
    email: str
    password_hash: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class SubscriptionPlan(BaseModel):
    """Catalog entry describing a monthly massage plan."""

    id: Optional[int] = None
    name: str
    description: str
    price_monthly: Decimal = Field(ge=0)
    massages_per_month: int = Field(ge=0)
    duration_minutes: int = Field(gt=0)
    features: List[str] = Field(default_factory=list)
    is_active: bool = True

    model_config = ConfigDict(frozen=True)


class Subscription(BaseModel):
    """A user's enrolment in a plan and its remaining massage credits."""

    id: Optional[int] = None
    user_id: int
    plan_id: int
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    massages_remaining: int = Field(ge=0)
    start_date: datetime
    next_billing_date: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status == SubscriptionStatus.ACTIVE


class Appointment(BaseModel):
    """A booked massage session, optionally funded by a subscription credit."""

    id: Optional[int] = None
    user_id: int
    subscription_id: Optional[int] = None
    date_time: datetime
    duration_minutes: int = Field(gt=0)
    service_type: str
    status: AppointmentStatus = AppointmentStatus.SCHEDULED
    notes: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class PaymentRecord(BaseModel):
    """Append-only log entry for a charge against a user."""

    id: Optional[int] = None
    user_id: int
    subscription_id: Optional[int] = None
    amount: Decimal = Field(ge=0)
    status: PaymentStatus = PaymentStatus.COMPLETED
    payment_method: str = "mock_card"
    transaction_id: str
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class BonusContent(BaseModel):
    """Video, audio, or article published to members."""

    id: Optional[int] = None
    title: str
    description: str
    content_type: ContentType
    content_url: str
    thumbnail_url: Optional[str] = None
    duration: Optional[str] = None
    category: str
    is_featured: bool = False
    subscriber_only: bool = True
    published_at: datetime
    created_at: datetime

    model_config = ConfigDict(frozen=True)
