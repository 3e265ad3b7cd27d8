"""Persistence contract shared by the subscription, booking, and content services."""
from __future__ import annotations

from datetime import datetime
from typing import ContextManager, Optional, Protocol, Sequence

from .models import (
    Appointment,
    AppointmentStatus,
    BonusContent,
    PaymentRecord,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)


class EntitlementStore(Protocol):
    """Durable rows for users, plans, subscriptions, appointments, payments, and content.

    Every method that reads and then writes a counter or a status is a single
    conditional update; callers inspect the returned row (``None`` means the
    predicate did not match) instead of reading first.
    """

    def transaction(self) -> ContextManager["EntitlementStore"]:
        """Yield a store bound to one transaction; commit on exit, roll back on error."""

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        ...

    def get_user_by_email(self, email: str) -> Optional[User]:
        ...

    def insert_user(self, user: User) -> User:
        ...

    def update_user_profile(
        self,
        user_id: int,
        *,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        updated_at: datetime,
    ) -> Optional[User]:
        ...

    # Plans

    def list_plans(self, *, active_only: bool = True) -> Sequence[SubscriptionPlan]:
        ...

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        ...

    def insert_plan(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        ...

    # Subscriptions

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        ...

    def find_subscription(
        self,
        user_id: int,
        statuses: Sequence[SubscriptionStatus],
    ) -> Optional[Subscription]:
        """Return the user's subscription in one of ``statuses``, active first, newest next."""

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        ...

    def transition_subscription(
        self,
        user_id: int,
        *,
        from_statuses: Sequence[SubscriptionStatus],
        to_status: SubscriptionStatus,
        updated_at: datetime,
    ) -> Optional[Subscription]:
        ...

    def consume_credit(self, user_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        """Decrement the active subscription's counter when it is above zero."""

    def restore_credit(self, subscription_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        ...

    # Payments

    def insert_payment(self, payment: PaymentRecord) -> PaymentRecord:
        ...

    def list_payments(self, user_id: int) -> Sequence[PaymentRecord]:
        ...

    # Appointments

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        ...

    def get_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        ...

    def list_appointments(
        self,
        user_id: int,
        *,
        since: Optional[datetime] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> Sequence[Appointment]:
        ...

    def list_scheduled_between(self, start: datetime, end: datetime) -> Sequence[Appointment]:
        ...

    def cancel_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        """Mark a scheduled appointment cancelled; ``None`` when it is not scheduled."""

    # Content

    def list_content(
        self,
        *,
        category: Optional[str] = None,
        include_subscriber_only: bool = True,
        featured_only: bool = False,
        limit: Optional[int] = None,
    ) -> Sequence[BonusContent]:
        ...

    def get_content(self, content_id: int) -> Optional[BonusContent]:
        ...

    def insert_content(self, item: BonusContent) -> BonusContent:
        ...


__all__ = ["EntitlementStore"]
