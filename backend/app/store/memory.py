"""In-memory entitlement store suitable for tests and local development."""
from __future__ import annotations

import itertools
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Sequence

from ..exceptions import DuplicateActiveSubscription, EmailAlreadyRegistered
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

logger = logging.getLogger(__name__)

_TABLES = ("users", "plans", "subscriptions", "payments", "appointments", "content")


def _subscription_rank(subscription: Subscription):
    return (
        subscription.status == SubscriptionStatus.ACTIVE,
        subscription.start_date,
        subscription.id or 0,
    )


class InMemoryEntitlementStore:
    """Keeps every record in process memory behind a re-entrant lock.

    ``transaction()`` snapshots each table and restores the snapshot when the
    block raises, so multi-step operations are all-or-nothing just like the
    PostgreSQL store.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: Dict[int, User] = {}
        self._plans: Dict[int, SubscriptionPlan] = {}
        self._subscriptions: Dict[int, Subscription] = {}
        self._payments: Dict[int, PaymentRecord] = {}
        self._appointments: Dict[int, Appointment] = {}
        self._content: Dict[int, BonusContent] = {}
        self._ids = {name: itertools.count(1) for name in _TABLES}

    def _next_id(self, table: str) -> int:
        return next(self._ids[table])

    @contextmanager
    def transaction(self) -> Iterator["InMemoryEntitlementStore"]:
        with self._lock:
            snapshot = {name: dict(getattr(self, f"_{name}")) for name in _TABLES}
            try:
                yield self
            except Exception:
                for name, rows in snapshot.items():
                    setattr(self, f"_{name}", rows)
                logger.debug("Rolled back in-memory entitlement transaction")
                raise

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        with self._lock:
            return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        needle = email.strip().lower()
        with self._lock:
            for user in self._users.values():
                if user.email == needle:
                    return user
        return None

    def insert_user(self, user: User) -> User:
        with self._lock:
            if self.get_user_by_email(user.email) is not None:
                raise EmailAlreadyRegistered()
            stored = user.model_copy(update={"id": self._next_id("users")})
            self._users[stored.id] = stored
            return stored

    def update_user_profile(
        self,
        user_id: int,
        *,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        updated_at: datetime,
    ) -> Optional[User]:
        with self._lock:
            existing = self._users.get(user_id)
            if existing is None:
                return None
            updated = existing.model_copy(
                update={
                    "first_name": first_name,
                    "last_name": last_name,
                    "phone": phone,
                    "updated_at": updated_at,
                }
            )
            self._users[user_id] = updated
            return updated

    # Plans

    def list_plans(self, *, active_only: bool = True) -> Sequence[SubscriptionPlan]:
        with self._lock:
            plans = sorted(self._plans.values(), key=lambda plan: plan.id)
        if active_only:
            plans = [plan for plan in plans if plan.is_active]
        return plans

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        with self._lock:
            return self._plans.get(plan_id)

    def insert_plan(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        with self._lock:
            stored = plan.model_copy(update={"id": self._next_id("plans")})
            self._plans[stored.id] = stored
            return stored

    # Subscriptions

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        with self._lock:
            return self._subscriptions.get(subscription_id)

    def find_subscription(
        self,
        user_id: int,
        statuses: Sequence[SubscriptionStatus],
    ) -> Optional[Subscription]:
        wanted = set(statuses)
        with self._lock:
            candidates = [
                subscription
                for subscription in self._subscriptions.values()
                if subscription.user_id == user_id and subscription.status in wanted
            ]
        if not candidates:
            return None
        return max(candidates, key=_subscription_rank)

    def _has_other_active(self, user_id: int, exclude_id: Optional[int] = None) -> bool:
        return any(
            subscription.user_id == user_id
            and subscription.status == SubscriptionStatus.ACTIVE
            and subscription.id != exclude_id
            for subscription in self._subscriptions.values()
        )

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        with self._lock:
            if subscription.status == SubscriptionStatus.ACTIVE and self._has_other_active(
                subscription.user_id
            ):
                raise DuplicateActiveSubscription()
            stored = subscription.model_copy(update={"id": self._next_id("subscriptions")})
            self._subscriptions[stored.id] = stored
            return stored

    def transition_subscription(
        self,
        user_id: int,
        *,
        from_statuses: Sequence[SubscriptionStatus],
        to_status: SubscriptionStatus,
        updated_at: datetime,
    ) -> Optional[Subscription]:
        with self._lock:
            target = self.find_subscription(user_id, from_statuses)
            if target is None:
                return None
            if to_status == SubscriptionStatus.ACTIVE and self._has_other_active(
                user_id, exclude_id=target.id
            ):
                raise DuplicateActiveSubscription()
            updated = target.model_copy(update={"status": to_status, "updated_at": updated_at})
            self._subscriptions[updated.id] = updated
            return updated

    def consume_credit(self, user_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        with self._lock:
            active = self.find_subscription(user_id, [SubscriptionStatus.ACTIVE])
            if active is None or active.massages_remaining <= 0:
                return None
            updated = active.model_copy(
                update={
                    "massages_remaining": active.massages_remaining - 1,
                    "updated_at": updated_at,
                }
            )
            self._subscriptions[updated.id] = updated
            return updated

    def restore_credit(self, subscription_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        with self._lock:
            existing = self._subscriptions.get(subscription_id)
            if existing is None:
                return None
            updated = existing.model_copy(
                update={
                    "massages_remaining": existing.massages_remaining + 1,
                    "updated_at": updated_at,
                }
            )
            self._subscriptions[subscription_id] = updated
            return updated

    # Payments

    def insert_payment(self, payment: PaymentRecord) -> PaymentRecord:
        with self._lock:
            stored = payment.model_copy(update={"id": self._next_id("payments")})
            self._payments[stored.id] = stored
            return stored

    def list_payments(self, user_id: int) -> Sequence[PaymentRecord]:
        with self._lock:
            rows = [payment for payment in self._payments.values() if payment.user_id == user_id]
        return sorted(rows, key=lambda payment: (payment.created_at, payment.id))

    # Appointments

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        with self._lock:
            stored = appointment.model_copy(update={"id": self._next_id("appointments")})
            self._appointments[stored.id] = stored
            return stored

    def get_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        with self._lock:
            appointment = self._appointments.get(appointment_id)
        if appointment is None or appointment.user_id != user_id:
            return None
        return appointment

    def list_appointments(
        self,
        user_id: int,
        *,
        since: Optional[datetime] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> Sequence[Appointment]:
        with self._lock:
            rows: List[Appointment] = [
                appointment
                for appointment in self._appointments.values()
                if appointment.user_id == user_id
            ]
        if since is not None:
            rows = [appointment for appointment in rows if appointment.date_time >= since]
        if status is not None:
            rows = [appointment for appointment in rows if appointment.status == status]
        return sorted(rows, key=lambda appointment: (appointment.date_time, appointment.id))

    def list_scheduled_between(self, start: datetime, end: datetime) -> Sequence[Appointment]:
        with self._lock:
            rows = [
                appointment
                for appointment in self._appointments.values()
                if appointment.status == AppointmentStatus.SCHEDULED
                and start <= appointment.date_time < end
            ]
        return sorted(rows, key=lambda appointment: (appointment.date_time, appointment.id))

    def cancel_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        with self._lock:
            existing = self.get_appointment(appointment_id, user_id)
            if existing is None or existing.status != AppointmentStatus.SCHEDULED:
                return None
            updated = existing.model_copy(update={"status": AppointmentStatus.CANCELLED})
            self._appointments[appointment_id] = updated
            return updated

    # Content

    def list_content(
        self,
        *,
        category: Optional[str] = None,
        include_subscriber_only: bool = True,
        featured_only: bool = False,
        limit: Optional[int] = None,
    ) -> Sequence[BonusContent]:
        with self._lock:
            rows = list(self._content.values())
        if category is not None:
            rows = [item for item in rows if item.category == category]
        if not include_subscriber_only:
            rows = [item for item in rows if not item.subscriber_only]
        if featured_only:
            rows = [item for item in rows if item.is_featured]
        rows.sort(key=lambda item: (item.published_at, item.id), reverse=True)
        if limit is not None:
            rows = rows[:limit]
        return rows

    def get_content(self, content_id: int) -> Optional[BonusContent]:
        with self._lock:
            return self._content.get(content_id)

    def insert_content(self, item: BonusContent) -> BonusContent:
        with self._lock:
            stored = item.model_copy(update={"id": self._next_id("content")})
            self._content[stored.id] = stored
            return stored


__all__ = ["InMemoryEntitlementStore"]
