"""Subscription lifecycle: subscribe, cancel, pause, resume."""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from ..exceptions import (
    DuplicateActiveSubscription,
    NoActiveSubscription,
    NoPausedSubscription,
    PlanNotFound,
)
from ..store.base import EntitlementStore
from ..store.models import (
    PaymentRecord,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from .models import (
    PaymentCharge,
    SubscriptionDetails,
    SubscriptionEvent,
    SubscriptionEventType,
    SubscriptionReceipt,
)

logger = logging.getLogger(__name__)


class PaymentGateway(Protocol):
    """Charges a user for a plan."""

    def charge(
        self,
        *,
        user_id: int,
        amount: Decimal,
        payment_details: Optional[Mapping[str, Any]] = None,
    ) -> PaymentCharge:
        ...


class SubscriptionEventLogger(Protocol):
    """Captures structured subscription audit events."""

    def log(self, event: SubscriptionEvent) -> None:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def add_one_month(value: datetime) -> datetime:
    """Advance ``value`` by one calendar month, clamping the day to the month end."""

    year = value.year + value.month // 12
    month = value.month % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return value.replace(year=year, month=month, day=min(value.day, last_day))


@dataclass
class SubscriptionService:
    """Owns subscription state transitions and the mock payment that opens them."""

    store: EntitlementStore
    payment_gateway: PaymentGateway
    event_logger: SubscriptionEventLogger
    clock: Callable[[], datetime] = field(default=_utcnow)

    def _now(self) -> datetime:
        return self.clock()

    def list_plans(self) -> Sequence[SubscriptionPlan]:
        return self.store.list_plans(active_only=True)

    def current_subscription(self, user_id: int) -> Optional[SubscriptionDetails]:
        subscription = self.store.find_subscription(
            user_id, [SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED]
        )
        if subscription is None:
            return None
        plan = self.store.get_plan(subscription.plan_id)
        if plan is None:
            raise PlanNotFound()
        return SubscriptionDetails(subscription=subscription, plan=plan)

    def subscribe(
        self,
        user_id: int,
        plan_id: int,
        payment_details: Optional[Mapping[str, Any]] = None,
    ) -> SubscriptionReceipt:
        plan = self.store.get_plan(plan_id)
        if plan is None or not plan.is_active:
            raise PlanNotFound(detail={"plan_id": plan_id})

        now = self._now()
        with self.store.transaction() as tx:
            if tx.find_subscription(user_id, [SubscriptionStatus.ACTIVE]) is not None:
                raise DuplicateActiveSubscription()

            subscription = tx.insert_subscription(
                Subscription(
                    user_id=user_id,
                    plan_id=plan.id,
                    status=SubscriptionStatus.ACTIVE,
                    massages_remaining=plan.massages_per_month,
                    start_date=now,
                    next_billing_date=add_one_month(now),
                    created_at=now,
                    updated_at=now,
                )
            )
            charge = self.payment_gateway.charge(
                user_id=user_id,
                amount=plan.price_monthly,
                payment_details=payment_details,
            )
            payment = tx.insert_payment(
                PaymentRecord(
                    user_id=user_id,
                    subscription_id=subscription.id,
                    amount=plan.price_monthly,
                    status=charge.status,
                    payment_method=charge.payment_method,
                    transaction_id=charge.transaction_id,
                    created_at=now,
                )
            )

        logger.info(
            "User %s subscribed to plan %s (subscription=%s txn=%s)",
            user_id,
            plan.id,
            subscription.id,
            payment.transaction_id,
        )
        self.event_logger.log(
            SubscriptionEvent(
                event_type=SubscriptionEventType.SUBSCRIBED,
                user_id=user_id,
                subscription_id=subscription.id,
                plan_id=plan.id,
                metadata={"transaction_id": payment.transaction_id},
                occurred_at=now,
            )
        )
        return SubscriptionReceipt(subscription=subscription, plan=plan, payment=payment)

    def cancel(self, user_id: int) -> Subscription:
        subscription = self._transition(
            user_id,
            from_statuses=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED],
            to_status=SubscriptionStatus.CANCELLED,
            event_type=SubscriptionEventType.CANCELLED,
        )
        if subscription is None:
            raise NoActiveSubscription()
        return subscription

    def pause(self, user_id: int) -> Subscription:
        subscription = self._transition(
            user_id,
            from_statuses=[SubscriptionStatus.ACTIVE],
            to_status=SubscriptionStatus.PAUSED,
            event_type=SubscriptionEventType.PAUSED,
        )
        if subscription is None:
            raise NoActiveSubscription()
        return subscription

    def resume(self, user_id: int) -> Subscription:
        subscription = self._transition(
            user_id,
            from_statuses=[SubscriptionStatus.PAUSED],
            to_status=SubscriptionStatus.ACTIVE,
            event_type=SubscriptionEventType.RESUMED,
        )
        if subscription is None:
            raise NoPausedSubscription()
        return subscription

    def list_payments(self, user_id: int) -> Sequence[PaymentRecord]:
        return self.store.list_payments(user_id)

    def _transition(
        self,
        user_id: int,
        *,
        from_statuses: Sequence[SubscriptionStatus],
        to_status: SubscriptionStatus,
        event_type: SubscriptionEventType,
    ) -> Optional[Subscription]:
        now = self._now()
        with self.store.transaction() as tx:
            subscription = tx.transition_subscription(
                user_id,
                from_statuses=from_statuses,
                to_status=to_status,
                updated_at=now,
            )
        if subscription is None:
            return None

        logger.info(
            "Subscription %s for user %s is now %s",
            subscription.id,
            user_id,
            to_status.value,
        )
        self.event_logger.log(
            SubscriptionEvent(
                event_type=event_type,
                user_id=user_id,
                subscription_id=subscription.id,
                plan_id=subscription.plan_id,
                occurred_at=now,
            )
        )
        return subscription


__all__ = [
    "PaymentGateway",
    "SubscriptionEventLogger",
    "SubscriptionService",
    "add_one_month",
]
