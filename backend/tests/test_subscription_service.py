"""Unit tests for the subscription lifecycle service."""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from backend.app.exceptions import (
    DuplicateActiveSubscription,
    NoActiveSubscription,
    NoPausedSubscription,
    PlanNotFound,
)
from backend.app.store import SubscriptionPlan, SubscriptionStatus
from backend.app.subscriptions import SubscriptionEventType, add_one_month

from conftest import NOW, RELAXATION_PLAN_ID, REJUVENATION_PLAN_ID, WELLNESS_PLAN_ID


def test_list_plans_returns_active_catalog_in_id_order(subscription_service, store):
    store.insert_plan(
        SubscriptionPlan(
            name="Legacy",
            description="Retired plan",
            price_monthly=Decimal("49.00"),
            massages_per_month=1,
            duration_minutes=30,
            is_active=False,
        )
    )

    plans = subscription_service.list_plans()

    assert [plan.name for plan in plans] == ["Relaxation", "Wellness", "Rejuvenation"]
    assert [plan.massages_per_month for plan in plans] == [1, 2, 4]
    assert plans[1].price_monthly == Decimal("159.00")
    assert plans[1].features[0] == "2 x 60-minute massages per month"


def test_subscribe_creates_active_subscription_and_payment(
    subscription_service, store, user, gateway, event_logger
):
    receipt = subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    subscription = receipt.subscription
    assert subscription.status == SubscriptionStatus.ACTIVE
    assert subscription.massages_remaining == 2
    assert subscription.start_date == NOW
    assert subscription.next_billing_date == datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
    assert receipt.plan.name == "Wellness"

    assert receipt.payment.amount == Decimal("159.00")
    assert receipt.payment.subscription_id == subscription.id
    assert receipt.payment.transaction_id == "mock_txn_1"
    assert gateway.charges == [Decimal("159.00")]

    assert [payment.id for payment in store.list_payments(user.id)] == [receipt.payment.id]
    assert [event.event_type for event in event_logger.events] == [SubscriptionEventType.SUBSCRIBED]
    assert event_logger.events[0].metadata == {"transaction_id": "mock_txn_1"}


def test_subscribe_unknown_plan_raises(subscription_service, user):
    with pytest.raises(PlanNotFound) as excinfo:
        subscription_service.subscribe(user.id, 999)

    assert excinfo.value.status_code == 404
    assert excinfo.value.payload["plan_id"] == 999


def test_subscribe_inactive_plan_raises(subscription_service, store, user):
    retired = store.insert_plan(
        SubscriptionPlan(
            name="Legacy",
            description="Retired plan",
            price_monthly=Decimal("49.00"),
            massages_per_month=1,
            duration_minutes=30,
            is_active=False,
        )
    )

    with pytest.raises(PlanNotFound):
        subscription_service.subscribe(user.id, retired.id)


def test_subscribe_twice_is_rejected_without_charging(subscription_service, store, user, gateway):
    subscription_service.subscribe(user.id, RELAXATION_PLAN_ID)

    with pytest.raises(DuplicateActiveSubscription) as excinfo:
        subscription_service.subscribe(user.id, REJUVENATION_PLAN_ID)

    assert excinfo.value.status_code == 400
    assert len(gateway.charges) == 1
    assert len(store.list_payments(user.id)) == 1


def test_subscribe_rolls_back_when_payment_fails(subscription_service, store, user, gateway, event_logger):
    gateway.fail_next = True

    with pytest.raises(RuntimeError):
        subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    assert subscription_service.current_subscription(user.id) is None
    assert store.list_payments(user.id) == []
    assert event_logger.events == []


@pytest.mark.parametrize(
    "start, expected",
    [
        (datetime(2024, 1, 31, 9, 0, tzinfo=timezone.utc), datetime(2024, 2, 29, 9, 0, tzinfo=timezone.utc)),
        (datetime(2023, 1, 31, 9, 0, tzinfo=timezone.utc), datetime(2023, 2, 28, 9, 0, tzinfo=timezone.utc)),
        (datetime(2024, 12, 15, 9, 0, tzinfo=timezone.utc), datetime(2025, 1, 15, 9, 0, tzinfo=timezone.utc)),
        (datetime(2024, 3, 31, 9, 0, tzinfo=timezone.utc), datetime(2024, 4, 30, 9, 0, tzinfo=timezone.utc)),
    ],
)
def test_add_one_month_clamps_to_month_end(start, expected):
    assert add_one_month(start) == expected


def test_pause_and_resume_preserve_credits(subscription_service, user, event_logger, clock):
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    clock.advance(days=1)
    paused = subscription_service.pause(user.id)
    assert paused.status == SubscriptionStatus.PAUSED
    assert paused.massages_remaining == 2
    assert paused.updated_at == clock.now

    resumed = subscription_service.resume(user.id)
    assert resumed.status == SubscriptionStatus.ACTIVE
    assert resumed.massages_remaining == 2
    assert resumed.id == paused.id

    assert [event.event_type for event in event_logger.events] == [
        SubscriptionEventType.SUBSCRIBED,
        SubscriptionEventType.PAUSED,
        SubscriptionEventType.RESUMED,
    ]


def test_pause_without_active_subscription_raises(subscription_service, user):
    with pytest.raises(NoActiveSubscription) as excinfo:
        subscription_service.pause(user.id)

    assert excinfo.value.status_code == 404


def test_resume_without_paused_subscription_raises(subscription_service, user):
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    with pytest.raises(NoPausedSubscription):
        subscription_service.resume(user.id)


def test_cancel_active_subscription_keeps_counter(subscription_service, user):
    subscription_service.subscribe(user.id, REJUVENATION_PLAN_ID)

    cancelled = subscription_service.cancel(user.id)

    assert cancelled.status == SubscriptionStatus.CANCELLED
    assert cancelled.massages_remaining == 4
    assert subscription_service.current_subscription(user.id) is None


def test_cancel_paused_subscription_is_allowed(subscription_service, user):
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)
    subscription_service.pause(user.id)

    cancelled = subscription_service.cancel(user.id)

    assert cancelled.status == SubscriptionStatus.CANCELLED


def test_cancelled_subscription_is_terminal(subscription_service, user):
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)
    subscription_service.cancel(user.id)

    with pytest.raises(NoActiveSubscription):
        subscription_service.cancel(user.id)
    with pytest.raises(NoPausedSubscription):
        subscription_service.resume(user.id)
    with pytest.raises(NoActiveSubscription):
        subscription_service.pause(user.id)


def test_cancel_prefers_active_over_paused(subscription_service, store, user, clock):
    paused = subscription_service.subscribe(user.id, RELAXATION_PLAN_ID).subscription
    subscription_service.pause(user.id)
    clock.advance(days=2)
    active = subscription_service.subscribe(user.id, WELLNESS_PLAN_ID).subscription

    cancelled = subscription_service.cancel(user.id)

    assert cancelled.id == active.id
    assert store.get_subscription(paused.id).status == SubscriptionStatus.PAUSED


def test_resume_while_another_subscription_is_active_raises(subscription_service, store, user, clock):
    first = subscription_service.subscribe(user.id, RELAXATION_PLAN_ID).subscription
    subscription_service.pause(user.id)
    clock.advance(days=1)
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    with pytest.raises(DuplicateActiveSubscription):
        subscription_service.resume(user.id)

    assert store.get_subscription(first.id).status == SubscriptionStatus.PAUSED


def test_current_subscription_reports_active_then_paused(subscription_service, user):
    assert subscription_service.current_subscription(user.id) is None

    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)
    details = subscription_service.current_subscription(user.id)
    assert details.subscription.status == SubscriptionStatus.ACTIVE
    assert details.plan.id == WELLNESS_PLAN_ID

    subscription_service.pause(user.id)
    details = subscription_service.current_subscription(user.id)
    assert details.subscription.status == SubscriptionStatus.PAUSED


def test_list_payments_is_oldest_first(subscription_service, user, clock):
    first = subscription_service.subscribe(user.id, RELAXATION_PLAN_ID).payment
    subscription_service.cancel(user.id)
    clock.advance(days=3)
    second = subscription_service.subscribe(user.id, WELLNESS_PLAN_ID).payment

    payments = subscription_service.list_payments(user.id)

    assert [payment.id for payment in payments] == [first.id, second.id]
    assert [payment.amount for payment in payments] == [Decimal("89.00"), Decimal("159.00")]


def test_subscriptions_are_isolated_per_user(subscription_service, user, other_user):
    subscription_service.subscribe(user.id, WELLNESS_PLAN_ID)

    assert subscription_service.current_subscription(other_user.id) is None
    receipt = subscription_service.subscribe(other_user.id, WELLNESS_PLAN_ID)
    assert receipt.subscription.user_id == other_user.id
