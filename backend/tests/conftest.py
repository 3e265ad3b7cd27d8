from __future__ import annotations

import os
import pathlib
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, List, Mapping, Optional

import pytest

ROOT = pathlib.Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("STORE_BACKEND", "memory")
os.environ.setdefault("SEED_CATALOG", "false")

from backend.app.appointments import AppointmentService
from backend.app.content import ContentService
from backend.app.store import InMemoryEntitlementStore, User, seed_catalog
from backend.app.store.models import PaymentStatus
from backend.app.subscriptions import (
    PaymentCharge,
    PaymentGateway,
    SubscriptionEvent,
    SubscriptionEventLogger,
    SubscriptionService,
)

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)

RELAXATION_PLAN_ID = 1
WELLNESS_PLAN_ID = 2
REJUVENATION_PLAN_ID = 3


class FixedClock:
    def __init__(self, now: datetime = NOW) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: Any) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FakePaymentGateway(PaymentGateway):
    def __init__(self) -> None:
        self.charges: List[Decimal] = []
        self.fail_next = False

    def charge(
        self,
        *,
        user_id: int,
        amount: Decimal,
        payment_details: Optional[Mapping[str, Any]] = None,
    ) -> PaymentCharge:
        if self.fail_next:
            self.fail_next = False
            raise RuntimeError("gateway unavailable")
        self.charges.append(amount)
        return PaymentCharge(
            transaction_id=f"mock_txn_{len(self.charges)}",
            status=PaymentStatus.COMPLETED,
            payment_method="mock_card",
        )


class FakeEventLogger(SubscriptionEventLogger):
    def __init__(self) -> None:
        self.events: List[SubscriptionEvent] = []

    def log(self, event: SubscriptionEvent) -> None:
        self.events.append(event)


def make_user(store: InMemoryEntitlementStore, email: str, *, now: datetime = NOW) -> User:
    return store.insert_user(
        User(
            email=email,
            password_hash="not-a-real-hash",
            first_name="Test",
            last_name="User",
            created_at=now,
            updated_at=now,
        )
    )


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def store() -> InMemoryEntitlementStore:
    store = InMemoryEntitlementStore()
    seed_catalog(store, NOW)
    return store


@pytest.fixture
def user(store) -> User:
    return make_user(store, "member@example.com")


@pytest.fixture
def other_user(store) -> User:
    return make_user(store, "other@example.com")


@pytest.fixture
def gateway() -> FakePaymentGateway:
    return FakePaymentGateway()


@pytest.fixture
def event_logger() -> FakeEventLogger:
    return FakeEventLogger()


@pytest.fixture
def subscription_service(store, gateway, event_logger, clock) -> SubscriptionService:
    return SubscriptionService(
        store=store,
        payment_gateway=gateway,
        event_logger=event_logger,
        clock=clock,
    )


@pytest.fixture
def appointment_service(store, clock) -> AppointmentService:
    return AppointmentService(store=store, clock=clock)


@pytest.fixture
def content_service(store) -> ContentService:
    return ContentService(store=store)
