"""Application wiring for the subscription service."""
from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Any, Mapping, Optional
from uuid import uuid4

from ..store.models import PaymentStatus
from ..subscriptions import (
    PaymentCharge,
    PaymentGateway,
    SubscriptionEvent,
    SubscriptionEventLogger,
    SubscriptionService,
)
from .store import get_entitlement_store

try:
    from backend import app_context
except ModuleNotFoundError as exc:  # pragma: no cover - fallback for running from backend/
    if exc.name != "backend":
        raise
    import app_context  # type: ignore[no-redef]


logger = logging.getLogger("massage.subscriptions")


class MockPaymentGateway(PaymentGateway):
    """Gateway that approves every charge without moving money."""

    def __init__(self, payment_method: str = "mock_card") -> None:
        self.payment_method = payment_method

    def charge(
        self,
        *,
        user_id: int,
        amount: Decimal,
        payment_details: Optional[Mapping[str, Any]] = None,
    ) -> PaymentCharge:
        transaction_id = f"mock_txn_{uuid4()}"
        logger.info(
            "Processing mock payment user=%s amount=%s details_provided=%s txn=%s",
            user_id,
            amount,
            bool(payment_details),
            transaction_id,
        )
        return PaymentCharge(
            transaction_id=transaction_id,
            status=PaymentStatus.COMPLETED,
            payment_method=self.payment_method,
        )


class LoggingSubscriptionEventLogger(SubscriptionEventLogger):
    """Event logger forwarding subscription audit events to logging."""

    def log(self, event: SubscriptionEvent) -> None:
        logger.info(
            "Subscription event %s user=%s subscription=%s plan=%s metadata=%s",
            event.event_type.value,
            event.user_id,
            event.subscription_id,
            event.plan_id,
            event.metadata,
        )


@lru_cache(maxsize=1)
def get_subscription_service() -> SubscriptionService:
    config = app_context.get_config()
    return SubscriptionService(
        store=get_entitlement_store(),
        payment_gateway=MockPaymentGateway(config.mock_payment_method),
        event_logger=LoggingSubscriptionEventLogger(),
    )


__all__ = [
    "LoggingSubscriptionEventLogger",
    "MockPaymentGateway",
    "get_subscription_service",
]
