"""API schemas for subscription endpoints."""
from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..store.models import (
    PaymentRecord,
    PaymentStatus,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
)
from ..subscriptions import SubscriptionDetails, SubscriptionReceipt


class MessageResponse(BaseModel):
    message: str


class PlanOut(BaseModel):
    id: int
    name: str
    description: str
    price_monthly: float = Field(alias="priceMonthly")
    massages_per_month: int = Field(alias="massagesPerMonth")
    duration_minutes: int = Field(alias="durationMinutes")
    features: List[str] = Field(default_factory=list)
    is_active: bool = Field(alias="isActive")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanOut":
        return cls(
            id=plan.id,
            name=plan.name,
            description=plan.description,
            price_monthly=float(plan.price_monthly),
            massages_per_month=plan.massages_per_month,
            duration_minutes=plan.duration_minutes,
            features=list(plan.features),
            is_active=plan.is_active,
        )


class SubscriptionOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    plan_id: int = Field(alias="planId")
    status: SubscriptionStatus
    massages_remaining: int = Field(alias="massagesRemaining")
    start_date: datetime = Field(alias="startDate")
    next_billing_date: datetime = Field(alias="nextBillingDate")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")
    plan: Optional[PlanOut] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_subscription(
        cls,
        subscription: Subscription,
        plan: Optional[SubscriptionPlan] = None,
    ) -> "SubscriptionOut":
        return cls(
            id=subscription.id,
            user_id=subscription.user_id,
            plan_id=subscription.plan_id,
            status=subscription.status,
            massages_remaining=subscription.massages_remaining,
            start_date=subscription.start_date,
            next_billing_date=subscription.next_billing_date,
            created_at=subscription.created_at,
            updated_at=subscription.updated_at,
            plan=PlanOut.from_plan(plan) if plan is not None else None,
        )


class MySubscriptionResponse(BaseModel):
    has_subscription: bool = Field(alias="hasSubscription")
    subscription: Optional[SubscriptionOut] = None

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_details(cls, details: Optional[SubscriptionDetails]) -> "MySubscriptionResponse":
        if details is None:
            return cls(has_subscription=False)
        return cls(
            has_subscription=True,
            subscription=SubscriptionOut.from_subscription(details.subscription, details.plan),
        )


class SubscribeRequest(BaseModel):
    plan_id: int = Field(alias="planId")
    payment_details: Optional[Dict[str, Any]] = Field(default=None, alias="paymentDetails")

    model_config = ConfigDict(populate_by_name=True)


class PaymentSummary(BaseModel):
    transaction_id: str = Field(alias="transactionId")
    amount: float
    status: PaymentStatus

    model_config = ConfigDict(populate_by_name=True)


class SubscribeResponse(BaseModel):
    message: str
    subscription: SubscriptionOut
    payment: PaymentSummary

    @classmethod
    def from_receipt(cls, receipt: SubscriptionReceipt) -> "SubscribeResponse":
        return cls(
            message="Subscription created successfully",
            subscription=SubscriptionOut.from_subscription(receipt.subscription, receipt.plan),
            payment=PaymentSummary(
                transaction_id=receipt.payment.transaction_id,
                amount=float(receipt.payment.amount),
                status=receipt.payment.status,
            ),
        )


class PaymentRecordOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    subscription_id: Optional[int] = Field(default=None, alias="subscriptionId")
    amount: float
    status: PaymentStatus
    payment_method: str = Field(alias="paymentMethod")
    transaction_id: str = Field(alias="transactionId")
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_record(cls, record: PaymentRecord) -> "PaymentRecordOut":
        return cls(
            id=record.id,
            user_id=record.user_id,
            subscription_id=record.subscription_id,
            amount=float(record.amount),
            status=record.status,
            payment_method=record.payment_method,
            transaction_id=record.transaction_id,
            created_at=record.created_at,
        )
