"""API routes exposing the subscription lifecycle."""
from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status

from ..schemas.subscriptions import (
    MessageResponse,
    MySubscriptionResponse,
    PaymentRecordOut,
    PlanOut,
    SubscribeRequest,
    SubscribeResponse,
)
from ..services.subscriptions import get_subscription_service
from .auth_dependency import get_current_user

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


@router.get("/plans", response_model=List[PlanOut])
def list_plans() -> List[PlanOut]:
    service = get_subscription_service()
    return [PlanOut.from_plan(plan) for plan in service.list_plans()]


@router.get("/my-subscription", response_model=MySubscriptionResponse)
def read_my_subscription(*, current_user=Depends(get_current_user)) -> MySubscriptionResponse:
    service = get_subscription_service()
    return MySubscriptionResponse.from_details(service.current_subscription(current_user.id))


@router.post(
    "/subscribe",
    response_model=SubscribeResponse,
    status_code=status.HTTP_201_CREATED,
)
def subscribe(
    payload: SubscribeRequest,
    *,
    current_user=Depends(get_current_user),
) -> SubscribeResponse:
    service = get_subscription_service()
    receipt = service.subscribe(
        current_user.id,
        payload.plan_id,
        payment_details=payload.payment_details,
    )
    return SubscribeResponse.from_receipt(receipt)


@router.post("/cancel", response_model=MessageResponse)
def cancel_subscription(*, current_user=Depends(get_current_user)) -> MessageResponse:
    get_subscription_service().cancel(current_user.id)
    return MessageResponse(message="Subscription cancelled successfully")


@router.post("/pause", response_model=MessageResponse)
def pause_subscription(*, current_user=Depends(get_current_user)) -> MessageResponse:
    get_subscription_service().pause(current_user.id)
    return MessageResponse(message="Subscription paused successfully")


@router.post("/resume", response_model=MessageResponse)
def resume_subscription(*, current_user=Depends(get_current_user)) -> MessageResponse:
    get_subscription_service().resume(current_user.id)
    return MessageResponse(message="Subscription resumed successfully")


@router.get("/payment-history", response_model=List[PaymentRecordOut])
def list_payment_history(*, current_user=Depends(get_current_user)) -> List[PaymentRecordOut]:
    service = get_subscription_service()
    return [PaymentRecordOut.from_record(record) for record in service.list_payments(current_user.id)]
