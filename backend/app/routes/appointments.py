"""API routes for booking and cancelling appointments."""
from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..schemas.appointments import AppointmentCreate, AppointmentOut, TimeSlotOut
from ..schemas.subscriptions import MessageResponse
from ..services.appointments import get_appointment_service
from .auth_dependency import get_current_user

router = APIRouter(prefix="/api/appointments", tags=["appointments"])


@router.get("", response_model=List[AppointmentOut])
def list_appointments(*, current_user=Depends(get_current_user)) -> List[AppointmentOut]:
    service = get_appointment_service()
    return [AppointmentOut.from_appointment(item) for item in service.list_all(current_user.id)]


@router.get("/upcoming", response_model=List[AppointmentOut])
def list_upcoming_appointments(*, current_user=Depends(get_current_user)) -> List[AppointmentOut]:
    service = get_appointment_service()
    return [
        AppointmentOut.from_appointment(item) for item in service.list_upcoming(current_user.id)
    ]


@router.get("/available-slots", response_model=List[TimeSlotOut])
def list_available_slots(
    day: Optional[date] = Query(default=None, alias="date"),
) -> List[TimeSlotOut]:
    """Return free start times for ``date`` (defaults to today, UTC)."""
    service = get_appointment_service()
    target = day or datetime.now(timezone.utc).date()
    return [TimeSlotOut.from_slot(slot) for slot in service.available_slots(target)]


@router.post("", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
def book_appointment(
    payload: AppointmentCreate,
    *,
    current_user=Depends(get_current_user),
) -> AppointmentOut:
    service = get_appointment_service()
    appointment = service.book(
        current_user.id,
        payload.date_time,
        payload.service_type,
        duration_minutes=payload.duration_minutes,
        notes=payload.notes,
        use_subscription=payload.use_subscription,
    )
    return AppointmentOut.from_appointment(appointment)


@router.post("/{appointment_id}/cancel", response_model=MessageResponse)
def cancel_appointment(
    appointment_id: int,
    *,
    current_user=Depends(get_current_user),
) -> MessageResponse:
    get_appointment_service().cancel(appointment_id, current_user.id)
    return MessageResponse(message="Appointment cancelled successfully")
