"""API schemas for appointment endpoints."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..appointments import TimeSlot
from ..store.models import Appointment, AppointmentStatus


class AppointmentCreate(BaseModel):
    date_time: datetime = Field(alias="dateTime")
    service_type: str = Field(alias="serviceType", min_length=1)
    duration_minutes: Optional[int] = Field(default=None, alias="durationMinutes", ge=1)
    notes: Optional[str] = None
    use_subscription: bool = Field(default=False, alias="useSubscription")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("date_time")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value


class AppointmentOut(BaseModel):
    id: int
    user_id: int = Field(alias="userId")
    subscription_id: Optional[int] = Field(default=None, alias="subscriptionId")
    date_time: datetime = Field(alias="dateTime")
    duration_minutes: int = Field(alias="durationMinutes")
    service_type: str = Field(alias="serviceType")
    status: AppointmentStatus
    notes: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_appointment(cls, appointment: Appointment) -> "AppointmentOut":
        return cls(
            id=appointment.id,
            user_id=appointment.user_id,
            subscription_id=appointment.subscription_id,
            date_time=appointment.date_time,
            duration_minutes=appointment.duration_minutes,
            service_type=appointment.service_type,
            status=appointment.status,
            notes=appointment.notes,
            created_at=appointment.created_at,
        )


class TimeSlotOut(BaseModel):
    date_time: datetime = Field(alias="dateTime")
    available: bool = True

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_slot(cls, slot: TimeSlot) -> "TimeSlotOut":
        return cls(date_time=slot.date_time, available=slot.available)
