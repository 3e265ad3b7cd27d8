"""Appointment booking against subscription credits."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict
from fastapi import status

from ..exceptions import (
    AlreadyCancelled,
    AppointmentNotCancellable,
    AppointmentNotFound,
    CreditsExhausted,
    NoActiveSubscription,
)
from ..store.base import EntitlementStore
from ..store.models import Appointment, AppointmentStatus, SubscriptionStatus

logger = logging.getLogger(__name__)

DEFAULT_BOOKING_HOURS: Tuple[int, ...] = (9, 10, 11, 13, 14, 15, 16, 17)


class TimeSlot(BaseModel):
    """A bookable start time."""

    date_time: datetime
    available: bool = True

    model_config = ConfigDict(frozen=True)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class AppointmentService:
    """Books and cancels appointments, pairing each credit debit with a restore."""

    store: EntitlementStore
    clock: Callable[[], datetime] = field(default=_utcnow)
    default_duration_minutes: int = 60
    booking_hours: Tuple[int, ...] = DEFAULT_BOOKING_HOURS

    def _now(self) -> datetime:
        return self.clock()

    def book(
        self,
        user_id: int,
        date_time: datetime,
        service_type: str,
        duration_minutes: Optional[int] = None,
        notes: Optional[str] = None,
        use_subscription: bool = False,
    ) -> Appointment:
        now = self._now()
        with self.store.transaction() as tx:
            subscription_id: Optional[int] = None
            if use_subscription:
                debited = tx.consume_credit(user_id, updated_at=now)
                if debited is None:
                    if tx.find_subscription(user_id, [SubscriptionStatus.ACTIVE]) is None:
                        raise NoActiveSubscription(status_code=status.HTTP_400_BAD_REQUEST)
                    logger.warning("User %s has no massage credits remaining", user_id)
                    raise CreditsExhausted()
                subscription_id = debited.id

            appointment = tx.insert_appointment(
                Appointment(
                    user_id=user_id,
                    subscription_id=subscription_id,
                    date_time=date_time,
                    duration_minutes=duration_minutes or self.default_duration_minutes,
                    service_type=service_type,
                    status=AppointmentStatus.SCHEDULED,
                    notes=notes,
                    created_at=now,
                )
            )

        logger.info(
            "Booked appointment %s for user %s at %s (subscription=%s)",
            appointment.id,
            user_id,
            appointment.date_time.isoformat(),
            subscription_id,
        )
        return appointment

    def cancel(self, appointment_id: int, user_id: int) -> Appointment:
        now = self._now()
        with self.store.transaction() as tx:
            cancelled = tx.cancel_appointment(appointment_id, user_id)
            if cancelled is None:
                existing = tx.get_appointment(appointment_id, user_id)
                if existing is None:
                    raise AppointmentNotFound(detail={"appointment_id": appointment_id})
                if existing.status == AppointmentStatus.CANCELLED:
                    raise AlreadyCancelled()
                raise AppointmentNotCancellable()

            if cancelled.subscription_id is not None:
                tx.restore_credit(cancelled.subscription_id, updated_at=now)

        logger.info(
            "Cancelled appointment %s for user %s (credit restored=%s)",
            appointment_id,
            user_id,
            cancelled.subscription_id is not None,
        )
        return cancelled

    def list_all(self, user_id: int) -> Sequence[Appointment]:
        return self.store.list_appointments(user_id)

    def list_upcoming(self, user_id: int) -> Sequence[Appointment]:
        return self.store.list_appointments(
            user_id,
            since=self._now(),
            status=AppointmentStatus.SCHEDULED,
        )

    def available_slots(self, day: date) -> List[TimeSlot]:
        """Return the configured booking hours on ``day`` that are still free (UTC).

        A slot spans ``default_duration_minutes`` from its start hour and is
        taken when any scheduled appointment overlaps it, including one that
        started on the previous day and runs past midnight.
        """

        start = datetime.combine(day, time(0, 0), tzinfo=timezone.utc)
        end = start + timedelta(days=1)
        slot_length = timedelta(minutes=self.default_duration_minutes)
        booked = [
            (
                appointment.date_time,
                appointment.date_time + timedelta(minutes=appointment.duration_minutes),
            )
            for appointment in self.store.list_scheduled_between(start - timedelta(days=1), end)
        ]
        slots: List[TimeSlot] = []
        for hour in self.booking_hours:
            slot_start = start.replace(hour=hour)
            slot_end = slot_start + slot_length
            if any(busy_start < slot_end and slot_start < busy_end for busy_start, busy_end in booked):
                continue
            slots.append(TimeSlot(date_time=slot_start))
        return slots


__all__ = ["AppointmentService", "DEFAULT_BOOKING_HOURS", "TimeSlot"]
