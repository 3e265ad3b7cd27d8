"""Appointment booking package."""

from .service import DEFAULT_BOOKING_HOURS, AppointmentService, TimeSlot

__all__ = ["AppointmentService", "DEFAULT_BOOKING_HOURS", "TimeSlot"]
