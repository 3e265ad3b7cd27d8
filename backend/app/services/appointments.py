"""Application wiring for the appointment booking service."""
from __future__ import annotations

from functools import lru_cache

from ..appointments import AppointmentService
from .store import get_entitlement_store

try:
    from backend import app_context
except ModuleNotFoundError as exc:  # pragma: no cover - fallback for running from backend/
    if exc.name != "backend":
        raise
    import app_context  # type: ignore[no-redef]


@lru_cache(maxsize=1)
def get_appointment_service() -> AppointmentService:
    config = app_context.get_config()
    return AppointmentService(
        store=get_entitlement_store(),
        default_duration_minutes=config.default_appointment_minutes,
        booking_hours=config.booking_hours,
    )


__all__ = ["get_appointment_service"]
