"""Domain errors surfaced by the subscription, booking, and content services."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from fastapi import status


class ErrorCategory(str, Enum):
    """Coarse classification of service failures."""

    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    FORBIDDEN = "forbidden"
    INSUFFICIENT_RESOURCE = "insufficient_resource"
    INTERNAL = "internal"


@dataclass(eq=False)
class ServiceError(Exception):
    """Represents a terminal, user-visible failure of a single request."""

    message: str = "Internal server error"
    code: str = "internal_error"
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    category: ErrorCategory = ErrorCategory.INTERNAL
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        base_detail: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            base_detail.update(self.detail)
        object.__setattr__(self, "_payload", base_detail)
        super().__init__(self.message)

    @property
    def payload(self) -> Mapping[str, Any]:
        """Serialized representation suitable for JSON responses."""

        return self._payload


@dataclass(eq=False)
class PlanNotFound(ServiceError):
    message: str = "Plan not found"
    code: str = "plan_not_found"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.NOT_FOUND


@dataclass(eq=False)
class AppointmentNotFound(ServiceError):
    message: str = "Appointment not found"
    code: str = "appointment_not_found"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.NOT_FOUND


@dataclass(eq=False)
class ContentNotFound(ServiceError):
    message: str = "Content not found"
    code: str = "content_not_found"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.NOT_FOUND


@dataclass(eq=False)
class UserNotFound(ServiceError):
    message: str = "User not found"
    code: str = "user_not_found"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.NOT_FOUND


@dataclass(eq=False)
class DuplicateActiveSubscription(ServiceError):
    message: str = "You already have an active subscription. Please cancel it first."
    code: str = "duplicate_active_subscription"
    status_code: int = status.HTTP_400_BAD_REQUEST
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class NoActiveSubscription(ServiceError):
    message: str = "No active subscription found"
    code: str = "no_active_subscription"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class NoPausedSubscription(ServiceError):
    message: str = "No paused subscription found"
    code: str = "no_paused_subscription"
    status_code: int = status.HTTP_404_NOT_FOUND
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class AlreadyCancelled(ServiceError):
    message: str = "Appointment is already cancelled"
    code: str = "already_cancelled"
    status_code: int = status.HTTP_400_BAD_REQUEST
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class AppointmentNotCancellable(ServiceError):
    message: str = "Completed appointments cannot be cancelled"
    code: str = "appointment_not_cancellable"
    status_code: int = status.HTTP_400_BAD_REQUEST
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class EmailAlreadyRegistered(ServiceError):
    message: str = "Email already registered"
    code: str = "email_already_registered"
    status_code: int = status.HTTP_409_CONFLICT
    category: ErrorCategory = ErrorCategory.CONFLICT


@dataclass(eq=False)
class SubscriptionRequired(ServiceError):
    message: str = "This content is only available to subscribers"
    code: str = "subscription_required"
    status_code: int = status.HTTP_403_FORBIDDEN
    category: ErrorCategory = ErrorCategory.FORBIDDEN


@dataclass(eq=False)
class InvalidCredentials(ServiceError):
    message: str = "Invalid email or password"
    code: str = "invalid_credentials"
    status_code: int = status.HTTP_401_UNAUTHORIZED
    category: ErrorCategory = ErrorCategory.FORBIDDEN


@dataclass(eq=False)
class CreditsExhausted(ServiceError):
    message: str = "No massages remaining in your subscription this month"
    code: str = "credits_exhausted"
    status_code: int = status.HTTP_400_BAD_REQUEST
    category: ErrorCategory = ErrorCategory.INSUFFICIENT_RESOURCE


__all__ = [
    "AlreadyCancelled",
    "AppointmentNotCancellable",
    "AppointmentNotFound",
    "ContentNotFound",
    "CreditsExhausted",
    "DuplicateActiveSubscription",
    "EmailAlreadyRegistered",
    "ErrorCategory",
    "InvalidCredentials",
    "NoActiveSubscription",
    "NoPausedSubscription",
    "PlanNotFound",
    "ServiceError",
    "SubscriptionRequired",
    "UserNotFound",
]
