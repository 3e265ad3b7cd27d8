"""Application configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import math
import os


_DEFAULT_BOOKING_HOURS = (9, 10, 11, 13, 14, 15, 16, 17)


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the subscription backend."""

    db_host: str
    db_port: int
    db_name: str
    db_user: str
    db_password: str
    db_connect_timeout: int
    store_backend: str
    auto_migrate: bool
    seed_catalog: bool
    jwt_secret_key: str
    jwt_algorithm: str
    jwt_exp_minutes: int
    session_cookie_name: str
    cors_origins: Tuple[str, ...]
    default_appointment_minutes: int
    booking_hours: Tuple[int, ...]
    mock_payment_method: str

    @property
    def db_settings(self) -> dict:
        """Keyword arguments accepted by ``psycopg2.connect``."""

        return dict(
            host=self.db_host,
            port=self.db_port,
            dbname=self.db_name,
            user=self.db_user,
            password=self.db_password,
            connect_timeout=self.db_connect_timeout,
        )


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _parse_connect_timeout(value: Optional[str]) -> int:
    if value is None or value == "":
        return 5
    try:
        timeout = float(value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def _to_csv(value: Optional[str], *, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if value is None:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


def _to_hours(value: Optional[str]) -> Tuple[int, ...]:
    raw_hours = _to_csv(value, default=())
    if not raw_hours:
        return _DEFAULT_BOOKING_HOURS
    hours = sorted({_to_int(item, default=0) for item in raw_hours})
    for hour in hours:
        if hour < 0 or hour > 23:
            raise ValueError(f"Booking hour out of range: {hour}")
    return tuple(hours)


def load_app_config(env: Optional[Mapping[str, str]] = None) -> AppConfig:
    """Load :class:`AppConfig` from environment variables."""

    env_mapping = os.environ if env is None else env

    store_backend = (env_mapping.get("STORE_BACKEND") or "postgres").strip().lower()
    if store_backend not in {"postgres", "memory"}:
        raise ValueError(f"Unsupported STORE_BACKEND {store_backend!r}")

    return AppConfig(
        db_host=env_mapping.get("DB_HOST", "127.0.0.1"),
        db_port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        db_name=env_mapping.get("DB_NAME", "massage_db"),
        db_user=env_mapping.get("DB_USER", "massage_user"),
        db_password=env_mapping.get("DB_PASSWORD", "massage_pass"),
        db_connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT")),
        store_backend=store_backend,
        auto_migrate=_to_bool(env_mapping.get("AUTO_MIGRATE"), default=False),
        seed_catalog=_to_bool(env_mapping.get("SEED_CATALOG"), default=True),
        jwt_secret_key=env_mapping.get("JWT_SECRET_KEY", "dev-secret-change-me"),
        jwt_algorithm="HS256",
        jwt_exp_minutes=max(1, _to_int(env_mapping.get("JWT_EXP_MINUTES"), default=60 * 24 * 7)),
        session_cookie_name=env_mapping.get("SESSION_COOKIE_NAME", "session"),
        cors_origins=_to_csv(env_mapping.get("CORS_ORIGINS"), default=("*",)),
        default_appointment_minutes=max(
            1, _to_int(env_mapping.get("DEFAULT_APPOINTMENT_MINUTES"), default=60)
        ),
        booking_hours=_to_hours(env_mapping.get("BOOKING_HOURS")),
        mock_payment_method=env_mapping.get("MOCK_PAYMENT_METHOD", "mock_card"),
    )
