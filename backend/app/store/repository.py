"""PostgreSQL implementation of the entitlement store."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

import psycopg2
import psycopg2.errors
import psycopg2.extras
from psycopg2.extensions import connection as PgConnection
from psycopg2.extensions import cursor as PgCursor

from ..exceptions import DuplicateActiveSubscription, EmailAlreadyRegistered
from .models import (
    Appointment,
    AppointmentStatus,
    BonusContent,
    PaymentRecord,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], PgConnection]

_ACTIVE_SUBSCRIPTION_INDEX = "user_subscriptions_one_active"


@contextmanager
def managed_connection(connect: ConnectionFactory, conn: Optional[PgConnection] = None):
    """Yield a connection, owning its transaction only when one was not supplied."""

    if conn is not None:
        yield conn
        return

    connection = connect()
    try:
        yield connection
        connection.commit()
    except Exception:
        connection.rollback()
        raise
    finally:
        connection.close()


def _row_to_user(row: dict) -> User:
    return User(**row)


def _row_to_plan(row: dict) -> SubscriptionPlan:
    return SubscriptionPlan(
        id=row["id"],
        name=row["name"],
        description=row["description"],
        price_monthly=row["price_monthly"],
        massages_per_month=int(row["massages_per_month"]),
        duration_minutes=int(row["duration_minutes"]),
        features=list(row.get("features") or []),
        is_active=bool(row["is_active"]),
    )


def _row_to_subscription(row: dict) -> Subscription:
    return Subscription(
        id=row["id"],
        user_id=row["user_id"],
        plan_id=row["plan_id"],
        status=SubscriptionStatus(row["status"]),
        massages_remaining=int(row["massages_remaining"]),
        start_date=row["start_date"],
        next_billing_date=row["next_billing_date"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_appointment(row: dict) -> Appointment:
    return Appointment(
        id=row["id"],
        user_id=row["user_id"],
        subscription_id=row.get("subscription_id"),
        date_time=row["date_time"],
        duration_minutes=int(row["duration_minutes"]),
        service_type=row["service_type"],
        status=AppointmentStatus(row["status"]),
        notes=row.get("notes"),
        created_at=row["created_at"],
    )


def _row_to_payment(row: dict) -> PaymentRecord:
    return PaymentRecord(**row)


def _row_to_content(row: dict) -> BonusContent:
    return BonusContent(**row)


def _is_violation_of(exc: psycopg2.Error, constraint: str) -> bool:
    diag = getattr(exc, "diag", None)
    return getattr(diag, "constraint_name", None) == constraint


class PostgresEntitlementStore:
    """Concrete store persisting entitlement records in PostgreSQL."""

    def __init__(self, connect: ConnectionFactory, *, conn: Optional[PgConnection] = None) -> None:
        self._connect = connect
        self._conn = conn

    @contextmanager
    def transaction(self) -> Iterator["PostgresEntitlementStore"]:
        if self._conn is not None:
            yield self
            return

        with managed_connection(self._connect) as connection:
            logger.debug("Opened entitlement store transaction")
            yield PostgresEntitlementStore(self._connect, conn=connection)

    @contextmanager
    def _cursor(self) -> Iterator[PgCursor]:
        with managed_connection(self._connect, self._conn) as connection:
            cursor = connection.cursor(cursor_factory=psycopg2.extras.RealDictCursor)
            try:
                yield cursor
            finally:
                cursor.close()

    # Users

    def get_user(self, user_id: int) -> Optional[User]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM users WHERE id = %s LIMIT 1", (user_id,))
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM users WHERE LOWER(email) = LOWER(%s) LIMIT 1",
                (email.strip(),),
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    def insert_user(self, user: User) -> User:
        with self._cursor() as cursor:
            try:
                cursor.execute(
                    """
                    INSERT INTO users (
                        email, password_hash, first_name, last_name, phone, created_at, updated_at
                    )
                    VALUES (%(email)s, %(password_hash)s, %(first_name)s, %(last_name)s,
                            %(phone)s, %(created_at)s, %(updated_at)s)
                    RETURNING *
                    """,
                    user.model_dump(exclude={"id"}),
                )
            except psycopg2.errors.UniqueViolation as exc:
                raise EmailAlreadyRegistered() from exc
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist user")
            return _row_to_user(row)

    def update_user_profile(
        self,
        user_id: int,
        *,
        first_name: str,
        last_name: str,
        phone: Optional[str],
        updated_at: datetime,
    ) -> Optional[User]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE users
                SET first_name = %s, last_name = %s, phone = %s, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (first_name, last_name, phone, updated_at, user_id),
            )
            row = cursor.fetchone()
            return _row_to_user(row) if row else None

    # Plans

    def list_plans(self, *, active_only: bool = True) -> Sequence[SubscriptionPlan]:
        query = "SELECT * FROM subscription_plans"
        if active_only:
            query += " WHERE is_active = TRUE"
        query += " ORDER BY id ASC"
        with self._cursor() as cursor:
            cursor.execute(query)
            rows = cursor.fetchall() or []
            return [_row_to_plan(row) for row in rows]

    def get_plan(self, plan_id: int) -> Optional[SubscriptionPlan]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM subscription_plans WHERE id = %s LIMIT 1", (plan_id,))
            row = cursor.fetchone()
            return _row_to_plan(row) if row else None

    def insert_plan(self, plan: SubscriptionPlan) -> SubscriptionPlan:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO subscription_plans (
                    name, description, price_monthly, massages_per_month,
                    duration_minutes, features, is_active
                )
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                RETURNING *
                """,
                (
                    plan.name,
                    plan.description,
                    plan.price_monthly,
                    plan.massages_per_month,
                    plan.duration_minutes,
                    psycopg2.extras.Json(list(plan.features)),
                    plan.is_active,
                ),
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist plan")
            return _row_to_plan(row)

    # Subscriptions

    def get_subscription(self, subscription_id: int) -> Optional[Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM user_subscriptions WHERE id = %s LIMIT 1",
                (subscription_id,),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def find_subscription(
        self,
        user_id: int,
        statuses: Sequence[SubscriptionStatus],
    ) -> Optional[Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM user_subscriptions
                WHERE user_id = %(user_id)s AND status = ANY(%(statuses)s)
                ORDER BY (status = %(active)s) DESC, start_date DESC, id DESC
                LIMIT 1
                """,
                {
                    "user_id": user_id,
                    "statuses": [status.value for status in statuses],
                    "active": SubscriptionStatus.ACTIVE.value,
                },
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def insert_subscription(self, subscription: Subscription) -> Subscription:
        with self._cursor() as cursor:
            try:
                cursor.execute(
                    """
                    INSERT INTO user_subscriptions (
                        user_id, plan_id, status, massages_remaining,
                        start_date, next_billing_date, created_at, updated_at
                    )
                    VALUES (%(user_id)s, %(plan_id)s, %(status)s, %(massages_remaining)s,
                            %(start_date)s, %(next_billing_date)s, %(created_at)s, %(updated_at)s)
                    RETURNING *
                    """,
                    {
                        "user_id": subscription.user_id,
                        "plan_id": subscription.plan_id,
                        "status": subscription.status.value,
                        "massages_remaining": subscription.massages_remaining,
                        "start_date": subscription.start_date,
                        "next_billing_date": subscription.next_billing_date,
                        "created_at": subscription.created_at,
                        "updated_at": subscription.updated_at,
                    },
                )
            except psycopg2.errors.UniqueViolation as exc:
                if _is_violation_of(exc, _ACTIVE_SUBSCRIPTION_INDEX):
                    raise DuplicateActiveSubscription() from exc
                raise
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist subscription")
            return _row_to_subscription(row)

    def transition_subscription(
        self,
        user_id: int,
        *,
        from_statuses: Sequence[SubscriptionStatus],
        to_status: SubscriptionStatus,
        updated_at: datetime,
    ) -> Optional[Subscription]:
        params: Dict[str, Any] = {
            "user_id": user_id,
            "from_statuses": [status.value for status in from_statuses],
            "to_status": to_status.value,
            "active": SubscriptionStatus.ACTIVE.value,
            "updated_at": updated_at,
        }
        with self._cursor() as cursor:
            try:
                cursor.execute(
                    """
                    UPDATE user_subscriptions
                    SET status = %(to_status)s, updated_at = %(updated_at)s
                    WHERE id = (
                        SELECT id
                        FROM user_subscriptions
                        WHERE user_id = %(user_id)s AND status = ANY(%(from_statuses)s)
                        ORDER BY (status = %(active)s) DESC, start_date DESC, id DESC
                        LIMIT 1
                        FOR UPDATE
                    )
                    AND status = ANY(%(from_statuses)s)
                    RETURNING *
                    """,
                    params,
                )
            except psycopg2.errors.UniqueViolation as exc:
                if _is_violation_of(exc, _ACTIVE_SUBSCRIPTION_INDEX):
                    raise DuplicateActiveSubscription() from exc
                raise
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def consume_credit(self, user_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE user_subscriptions
                SET massages_remaining = massages_remaining - 1, updated_at = %s
                WHERE user_id = %s AND status = %s AND massages_remaining > 0
                RETURNING *
                """,
                (updated_at, user_id, SubscriptionStatus.ACTIVE.value),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    def restore_credit(self, subscription_id: int, *, updated_at: datetime) -> Optional[Subscription]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE user_subscriptions
                SET massages_remaining = massages_remaining + 1, updated_at = %s
                WHERE id = %s
                RETURNING *
                """,
                (updated_at, subscription_id),
            )
            row = cursor.fetchone()
            return _row_to_subscription(row) if row else None

    # Payments

    def insert_payment(self, payment: PaymentRecord) -> PaymentRecord:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO payment_history (
                    user_id, subscription_id, amount, status,
                    payment_method, transaction_id, created_at
                )
                VALUES (%(user_id)s, %(subscription_id)s, %(amount)s, %(status)s,
                        %(payment_method)s, %(transaction_id)s, %(created_at)s)
                RETURNING *
                """,
                {
                    "user_id": payment.user_id,
                    "subscription_id": payment.subscription_id,
                    "amount": payment.amount,
                    "status": payment.status.value,
                    "payment_method": payment.payment_method,
                    "transaction_id": payment.transaction_id,
                    "created_at": payment.created_at,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist payment")
            return _row_to_payment(row)

    def list_payments(self, user_id: int) -> Sequence[PaymentRecord]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM payment_history
                WHERE user_id = %s
                ORDER BY created_at ASC, id ASC
                """,
                (user_id,),
            )
            rows = cursor.fetchall() or []
            return [_row_to_payment(row) for row in rows]

    # Appointments

    def insert_appointment(self, appointment: Appointment) -> Appointment:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO appointments (
                    user_id, subscription_id, date_time, duration_minutes,
                    service_type, status, notes, created_at
                )
                VALUES (%(user_id)s, %(subscription_id)s, %(date_time)s, %(duration_minutes)s,
                        %(service_type)s, %(status)s, %(notes)s, %(created_at)s)
                RETURNING *
                """,
                {
                    "user_id": appointment.user_id,
                    "subscription_id": appointment.subscription_id,
                    "date_time": appointment.date_time,
                    "duration_minutes": appointment.duration_minutes,
                    "service_type": appointment.service_type,
                    "status": appointment.status.value,
                    "notes": appointment.notes,
                    "created_at": appointment.created_at,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist appointment")
            return _row_to_appointment(row)

    def get_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        with self._cursor() as cursor:
            cursor.execute(
                "SELECT * FROM appointments WHERE id = %s AND user_id = %s LIMIT 1",
                (appointment_id, user_id),
            )
            row = cursor.fetchone()
            return _row_to_appointment(row) if row else None

    def list_appointments(
        self,
        user_id: int,
        *,
        since: Optional[datetime] = None,
        status: Optional[AppointmentStatus] = None,
    ) -> Sequence[Appointment]:
        clauses: List[str] = ["user_id = %s"]
        params: List[Any] = [user_id]
        if since is not None:
            clauses.append("date_time >= %s")
            params.append(since)
        if status is not None:
            clauses.append("status = %s")
            params.append(status.value)

        with self._cursor() as cursor:
            cursor.execute(
                f"""
                SELECT *
                FROM appointments
                WHERE {' AND '.join(clauses)}
                ORDER BY date_time ASC, id ASC
                """,
                tuple(params),
            )
            rows = cursor.fetchall() or []
            return [_row_to_appointment(row) for row in rows]

    def list_scheduled_between(self, start: datetime, end: datetime) -> Sequence[Appointment]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM appointments
                WHERE status = %s AND date_time >= %s AND date_time < %s
                ORDER BY date_time ASC, id ASC
                """,
                (AppointmentStatus.SCHEDULED.value, start, end),
            )
            rows = cursor.fetchall() or []
            return [_row_to_appointment(row) for row in rows]

    def cancel_appointment(self, appointment_id: int, user_id: int) -> Optional[Appointment]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                UPDATE appointments
                SET status = %s
                WHERE id = %s AND user_id = %s AND status = %s
                RETURNING *
                """,
                (
                    AppointmentStatus.CANCELLED.value,
                    appointment_id,
                    user_id,
                    AppointmentStatus.SCHEDULED.value,
                ),
            )
            row = cursor.fetchone()
            return _row_to_appointment(row) if row else None

    # Content

    def list_content(
        self,
        *,
        category: Optional[str] = None,
        include_subscriber_only: bool = True,
        featured_only: bool = False,
        limit: Optional[int] = None,
    ) -> Sequence[BonusContent]:
        clauses: List[str] = []
        params: List[Any] = []
        if category is not None:
            clauses.append("category = %s")
            params.append(category)
        if not include_subscriber_only:
            clauses.append("subscriber_only = FALSE")
        if featured_only:
            clauses.append("is_featured = TRUE")

        query = "SELECT * FROM bonus_content"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        query += " ORDER BY published_at DESC, id DESC"
        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)

        with self._cursor() as cursor:
            cursor.execute(query, tuple(params))
            rows = cursor.fetchall() or []
            return [_row_to_content(row) for row in rows]

    def get_content(self, content_id: int) -> Optional[BonusContent]:
        with self._cursor() as cursor:
            cursor.execute("SELECT * FROM bonus_content WHERE id = %s LIMIT 1", (content_id,))
            row = cursor.fetchone()
            return _row_to_content(row) if row else None

    def insert_content(self, item: BonusContent) -> BonusContent:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO bonus_content (
                    title, description, content_type, content_url, thumbnail_url, duration,
                    category, is_featured, subscriber_only, published_at, created_at
                )
                VALUES (%(title)s, %(description)s, %(content_type)s, %(content_url)s,
                        %(thumbnail_url)s, %(duration)s, %(category)s, %(is_featured)s,
                        %(subscriber_only)s, %(published_at)s, %(created_at)s)
                RETURNING *
                """,
                {
                    **item.model_dump(exclude={"id", "content_type"}),
                    "content_type": item.content_type.value,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist content")
            return _row_to_content(row)


__all__ = ["PostgresEntitlementStore", "managed_connection"]
