from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import psycopg2.errors
import psycopg2.extras
import pytest

from backend.app.exceptions import DuplicateActiveSubscription, EmailAlreadyRegistered
from backend.app.store import (
    AppointmentStatus,
    PostgresEntitlementStore,
    Subscription,
    SubscriptionPlan,
    SubscriptionStatus,
    User,
)
from backend.app.store import repository
from backend.app.store.schema import SCHEMA_STATEMENTS, initialize_schema

NOW = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


class FakeCursor:
    def __init__(self, *, fetchone_result=None, fetchall_result=None, raises=None):
        self.fetchone_result = fetchone_result
        self.fetchall_result = list(fetchall_result or [])
        self.raises = raises
        self.execute_calls = []
        self.closed = False

    def execute(self, query, params=None):
        self.execute_calls.append((" ".join(query.split()), params))
        if self.raises is not None:
            raise self.raises

    def fetchone(self):
        return self.fetchone_result

    def fetchall(self):
        return list(self.fetchall_result)

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False


class FakeConnection:
    def __init__(self, *cursors):
        self._cursors = list(cursors)
        self.cursor_calls = []
        self.commits = 0
        self.rollbacks = 0
        self.closed = False

    def cursor(self, *args, **kwargs):
        self.cursor_calls.append((args, kwargs))
        if not self._cursors:
            raise AssertionError("No cursors configured")
        return self._cursors.pop(0)

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1

    def close(self):
        self.closed = True


def _subscription_row(**overrides):
    row = {
        "id": 7,
        "user_id": 3,
        "plan_id": 2,
        "status": "active",
        "massages_remaining": 1,
        "start_date": NOW,
        "next_billing_date": NOW + timedelta(days=31),
        "created_at": NOW,
        "updated_at": NOW,
    }
    row.update(overrides)
    return row


def test_consume_credit_is_a_single_conditional_update():
    cursor = FakeCursor(fetchone_result=_subscription_row(massages_remaining=0))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    updated = store.consume_credit(3, updated_at=NOW)

    assert updated.massages_remaining == 0
    query, params = cursor.execute_calls[0]
    assert query.startswith("UPDATE user_subscriptions SET massages_remaining = massages_remaining - 1")
    assert "status = %s AND massages_remaining > 0 RETURNING *" in query
    assert params == (NOW, 3, "active")
    assert conn.cursor_calls[0][1] == {"cursor_factory": psycopg2.extras.RealDictCursor}
    assert cursor.closed
    assert conn.commits == 0


def test_consume_credit_returns_none_when_no_row_matches():
    cursor = FakeCursor(fetchone_result=None)
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    assert store.consume_credit(3, updated_at=NOW) is None


def test_restore_credit_increments_by_id():
    cursor = FakeCursor(fetchone_result=_subscription_row(massages_remaining=2))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    store.restore_credit(7, updated_at=NOW)

    query, params = cursor.execute_calls[0]
    assert "massages_remaining = massages_remaining + 1" in query
    assert params == (NOW, 7)


def test_transition_subscription_locks_and_prefers_active():
    cursor = FakeCursor(fetchone_result=_subscription_row(status="cancelled"))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    updated = store.transition_subscription(
        3,
        from_statuses=[SubscriptionStatus.ACTIVE, SubscriptionStatus.PAUSED],
        to_status=SubscriptionStatus.CANCELLED,
        updated_at=NOW,
    )

    assert updated.status == SubscriptionStatus.CANCELLED
    query, params = cursor.execute_calls[0]
    assert "FOR UPDATE" in query
    assert "ORDER BY (status = %(active)s) DESC, start_date DESC, id DESC" in query
    assert params["from_statuses"] == ["active", "paused"]
    assert params["to_status"] == "cancelled"


def test_transition_to_active_maps_index_violation(monkeypatch):
    cursor = FakeCursor(raises=psycopg2.errors.UniqueViolation("duplicate key"))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)
    monkeypatch.setattr(repository, "_is_violation_of", lambda exc, constraint: True)

    with pytest.raises(DuplicateActiveSubscription):
        store.transition_subscription(
            3,
            from_statuses=[SubscriptionStatus.PAUSED],
            to_status=SubscriptionStatus.ACTIVE,
            updated_at=NOW,
        )


def test_insert_subscription_reraises_unrelated_unique_violation():
    cursor = FakeCursor(raises=psycopg2.errors.UniqueViolation("duplicate key"))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    with pytest.raises(psycopg2.errors.UniqueViolation):
        store.insert_subscription(
            Subscription(
                user_id=3,
                plan_id=2,
                massages_remaining=2,
                start_date=NOW,
                next_billing_date=NOW,
                created_at=NOW,
                updated_at=NOW,
            )
        )


def test_insert_user_maps_unique_violation():
    cursor = FakeCursor(raises=psycopg2.errors.UniqueViolation("duplicate key"))
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    with pytest.raises(EmailAlreadyRegistered):
        store.insert_user(
            User(
                email="member@example.com",
                password_hash="hash",
                first_name="Test",
                last_name="User",
                created_at=NOW,
                updated_at=NOW,
            )
        )


def test_insert_plan_serialises_features_as_json():
    row = {
        "id": 1,
        "name": "Wellness",
        "description": "Ideal for active recovery",
        "price_monthly": Decimal("159.00"),
        "massages_per_month": 2,
        "duration_minutes": 60,
        "features": ["Priority booking"],
        "is_active": True,
    }
    cursor = FakeCursor(fetchone_result=row)
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    plan = store.insert_plan(
        SubscriptionPlan(
            name="Wellness",
            description="Ideal for active recovery",
            price_monthly=Decimal("159.00"),
            massages_per_month=2,
            duration_minutes=60,
            features=["Priority booking"],
        )
    )

    assert plan.features == ["Priority booking"]
    _, params = cursor.execute_calls[0]
    assert isinstance(params[5], psycopg2.extras.Json)
    assert params[5].adapted == ["Priority booking"]


def test_cancel_appointment_only_matches_scheduled_rows():
    cursor = FakeCursor(fetchone_result=None)
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    assert store.cancel_appointment(5, 3) is None

    query, params = cursor.execute_calls[0]
    assert query.startswith("UPDATE appointments SET status = %s")
    assert params == (
        AppointmentStatus.CANCELLED.value,
        5,
        3,
        AppointmentStatus.SCHEDULED.value,
    )


def test_list_content_builds_filters_for_non_subscribers():
    cursor = FakeCursor(fetchall_result=[])
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn, conn=conn)

    assert store.list_content(category="wellness", include_subscriber_only=False, limit=5) == []

    query, params = cursor.execute_calls[0]
    assert query == (
        "SELECT * FROM bonus_content WHERE category = %s AND subscriber_only = FALSE "
        "ORDER BY published_at DESC, id DESC LIMIT %s"
    )
    assert params == ("wellness", 5)


def test_transaction_commits_and_closes_owned_connection():
    cursor = FakeCursor(fetchone_result=None)
    conn = FakeConnection(cursor)
    store = PostgresEntitlementStore(lambda: conn)

    with store.transaction() as tx:
        assert tx is not store
        tx.get_plan(1)

    assert conn.commits == 1
    assert conn.rollbacks == 0
    assert conn.closed


def test_transaction_rolls_back_on_error():
    conn = FakeConnection()
    store = PostgresEntitlementStore(lambda: conn)

    with pytest.raises(RuntimeError):
        with store.transaction():
            raise RuntimeError("boom")

    assert conn.commits == 0
    assert conn.rollbacks == 1
    assert conn.closed


def test_initialize_schema_runs_every_statement():
    cursor = FakeCursor()
    conn = FakeConnection(cursor)

    initialize_schema(conn)

    assert len(cursor.execute_calls) == len(SCHEMA_STATEMENTS)
    assert any("WHERE status = 'active'" in query for query, _ in cursor.execute_calls)
    assert any("CHECK (massages_remaining >= 0)" in query for query, _ in cursor.execute_calls)
    assert conn.commits == 1
