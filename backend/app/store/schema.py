"""DDL for the PostgreSQL entitlement store."""
from __future__ import annotations

import logging

from psycopg2.extensions import connection as PgConnection

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id SERIAL PRIMARY KEY,
        email TEXT NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        first_name TEXT NOT NULL,
        last_name TEXT NOT NULL,
        phone TEXT,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS subscription_plans (
        id SERIAL PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT NOT NULL,
        price_monthly NUMERIC(10, 2) NOT NULL CHECK (price_monthly >= 0),
        massages_per_month INTEGER NOT NULL CHECK (massages_per_month >= 0),
        duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
        features JSONB NOT NULL,
        is_active BOOLEAN NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_subscriptions (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        plan_id INTEGER NOT NULL REFERENCES subscription_plans(id),
        status TEXT NOT NULL CHECK (status IN ('active', 'paused', 'cancelled')),
        massages_remaining INTEGER NOT NULL CHECK (massages_remaining >= 0),
        start_date TIMESTAMPTZ NOT NULL,
        next_billing_date TIMESTAMPTZ NOT NULL,
        created_at TIMESTAMPTZ NOT NULL,
        updated_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE UNIQUE INDEX IF NOT EXISTS user_subscriptions_one_active
        ON user_subscriptions (user_id)
        WHERE status = 'active'
    """,
    """
    CREATE TABLE IF NOT EXISTS appointments (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        subscription_id INTEGER REFERENCES user_subscriptions(id),
        date_time TIMESTAMPTZ NOT NULL,
        duration_minutes INTEGER NOT NULL CHECK (duration_minutes > 0),
        service_type TEXT NOT NULL,
        status TEXT NOT NULL CHECK (status IN ('scheduled', 'completed', 'cancelled')),
        notes TEXT,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS appointments_user_date_time
        ON appointments (user_id, date_time)
    """,
    """
    CREATE TABLE IF NOT EXISTS bonus_content (
        id SERIAL PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        content_type TEXT NOT NULL,
        content_url TEXT NOT NULL,
        thumbnail_url TEXT,
        duration TEXT,
        category TEXT NOT NULL,
        is_featured BOOLEAN NOT NULL,
        subscriber_only BOOLEAN NOT NULL,
        published_at TIMESTAMPTZ NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS payment_history (
        id SERIAL PRIMARY KEY,
        user_id INTEGER NOT NULL REFERENCES users(id),
        subscription_id INTEGER REFERENCES user_subscriptions(id),
        amount NUMERIC(10, 2) NOT NULL,
        status TEXT NOT NULL CHECK (status IN ('pending', 'completed', 'failed')),
        payment_method TEXT NOT NULL,
        transaction_id TEXT NOT NULL,
        created_at TIMESTAMPTZ NOT NULL
    )
    """,
)


def initialize_schema(conn: PgConnection) -> None:
    """Create tables and indexes if they do not exist yet."""

    with conn.cursor() as cur:
        for statement in SCHEMA_STATEMENTS:
            cur.execute(statement)
    conn.commit()
    logger.info("Entitlement store schema ensured (%s statements)", len(SCHEMA_STATEMENTS))


__all__ = ["SCHEMA_STATEMENTS", "initialize_schema"]
