import logging
from datetime import datetime, timezone

import psycopg2
from dotenv import load_dotenv

from backend.app.store import PostgresEntitlementStore, seed_catalog
from backend.app.store.schema import initialize_schema
from backend.config import load_app_config

load_dotenv()


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    config = load_app_config()

    def connect():
        return psycopg2.connect(**config.db_settings)

    conn = connect()
    try:
        initialize_schema(conn)
    finally:
        conn.close()

    if config.seed_catalog:
        seed_catalog(PostgresEntitlementStore(connect), datetime.now(timezone.utc))
    print("Done.")


if __name__ == "__main__":
    main()
