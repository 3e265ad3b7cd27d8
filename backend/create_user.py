import getpass
from datetime import datetime, timezone

import psycopg2
from passlib.hash import bcrypt
from dotenv import load_dotenv

from backend.app.exceptions import EmailAlreadyRegistered
from backend.app.store import PostgresEntitlementStore, User
from backend.config import load_app_config

load_dotenv()


def main():
    config = load_app_config()
    email = input("Email: ").strip().lower()
    first_name = input("First name: ").strip()
    last_name = input("Last name: ").strip()
    phone = input("Phone (optional): ").strip() or None
    password = getpass.getpass("New password: ")

    store = PostgresEntitlementStore(lambda: psycopg2.connect(**config.db_settings))
    now = datetime.now(timezone.utc)
    try:
        user = store.insert_user(
            User(
                email=email,
                password_hash=bcrypt.hash(password),
                first_name=first_name,
                last_name=last_name,
                phone=phone,
                created_at=now,
                updated_at=now,
            )
        )
    except EmailAlreadyRegistered:
        print("Done. (Email existed already; it was unchanged.)")
        return
    print(f"Done. Created user {user.id}.")


if __name__ == "__main__":
    main()
