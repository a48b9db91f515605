#!/usr/bin/env python3
"""
Create an admin account.

Usage: python scripts/create_admin.py admin@example.com "Str0ng!Password" --name "Site Admin"
"""

import argparse
import sys

from sqlalchemy import insert, select

from perfectmatch.core.auth import hash_password
from perfectmatch.db import tables
from perfectmatch.db.postgres import engine, get_db_session
from perfectmatch.db.tables import init_schema
from perfectmatch.utils.password import validate_password_strength


def main():
    parser = argparse.ArgumentParser(description="Create a PerfectMatchSchools admin user")
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name", default="Administrator")
    args = parser.parse_args()

    strength = validate_password_strength(args.password)
    if not strength.meets_minimum:
        print("Password too weak: " + "; ".join(strength.feedback))
        sys.exit(1)

    init_schema(engine)
    email = args.email.strip().lower()
    with get_db_session() as db:
        existing = db.execute(select(tables.users.c.id).where(tables.users.c.email == email)).fetchone()
        if existing:
            print(f"User {email} already exists (id={existing[0]})")
            sys.exit(1)
        user_id = db.execute(
            insert(tables.users).values(
                email=email, password_hash=hash_password(args.password),
                role="admin", full_name=args.name, is_active=True,
            )
        ).inserted_primary_key[0]

    print(f"Admin {email} created (id={user_id})")


if __name__ == "__main__":
    main()
