#!/usr/bin/env python3
"""
Connection Check Script

Verify the database and email provider settings.
Usage: python scripts/check_connections.py
"""

from perfectmatch.core.config import get_settings
from perfectmatch.db.postgres import ping_database
from perfectmatch.services import email_service


def main():
    settings = get_settings()
    print("=" * 50)
    print("PERFECTMATCHSCHOOLS - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] Database...")
    if settings.database_url:
        print(f"    URL: {settings.database_url.split('@')[-1]}")
    else:
        print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    print("    CONNECTED" if ping_database() else "    FAILED")

    print("\n[2] Email (Resend)...")
    if email_service.is_configured():
        print(f"    Endpoint: {settings.resend_api_url}")
        print(f"    From: {settings.from_email}")
    else:
        print("    RESEND_API_KEY not configured; emails will stay queued")

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()
