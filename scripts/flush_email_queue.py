#!/usr/bin/env python3
"""
Deliver pending emails from the queue.

Usage: python scripts/flush_email_queue.py [--limit 50]
Run it from cron to keep the queue drained.
"""

import argparse

from perfectmatch.core.config import get_settings
from perfectmatch.core.logging_setup import setup_logging
from perfectmatch.services import email_service


def main():
    parser = argparse.ArgumentParser(description="Flush the pending email queue")
    parser.add_argument("--limit", type=int, default=50, help="Maximum emails to process")
    args = parser.parse_args()

    setup_logging(get_settings().log_level)
    counts = email_service.flush_email_queue(args.limit)
    print(
        f"Processed {counts['processed']}: {counts['sent']} sent, "
        f"{counts['retrying']} will retry, {counts['failed']} failed"
    )


if __name__ == "__main__":
    main()
