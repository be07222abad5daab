#!/usr/bin/env python
"""Submit a sync request to the portal and watch it until it finishes.

Usage:
    python scripts/submit_sync.py --company C1 --table orders
    python scripts/submit_sync.py --company C1 --contact K7 --table orders --no-wait
    python scripts/submit_sync.py --status-only C1a0b1c2d3-...
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from client.sync_client import PollPolicy, SyncPortalClient, SyncPortalError
from core.config import load_settings


def parse_args(argv=None) -> argparse.Namespace:
    settings = load_settings()
    parser = argparse.ArgumentParser(description="Submit and watch an ERP sync request")
    parser.add_argument("--url", default=os.getenv("PORTAL_URL", f"http://localhost:{settings.port}"))
    parser.add_argument("--token", default=settings.api_token)
    parser.add_argument("--company", help="COMPANY-ID header")
    parser.add_argument("--contact", help="CONTACT-ID header")
    parser.add_argument("--table", help="TABLE-NAME header")
    parser.add_argument("--status", help="STATUS header")
    parser.add_argument("--status-only", metavar="EVENT_ID", help="Only print the status of an existing request")
    parser.add_argument("--no-wait", action="store_true", help="Return right after submission")
    parser.add_argument("--deadline", type=float, default=600.0, help="Seconds to wait for a terminal status")
    args = parser.parse_args(argv)

    if not args.status_only and not (args.company and args.table):
        parser.error("--company and --table are required unless --status-only is given")
    return args


async def run(args: argparse.Namespace) -> int:
    async with SyncPortalClient(args.url, args.token) as client:
        if args.status_only:
            body = await client.get_status(args.status_only)
            if body is None:
                print(f"Not found (yet): {args.status_only}")
                return 1
            print(json.dumps(body, indent=2))
            return 0

        receipt = await client.submit(
            company_id=args.company,
            table_name=args.table,
            contact_id=args.contact,
            status=args.status,
        )
        print(json.dumps(receipt, indent=2))
        if args.no_wait:
            return 0

        final = await client.wait_for_completion(
            receipt["id"],
            PollPolicy(deadline_seconds=args.deadline),
        )
        print(json.dumps(final, indent=2))
        return 0 if final["status"] == "successful" else 2


def main():
    """Entry point."""
    args = parse_args()
    try:
        return asyncio.run(run(args))
    except SyncPortalError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
