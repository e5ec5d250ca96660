#!/usr/bin/env python3
"""
seed_library.py: Prepare an Antakshari database for a party

Creates the schema if needed, then optionally loads the demo catalog,
fills in placeholder songs for every code the fixed rotation refers to,
and creates the host account.

Usage:
    python scripts/seed_library.py --catalog
    python scripts/seed_library.py --catalog --replace
    python scripts/seed_library.py --placeholders --admin
    python scripts/seed_library.py --all

Flags:
    --catalog       Insert the demo catalog (10 songs per language)
    --replace       Empty the catalog before seeding it
    --placeholders  Create placeholder songs for missing rotation codes
    --admin         Create the host account from ADMIN_EMAIL / ADMIN_PASSWORD
    --all           All of the above (without --replace)
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from antakshari.database import init_db  # noqa: E402
from antakshari.services.seeding import (  # noqa: E402
    ensure_admin_user,
    seed_catalog,
    seed_rotation_placeholders,
)


async def _run(args: argparse.Namespace) -> None:
    if args.catalog or args.all:
        created = await seed_catalog(replace=args.replace)
        print(f"🌱 Demo catalog: {created} song(s) added")

    if args.placeholders or args.all:
        created = await seed_rotation_placeholders()
        print(f"🌱 Rotation placeholders: {created} song(s) added")

    if args.admin or args.all:
        result = await ensure_admin_user()
        state = "created" if result["created"] else "not created"
        print(f"👤 Host account {result['email']}: {state}")


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Seed the Antakshari song catalog and host account",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--catalog", action="store_true", help="Insert the demo catalog")
    parser.add_argument(
        "--replace", action="store_true", help="Empty the catalog before seeding it"
    )
    parser.add_argument(
        "--placeholders",
        action="store_true",
        help="Create placeholder songs for missing rotation codes",
    )
    parser.add_argument("--admin", action="store_true", help="Create the host account")
    parser.add_argument("--all", action="store_true", help="Do everything")
    args = parser.parse_args()

    if not (args.catalog or args.placeholders or args.admin or args.all):
        parser.print_help()
        return 1

    init_db()
    asyncio.run(_run(args))
    return 0


if __name__ == "__main__":
    sys.exit(main())
