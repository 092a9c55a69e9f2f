#!/usr/bin/env python3
"""Create the admin superuser (ADMIN_USERNAME / ADMIN_PASSWORD by default)."""

from __future__ import annotations

import argparse
import asyncio
import sys

from ivc.bootstrap import ensure_admin_user, init_database
from ivc.config import settings
from ivc.observability import configure_logging


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--email", default=settings.admin_username)
    parser.add_argument("--password", default=settings.admin_password)
    args = parser.parse_args(argv)

    configure_logging(settings.log_level, json_logs=False)
    init_database()
    created = asyncio.run(ensure_admin_user(args.email, args.password))
    print(f"Created admin user {args.email}" if created else f"{args.email} already exists")
    return 0


if __name__ == "__main__":
    sys.exit(main())
