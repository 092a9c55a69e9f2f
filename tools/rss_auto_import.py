#!/usr/bin/env python3
"""Refresh auto-import feeds and import their newest items (run from cron)."""

from __future__ import annotations

import asyncio
import json
import sys

from ivc.bootstrap import init_database
from ivc.config import settings
from ivc.database import SessionLocal
from ivc.observability import configure_logging
from ivc.services.rss_service import rss_service


async def run() -> dict:
    db = SessionLocal()
    try:
        result = await rss_service.auto_import(db)
    finally:
        db.close()
    return result.model_dump()


def main() -> int:
    configure_logging(settings.log_level, json_logs=settings.is_production)
    init_database()
    summary = asyncio.run(run())
    print(json.dumps(summary))
    return 1 if summary["feed_errors"] and not summary["feeds_processed"] else 0


if __name__ == "__main__":
    sys.exit(main())
