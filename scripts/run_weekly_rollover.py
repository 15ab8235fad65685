#!/usr/bin/env python3
"""
Roll every user's week over.

Archives each stale current week and creates the new one from the user's
weekly goal templates. Safe to re-run: users already on today's week are
skipped, and a week already at the head of the archive is not archived
twice.

Usage:
    python scripts/run_weekly_rollover.py
    python scripts/run_weekly_rollover.py --date 2025-01-06 --user u1 --user u2

Requires:
    - .env file with MONGODB_URI (or DOCUMENT_STORE_MOCK_MODE=true)
"""

import asyncio
import json
import logging
import sys
from datetime import date
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from dreamspace.config.settings import get_settings
from dreamspace.core.weeks.isoweek import today_in
from dreamspace.core.weeks.rollover import WeeklyRolloverEngine
from dreamspace.infrastructure.documents.client import MongoConfig, create_document_store
from dreamspace.infrastructure.documents.repositories import (
    DreamsRepository,
    UserRepository,
    WeekRepository,
)


async def run(on: date | None, user_ids: list[str]) -> bool:
    settings = get_settings()

    missing = settings.validate_required_fields()
    if missing:
        print(f"ERROR: missing configuration: {', '.join(missing)}")
        return False

    store = create_document_store(
        config=MongoConfig(uri=settings.mongodb_uri, database=settings.mongodb_database),
        mock_mode=settings.document_store_mock_mode,
    )
    try:
        engine = WeeklyRolloverEngine(
            WeekRepository(store),
            DreamsRepository(store),
            today=lambda: today_in(settings.week_timezone),
        )
        if not user_ids:
            user_ids = await UserRepository(store).list_ids()

        print(f"Rolling over {len(user_ids)} user(s)")
        result = await engine.roll_over_all(user_ids, today=on)
    finally:
        await store.close()

    if result.failed:
        print(f"ERROR: {result.error_message}")
        return False

    print(json.dumps(result.data, indent=2, default=str))
    return result.data["failed"] == 0


def main():
    import argparse

    parser = argparse.ArgumentParser(description="Roll every user's week over")
    parser.add_argument("--date", type=date.fromisoformat, help="Pretend today is this date (YYYY-MM-DD)")
    parser.add_argument("--user", action="append", default=[], help="Only roll this user (repeatable)")
    args = parser.parse_args()

    logging.basicConfig(
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        level=get_settings().log_level.upper(),
    )

    success = asyncio.run(run(args.date, args.user))
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
