#!/usr/bin/env python3
"""
Toggle the daily-limit override for one user.

A user with the override set bypasses both the paywall and the daily cap.

Usage:
    cd backend
    python scripts/set_usage_override.py <user_id>            # enable
    python scripts/set_usage_override.py <user_id> --disable  # back to metered
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from swift_assistant.infrastructure.db.database import close_db
from swift_assistant.infrastructure.db.repositories.entitlement_repository import (
    EntitlementRepository,
)
from swift_assistant.infrastructure.exceptions import ConfigurationError, StoreError

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


async def set_override(user_id: str, unlimited: bool) -> bool:
    repo = EntitlementRepository()
    try:
        return await repo.set_usage_override(user_id, unlimited)
    finally:
        await close_db()


def main():
    parser = argparse.ArgumentParser(description="Set or clear a user's usage-limit override")
    parser.add_argument("user_id", help="Identity provider user id")
    parser.add_argument(
        "--disable",
        action="store_true",
        help="Clear the override so the user is metered again",
    )
    args = parser.parse_args()

    unlimited = not args.disable
    try:
        updated = asyncio.run(set_override(args.user_id, unlimited))
    except (StoreError, ConfigurationError) as e:
        logger.error(f"Could not update user {args.user_id}: {e.message}")
        sys.exit(1)

    if not updated:
        logger.error(f"No user with id {args.user_id}")
        sys.exit(1)

    state = "unlimited" if unlimited else "metered"
    logger.info(f"User {args.user_id} is now {state}")


if __name__ == "__main__":
    main()
