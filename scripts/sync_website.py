#!/usr/bin/env python3
"""CLI script to sync one website's products and orders, or every enabled website."""

import argparse
import asyncio
import sys

import structlog
import orjson

from profit_service.main import configure_logging
from sync_worker.tasks.sync_websites import enabled_website_ids, run_website_sync

configure_logging()

logger = structlog.get_logger()


async def main(website_ids: list[int]) -> bool:
    """Sync websites one after another; returns True if all succeeded."""
    if not website_ids:
        website_ids = await enabled_website_ids()
        logger.info("Syncing enabled websites", website_ids=website_ids)

    all_ok = True
    for website_id in website_ids:
        result = await run_website_sync(website_id)
        print(orjson.dumps({"website_id": website_id, **result}).decode())
        all_ok = all_ok and result["success"]

    return all_ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "website_ids",
        nargs="*",
        type=int,
        help="Local website ids to sync (defaults to every enabled website)",
    )
    args = parser.parse_args()
    sys.exit(0 if asyncio.run(main(args.website_ids)) else 1)
