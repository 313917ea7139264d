#!/usr/bin/env python3
"""Run a fuzzy search against a collection in the configured SQLite database.

Usage:
    uv run python scripts/search_collection.py <collection> <term> [--columns name,description]
        [--filter 'status = "active"'] [--sort -created] [--debug]
"""

import asyncio
import logging
import sys

from src.core import db_client
from src.core.logging import configure_logfire
from src.domain.search import BaseQuery
from src.services.search_service import fuzzy_search


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def print_usage() -> None:
    """Print usage information."""
    logger.info(__doc__)


def _option(args: list[str], flag: str) -> str | None:
    """Return the value following a flag, exiting if the flag has no value."""
    if flag not in args:
        return None
    index = args.index(flag)
    if index + 1 >= len(args):
        sys.exit(1)
    return args[index + 1]


async def main() -> None:
    """Main entry point."""
    args = sys.argv[1:]

    if len(args) < 2 or "--help" in args or "-h" in args:
        print_usage()
        return

    configure_logfire()

    collection, term = args[0], args[1]
    columns_option = _option(args, "--columns")
    columns = [c.strip() for c in columns_option.split(",") if c.strip()] if columns_option else None

    base_query = BaseQuery(
        collection=collection,
        filter_query=_option(args, "--filter") or "",
        sort=_option(args, "--sort") or "",
    )

    try:
        results = await fuzzy_search(base_query, term, columns, debug="--debug" in args)
    finally:
        await db_client.close_connection()

    if not results:
        logger.info("No matches")
        return

    for rank, record in enumerate(results, start=1):
        logger.info(f"{rank:>3}. {record}")


if __name__ == "__main__":
    asyncio.run(main())
