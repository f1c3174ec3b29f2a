"""
Sync NetSuite accounts and catalog items into the local reference cache.

Usage:
    python scripts/sync_reference_cache.py                 # accounts + items
    python scripts/sync_reference_cache.py --accounts-only
    python scripts/sync_reference_cache.py --items-only --no-detail
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from connectors.netsuite import NetSuiteConnector
from core.config import Environment, ReconcileConfig
from core.errors import ConfigError, RemoteError
from core.observability.logging import configure_logging
from reference_cache.db import count_reference_records
from reference_cache.sync import sync_accounts, sync_items


async def sync(config: ReconcileConfig, accounts: bool, items: bool, fetch_detail: bool) -> int:
    async with NetSuiteConnector(environment=config.environment) as connector:
        try:
            if accounts:
                stats = await sync_accounts(connector, config.environment, config.db_path)
                print(f"Accounts: {stats.processed} processed, {stats.created} created, {stats.updated} updated")
            if items:
                stats = await sync_items(
                    connector, config.environment, config.db_path, fetch_detail=fetch_detail
                )
                print(
                    f"Items: {stats.processed} processed, {stats.created} created, "
                    f"{stats.updated} updated, {stats.degraded} without detail"
                )
        except RemoteError as e:
            print(f"Sync failed: {e}")
            return 1

    counts = count_reference_records(config.environment.is_sandbox, config.db_path)
    print(f"Cache ({config.environment.value}): {counts['accounts']} accounts, {counts['items']} items")
    return 0


def main():
    parser = argparse.ArgumentParser(description="Sync NetSuite reference data into the local cache")
    parser.add_argument("--environment", choices=[e.value for e in Environment])
    parser.add_argument("--db", help="Reference cache database path")
    group = parser.add_mutually_exclusive_group()
    group.add_argument("--accounts-only", action="store_true")
    group.add_argument("--items-only", action="store_true")
    parser.add_argument("--no-detail", action="store_true", help="Skip per-item price lookups")
    args = parser.parse_args()

    configure_logging()

    try:
        config = ReconcileConfig.from_env()
        if args.environment:
            config.environment = Environment.parse(args.environment)
        if args.db:
            config.db_path = Path(args.db)
        exit_code = asyncio.run(sync(
            config,
            accounts=not args.items_only,
            items=not args.accounts_only,
            fetch_detail=not args.no_detail,
        ))
    except ConfigError as e:
        print(f"Configuration error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
