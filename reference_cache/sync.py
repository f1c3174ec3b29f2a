"""Reference Cache Sync.

Pulls accounts and catalog items from the order system into the local
cache partition for one environment.

Item detail (base price, unit of measure) needs one request per item. Those
requests are retried with increasing delay; if every attempt fails the item
is stored from its summary row so the cache still knows it exists.
"""

import asyncio
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Tuple

from core.config import Environment
from core.errors import NotFoundError, RemoteError
from core.observability.logging import get_logger, with_correlation
from reference_cache.db import (
    DEFAULT_DB_PATH,
    init_reference_cache_db,
    upsert_account,
    upsert_item,
)
from reference_cache.models import CatalogItem

logger = get_logger(__name__)


@dataclass
class SyncStats:
    """Counts from one sync pass."""
    processed: int = 0
    created: int = 0
    updated: int = 0
    degraded: int = 0   # Stored from summary data after detail retries failed

    def record(self, result: str) -> None:
        self.processed += 1
        if result == "created":
            self.created += 1
        else:
            self.updated += 1

    def to_dict(self) -> dict:
        return asdict(self)


async def sync_accounts(
    connector,
    environment: Environment,
    db_path: Path = DEFAULT_DB_PATH,
) -> SyncStats:
    """Upsert every account the connector lists into the environment partition.

    Args:
        connector: OrderConnector for the same environment
        environment: Partition to write into
        db_path: Reference cache database
    """
    init_reference_cache_db(db_path)
    stats = SyncStats()

    with with_correlation(environment=environment.value, stage="sync_accounts"):
        accounts = await connector.list_accounts()
        logger.info(f"Fetched {len(accounts)} accounts")

        for account in accounts:
            account = account.model_copy(update={"is_sandbox": environment.is_sandbox})
            stats.record(upsert_account(account, db_path))

        logger.info("Account sync complete", extra_fields=stats.to_dict())
    return stats


async def fetch_item_detail_with_retry(
    connector,
    item: CatalogItem,
    max_attempts: int = 3,
    retry_delay: float = 0.5,
) -> Tuple[CatalogItem, bool]:
    """Fetch full item detail, falling back to the summary on repeated failure.

    The wait after failed attempt n is ``retry_delay * n``.

    Returns:
        (item, degraded) where degraded is True if the summary was kept
    """
    for attempt in range(1, max_attempts + 1):
        try:
            return await connector.get_item_detail(item), False
        except (RemoteError, NotFoundError) as e:
            if attempt < max_attempts:
                logger.warning(
                    f"Item {item.external_id} detail failed ({e}), "
                    f"retrying in {retry_delay * attempt:.1f}s (attempt {attempt}/{max_attempts})"
                )
                await asyncio.sleep(retry_delay * attempt)
            else:
                logger.warning(
                    f"Item {item.external_id} detail failed after {max_attempts} attempts, "
                    f"storing summary data: {e}"
                )
    return item, True


async def sync_items(
    connector,
    environment: Environment,
    db_path: Path = DEFAULT_DB_PATH,
    fetch_detail: bool = True,
    max_attempts: int = 3,
    retry_delay: float = 0.5,
    inter_record_delay: float = 0.1,
) -> SyncStats:
    """Upsert every catalog item the connector lists into the environment partition.

    Args:
        connector: OrderConnector for the same environment
        environment: Partition to write into
        db_path: Reference cache database
        fetch_detail: Fetch base price / unit of measure per item
        max_attempts: Detail attempts per item before falling back
        retry_delay: Base delay between detail attempts
        inter_record_delay: Pause between detail requests
    """
    init_reference_cache_db(db_path)
    stats = SyncStats()

    with with_correlation(environment=environment.value, stage="sync_items"):
        items = await connector.list_items()
        logger.info(f"Fetched {len(items)} catalog items")

        for index, item in enumerate(items):
            if fetch_detail:
                item, degraded = await fetch_item_detail_with_retry(
                    connector, item, max_attempts, retry_delay
                )
                if degraded:
                    stats.degraded += 1
                if inter_record_delay and index < len(items) - 1:
                    await asyncio.sleep(inter_record_delay)

            item = item.model_copy(update={"is_sandbox": environment.is_sandbox})
            stats.record(upsert_item(item, db_path))

        logger.info("Item sync complete", extra_fields=stats.to_dict())
    return stats
