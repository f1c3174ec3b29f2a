"""Reference Cache Module.

Local, environment-partitioned copy of the order system's accounts and
catalog items, used to resolve expense accounts and mapped item names
without a remote call per line.

Key components:
- models: Pydantic models for accounts, items and match results
- db: SQLite operations for the cache tables
- lookup: ReferenceCache with ordered item match strategies
- sync: Pull accounts/items from a connector into the cache
"""

from reference_cache.models import (
    Account,
    CatalogItem,
    ItemMatch,
    ItemMatchStatus,
    MatchStrategy,
    STRATEGY_ORDER,
)
from reference_cache.db import (
    DEFAULT_DB_PATH,
    init_reference_cache_db,
    upsert_account,
    upsert_item,
    find_account,
    find_item_candidates,
    count_reference_records,
    clear_reference_cache,
)
from reference_cache.lookup import ReferenceCache
from reference_cache.sync import (
    SyncStats,
    sync_accounts,
    sync_items,
    fetch_item_detail_with_retry,
)

__all__ = [
    # Models
    "Account",
    "CatalogItem",
    "ItemMatch",
    "ItemMatchStatus",
    "MatchStrategy",
    "STRATEGY_ORDER",
    # Database
    "DEFAULT_DB_PATH",
    "init_reference_cache_db",
    "upsert_account",
    "upsert_item",
    "find_account",
    "find_item_candidates",
    "count_reference_records",
    "clear_reference_cache",
    # Lookup
    "ReferenceCache",
    # Sync
    "SyncStats",
    "sync_accounts",
    "sync_items",
    "fetch_item_detail_with_retry",
]
