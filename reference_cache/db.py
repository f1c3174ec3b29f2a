"""Reference Cache Database Operations.

This module handles all database operations for the local reference cache:
- Schema initialization
- Upserts for accounts and catalog items keyed by (external_id, is_sandbox)
- Lookups used by account resolution and the item match strategies

Rows are partitioned by environment (is_sandbox) so sandbox and production
records never mix.
"""

import sqlite3
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Optional

from reference_cache.models import Account, CatalogItem, MatchStrategy


# Default database path
DEFAULT_DB_PATH = Path(__file__).resolve().parents[1] / "po_reconcile.db"


def init_reference_cache_db(db_path: Path = DEFAULT_DB_PATH) -> None:
    """Initialize reference cache tables.

    Creates:
    - reference_account: accounts, unique per (external_id, is_sandbox)
    - reference_item: catalog items, unique per (external_id, is_sandbox)

    Args:
        db_path: Path to SQLite database file
    """
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reference_account (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                external_id TEXT NOT NULL,
                account_number TEXT,
                name TEXT NOT NULL DEFAULT '',
                account_type TEXT,
                is_inactive INTEGER DEFAULT 0,
                is_sandbox INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(external_id, is_sandbox)
            )
        """)

        cursor.execute("""
            CREATE TABLE IF NOT EXISTS reference_item (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                external_id TEXT NOT NULL,
                name TEXT NOT NULL DEFAULT '',
                item_number TEXT,
                item_type TEXT,
                base_price TEXT,
                description TEXT,
                unit_of_measure TEXT,
                is_inactive INTEGER DEFAULT 0,
                is_sandbox INTEGER NOT NULL,
                created_at TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                UNIQUE(external_id, is_sandbox)
            )
        """)

        cursor.execute("""
            CREATE INDEX IF NOT EXISTS idx_reference_item_partition
            ON reference_item(is_sandbox, is_inactive)
        """)

        conn.commit()
    finally:
        conn.close()


# =============================================================================
# Accounts
# =============================================================================

def upsert_account(account: Account, db_path: Path = DEFAULT_DB_PATH) -> str:
    """Insert or update an account.

    Returns:
        "created" or "updated"
    """
    now = datetime.utcnow().isoformat()
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id FROM reference_account
            WHERE external_id = ? AND is_sandbox = ?
        """, (account.external_id, 1 if account.is_sandbox else 0))
        row = cursor.fetchone()

        if row:
            cursor.execute("""
                UPDATE reference_account
                SET account_number = ?, name = ?, account_type = ?,
                    is_inactive = ?, updated_at = ?
                WHERE id = ?
            """, (
                account.account_number,
                account.name,
                account.account_type,
                1 if account.is_inactive else 0,
                now,
                row[0],
            ))
            result = "updated"
        else:
            cursor.execute("""
                INSERT INTO reference_account
                (external_id, account_number, name, account_type, is_inactive,
                 is_sandbox, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                account.external_id,
                account.account_number,
                account.name,
                account.account_type,
                1 if account.is_inactive else 0,
                1 if account.is_sandbox else 0,
                now,
                now,
            ))
            result = "created"

        conn.commit()
        return result
    finally:
        conn.close()


def find_account(
    external_id: str,
    is_sandbox: bool,
    db_path: Path = DEFAULT_DB_PATH,
) -> Optional[Account]:
    """Get an account by external id within an environment partition."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT * FROM reference_account
            WHERE external_id = ? AND is_sandbox = ?
        """, (external_id, 1 if is_sandbox else 0))
        row = cursor.fetchone()
        if row:
            return _row_to_account(row)
        return None
    finally:
        conn.close()


# =============================================================================
# Catalog Items
# =============================================================================

def upsert_item(item: CatalogItem, db_path: Path = DEFAULT_DB_PATH) -> str:
    """Insert or update a catalog item.

    Returns:
        "created" or "updated"
    """
    now = datetime.utcnow().isoformat()
    base_price = str(item.base_price) if item.base_price is not None else None
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        cursor.execute("""
            SELECT id FROM reference_item
            WHERE external_id = ? AND is_sandbox = ?
        """, (item.external_id, 1 if item.is_sandbox else 0))
        row = cursor.fetchone()

        if row:
            cursor.execute("""
                UPDATE reference_item
                SET name = ?, item_number = ?, item_type = ?, base_price = ?,
                    description = ?, unit_of_measure = ?, is_inactive = ?, updated_at = ?
                WHERE id = ?
            """, (
                item.name,
                item.item_number,
                item.item_type,
                base_price,
                item.description,
                item.unit_of_measure,
                1 if item.is_inactive else 0,
                now,
                row[0],
            ))
            result = "updated"
        else:
            cursor.execute("""
                INSERT INTO reference_item
                (external_id, name, item_number, item_type, base_price, description,
                 unit_of_measure, is_inactive, is_sandbox, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                item.external_id,
                item.name,
                item.item_number,
                item.item_type,
                base_price,
                item.description,
                item.unit_of_measure,
                1 if item.is_inactive else 0,
                1 if item.is_sandbox else 0,
                now,
                now,
            ))
            result = "created"

        conn.commit()
        return result
    finally:
        conn.close()


def find_item_candidates(
    strategy: MatchStrategy,
    term: str,
    is_sandbox: bool,
    noninventory_marker: str = "noninventory",
    db_path: Path = DEFAULT_DB_PATH,
) -> List[CatalogItem]:
    """Find active items in a partition that satisfy one match strategy.

    Name and item-number matching is a case-sensitive substring test.
    The non-inventory marker is matched case-insensitively against item_type.

    Returns:
        Matching items in cache insertion order
    """
    if strategy == MatchStrategy.NAME_CONTAINS:
        predicate = "instr(name, ?) > 0"
        params = [term]
    elif strategy == MatchStrategy.ITEM_NUMBER_CONTAINS:
        predicate = "instr(item_number, ?) > 0"
        params = [term]
    elif strategy == MatchStrategy.NONINVENTORY_NAME_OR_NUMBER:
        predicate = (
            "(instr(name, ?) > 0 OR instr(item_number, ?) > 0) "
            "AND instr(lower(item_type), ?) > 0"
        )
        params = [term, term, noninventory_marker.lower()]
    else:
        raise ValueError(f"Unknown match strategy: {strategy}")

    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    try:
        cursor = conn.cursor()
        cursor.execute(f"""
            SELECT * FROM reference_item
            WHERE is_sandbox = ? AND is_inactive = 0 AND {predicate}
            ORDER BY id
        """, [1 if is_sandbox else 0] + params)
        return [_row_to_item(row) for row in cursor.fetchall()]
    finally:
        conn.close()


# =============================================================================
# Maintenance
# =============================================================================

def count_reference_records(
    is_sandbox: Optional[bool] = None,
    db_path: Path = DEFAULT_DB_PATH,
) -> dict:
    """Count cached accounts and items, optionally for one partition."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        counts = {}
        for table, key in (("reference_account", "accounts"), ("reference_item", "items")):
            if is_sandbox is None:
                cursor.execute(f"SELECT COUNT(*) FROM {table}")
            else:
                cursor.execute(
                    f"SELECT COUNT(*) FROM {table} WHERE is_sandbox = ?",
                    (1 if is_sandbox else 0,),
                )
            counts[key] = cursor.fetchone()[0]
        return counts
    finally:
        conn.close()


def clear_reference_cache(
    is_sandbox: Optional[bool] = None,
    db_path: Path = DEFAULT_DB_PATH,
) -> None:
    """Delete cached records, optionally for one partition only."""
    conn = sqlite3.connect(db_path)
    try:
        cursor = conn.cursor()
        for table in ("reference_account", "reference_item"):
            if is_sandbox is None:
                cursor.execute(f"DELETE FROM {table}")
            else:
                cursor.execute(
                    f"DELETE FROM {table} WHERE is_sandbox = ?",
                    (1 if is_sandbox else 0,),
                )
        conn.commit()
    finally:
        conn.close()


# =============================================================================
# Row Mappers
# =============================================================================

def _row_to_account(row: sqlite3.Row) -> Account:
    """Convert database row to Account."""
    return Account(
        id=row["id"],
        external_id=row["external_id"],
        account_number=row["account_number"],
        name=row["name"],
        account_type=row["account_type"],
        is_inactive=bool(row["is_inactive"]),
        is_sandbox=bool(row["is_sandbox"]),
        updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
    )


def _row_to_item(row: sqlite3.Row) -> CatalogItem:
    """Convert database row to CatalogItem."""
    return CatalogItem(
        id=row["id"],
        external_id=row["external_id"],
        name=row["name"],
        item_number=row["item_number"],
        item_type=row["item_type"],
        base_price=Decimal(row["base_price"]) if row["base_price"] is not None else None,
        description=row["description"],
        unit_of_measure=row["unit_of_measure"],
        is_inactive=bool(row["is_inactive"]),
        is_sandbox=bool(row["is_sandbox"]),
        updated_at=datetime.fromisoformat(row["updated_at"]) if row["updated_at"] else None,
    )
