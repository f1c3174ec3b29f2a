"""Account-to-item mapping loader.

Reads the mapping table that says which catalog item replaces an expense
posted against a given account number. The table is loaded once per run.

Expected format (po_items.json):
[
    {"account_number": "6100", "name": "Stationery"},
    {"account_number": 6200, "name": "Printing Services"}
]
"""

import json
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple, Union

from core.errors import ConfigError
from core.observability.logging import get_logger

logger = get_logger(__name__)


class AccountItemMapping:
    """Account number -> mapped item name.

    Later entries for the same account number replace earlier ones.
    """

    def __init__(self, entries: Optional[Dict[str, str]] = None):
        self._entries: Dict[str, str] = dict(entries or {})

    def add(self, account_number: str, name: str) -> None:
        self._entries[account_number] = name

    def get(self, account_number: Optional[str]) -> Optional[str]:
        if account_number is None:
            return None
        return self._entries.get(str(account_number))

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._entries.items())

    def __contains__(self, account_number: object) -> bool:
        return str(account_number) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"AccountItemMapping({len(self._entries)} entries)"


def _normalize_key(value: Union[str, int, float]) -> str:
    """JSON exports often carry account numbers as numbers."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def load_mapping(path: Path) -> AccountItemMapping:
    """Load the account-to-item mapping from a JSON file.

    Args:
        path: Path to the mapping JSON file

    Returns:
        AccountItemMapping with last-write-wins semantics on duplicates

    Raises:
        ConfigError: If the file is missing, unparseable, not a list,
            or contains no usable entries
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Mapping file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to parse mapping file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to read mapping file {path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigError(f"Mapping file {path} must contain a JSON array")

    mapping = AccountItemMapping()
    skipped = 0
    for entry in data:
        if not isinstance(entry, dict):
            skipped += 1
            continue
        account_number = entry.get("account_number")
        name = entry.get("name")
        if account_number in (None, "") or not name:
            skipped += 1
            logger.debug(f"Skipping incomplete mapping entry: {entry}")
            continue
        mapping.add(_normalize_key(account_number), str(name))

    if not len(mapping):
        raise ConfigError(f"Mapping file {path} contains no usable entries")

    logger.info(
        f"Loaded {len(mapping)} account mappings from {path.name}",
        extra_fields={"entries": len(mapping), "skipped_entries": skipped},
    )
    return mapping
