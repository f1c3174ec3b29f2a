"""Account-number to catalog-item-name mapping."""

from core.mapping.loader import AccountItemMapping, load_mapping

__all__ = [
    "AccountItemMapping",
    "load_mapping",
]
