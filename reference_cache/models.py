"""Reference Cache Data Models.

This module defines the Pydantic models for the local reference cache:
- Account: A chart-of-accounts entry mirrored from the order system
- CatalogItem: A purchasable catalog item mirrored from the order system
- MatchStrategy: The ordered item-matching strategies
- ItemMatch: The result of resolving a mapped item name
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class MatchStrategy(str, Enum):
    """Item matching strategies, tried in declaration order.

    All strategies require the item to be active and to belong to the
    requested environment partition.
    """
    NAME_CONTAINS = "name_contains"                               # name contains term
    ITEM_NUMBER_CONTAINS = "item_number_contains"                 # item number contains term
    NONINVENTORY_NAME_OR_NUMBER = "noninventory_name_or_number"   # either contains term, non-inventory type only


STRATEGY_ORDER = (
    MatchStrategy.NAME_CONTAINS,
    MatchStrategy.ITEM_NUMBER_CONTAINS,
    MatchStrategy.NONINVENTORY_NAME_OR_NUMBER,
)


class ItemMatchStatus(str, Enum):
    """Outcome of an item lookup."""
    FOUND = "found"
    EXCLUDED = "excluded"      # Only the excluded item matched; never used
    NOT_FOUND = "not_found"


class Account(BaseModel):
    """Chart-of-accounts entry.

    Attributes:
        external_id: Internal id in the order system
        account_number: Human account number; the key into the mapping table
        name: Account name
        account_type: Account type as reported by the order system
        is_inactive: Inactive accounts are still resolvable
        is_sandbox: Environment partition flag
    """
    id: Optional[int] = None
    external_id: str = Field(..., description="Order system internal id")
    account_number: Optional[str] = Field(default=None, description="Account number (mapping key)")
    name: str = Field(default="")
    account_type: Optional[str] = None
    is_inactive: bool = Field(default=False)
    is_sandbox: bool = Field(default=True)
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CatalogItem(BaseModel):
    """Catalog item that an expense line can be converted into."""
    id: Optional[int] = None
    external_id: str = Field(..., description="Order system internal id")
    name: str = Field(default="")
    item_number: Optional[str] = Field(default=None, description="Item code/number")
    item_type: Optional[str] = Field(default=None, description="Record type, e.g. 'nonInventoryPurchaseItem'")
    base_price: Optional[Decimal] = None
    description: Optional[str] = None
    unit_of_measure: Optional[str] = None
    is_inactive: bool = Field(default=False)
    is_sandbox: bool = Field(default=True)
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ItemMatch(BaseModel):
    """Result of resolving a mapped item name against the catalog.

    Attributes:
        status: FOUND, EXCLUDED or NOT_FOUND
        item: The selected item (FOUND only)
        strategy: Strategy that produced the selected item (or the exclusion)
        excluded_item: The excluded item that matched, when one did
        reasons: Human-readable trail of the strategies tried
    """
    mapped_name: str
    status: ItemMatchStatus
    item: Optional[CatalogItem] = None
    strategy: Optional[MatchStrategy] = None
    excluded_item: Optional[CatalogItem] = None
    reasons: List[str] = Field(default_factory=list)

    @property
    def found(self) -> bool:
        return self.status == ItemMatchStatus.FOUND
