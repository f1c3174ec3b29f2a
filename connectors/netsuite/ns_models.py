"""NetSuite data models.

These are NetSuite-specific models that map to the SuiteTalk REST record
API and SuiteQL rows. They are separate from the normalized models in
connectors/order_base.py. Unknown fields are kept (extra="allow") so that
lines and headers can be written back unchanged.
"""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# NetSuite REST Record Models
# =============================================================================

class NSBaseModel(BaseModel):
    """Base model for NetSuite REST records."""

    class Config:
        populate_by_name = True
        extra = "allow"

    def passthrough_fields(self) -> Dict[str, Any]:
        """Unknown fields returned by NetSuite, minus hypermedia links."""
        extra = dict(self.model_extra or {})
        extra.pop("links", None)
        return extra


class NSRef(NSBaseModel):
    """Reference field, e.g. {"id": "512", "refName": "6100 Office Supplies"}."""
    id: Optional[str] = Field(None, alias="id")
    refName: Optional[str] = Field(None, alias="refName")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value) if value is not None else None


class NSExpenseLine(NSBaseModel):
    """Purchase order expense sublist line.

    Maps to: purchaseOrder.expense.items[]
    """
    line: Optional[int] = Field(None, alias="line")
    account: Optional[NSRef] = Field(None, alias="account")
    amount: Optional[Decimal] = Field(None, alias="amount")
    rate: Optional[Decimal] = Field(None, alias="rate")
    memo: Optional[str] = Field(None, alias="memo")
    department: Optional[NSRef] = Field(None, alias="department")
    location: Optional[NSRef] = Field(None, alias="location")


class NSItemLine(NSBaseModel):
    """Purchase order item sublist line.

    Maps to: purchaseOrder.item.items[]
    """
    line: Optional[int] = Field(None, alias="line")
    item: Optional[NSRef] = Field(None, alias="item")
    quantity: Optional[Decimal] = Field(None, alias="quantity")
    rate: Optional[Decimal] = Field(None, alias="rate")
    amount: Optional[Decimal] = Field(None, alias="amount")
    description: Optional[str] = Field(None, alias="description")
    department: Optional[NSRef] = Field(None, alias="department")
    location: Optional[NSRef] = Field(None, alias="location")


class NSExpenseSublist(NSBaseModel):
    items: List[NSExpenseLine] = Field(default_factory=list)
    totalResults: Optional[int] = None


class NSItemSublist(NSBaseModel):
    items: List[NSItemLine] = Field(default_factory=list)
    totalResults: Optional[int] = None


class NSPurchaseOrder(NSBaseModel):
    """NetSuite purchase order (fetched with expandSubResources=true).

    Maps to: /record/v1/purchaseOrder/{id}
    """
    id: Optional[str] = Field(None, alias="id")
    tranId: Optional[str] = Field(None, alias="tranId")
    entity: Optional[NSRef] = Field(None, alias="entity")
    memo: Optional[str] = Field(None, alias="memo")
    tranDate: Optional[date] = Field(None, alias="tranDate")
    item: Optional[NSItemSublist] = Field(None, alias="item")
    expense: Optional[NSExpenseSublist] = Field(None, alias="expense")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value) if value is not None else None


class NSItemDetail(NSBaseModel):
    """Catalog item record (any item record type), fields used by the cache.

    Maps to: /record/v1/{itemRecordType}/{id}
    """
    id: Optional[str] = Field(None, alias="id")
    itemId: Optional[str] = Field(None, alias="itemId")
    displayName: Optional[str] = Field(None, alias="displayName")
    description: Optional[str] = Field(None, alias="salesDescription")
    purchaseDescription: Optional[str] = Field(None, alias="purchaseDescription")
    basePrice: Optional[Decimal] = Field(None, alias="basePrice")
    rate: Optional[Decimal] = Field(None, alias="rate")
    cost: Optional[Decimal] = Field(None, alias="cost")
    purchaseUnit: Optional[NSRef] = Field(None, alias="purchaseUnit")
    saleUnit: Optional[NSRef] = Field(None, alias="saleUnit")
    isInactive: Optional[bool] = Field(None, alias="isInactive")

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value) if value is not None else None

    @property
    def price(self) -> Optional[Decimal]:
        for value in (self.basePrice, self.rate, self.cost):
            if value is not None:
                return value
        return None

    @property
    def unit_name(self) -> Optional[str]:
        unit = self.purchaseUnit or self.saleUnit
        return unit.refName if unit else None


# =============================================================================
# SuiteQL Row Models
# =============================================================================

def _flag(value) -> bool:
    """SuiteQL returns booleans as 'T'/'F'."""
    if isinstance(value, bool):
        return value
    return str(value).upper() in ("T", "TRUE", "1")


class NSAccountRow(NSBaseModel):
    """Row from: SELECT id, acctnumber, fullname, accttype, isinactive FROM account"""
    id: str
    acctnumber: Optional[str] = None
    fullname: Optional[str] = None
    accttype: Optional[str] = None
    isinactive: bool = False

    @field_validator("id", "acctnumber", mode="before")
    @classmethod
    def _as_str(cls, value):
        return str(value) if value is not None else None

    @field_validator("isinactive", mode="before")
    @classmethod
    def _as_flag(cls, value):
        return _flag(value)


class NSItemRow(NSBaseModel):
    """Row from: SELECT id, itemid, displayname, itemtype, subtype, description, isinactive FROM item"""
    id: str
    itemid: Optional[str] = None
    displayname: Optional[str] = None
    itemtype: Optional[str] = None
    subtype: Optional[str] = None
    description: Optional[str] = None
    isinactive: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def _as_str(cls, value):
        return str(value) if value is not None else None

    @field_validator("isinactive", mode="before")
    @classmethod
    def _as_flag(cls, value):
        return _flag(value)
