"""Abstract Order Connector Interface.

This module defines the interface every order management system connector
implements. It is intentionally system-agnostic - no NetSuite specifics here.

Connectors implement this interface to:
1. Connect and authenticate with the order system
2. Look up purchase orders by transaction code or internal id
3. Write back rebuilt line collections (full replacement)
4. List accounts and catalog items for the local reference cache

Key Design Principles:
- All methods return NORMALIZED objects (PurchaseOrder, ExpenseLine, etc.)
- The reconciliation driver depends ONLY on this interface
- System-specific wire shapes live in connector subfolders
"""

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from core.config import Environment
from reference_cache.models import Account, CatalogItem


# =============================================================================
# Enums
# =============================================================================

class ConnectionStatus(str, Enum):
    """Connection status to the order system."""
    CONNECTED = "CONNECTED"
    DISCONNECTED = "DISCONNECTED"
    FAILED = "FAILED"


# =============================================================================
# Normalized Order Models (System-Agnostic)
# =============================================================================
# These models are what the classifier, rebuilder and driver see.

class RecordRef(BaseModel):
    """Reference to another record (account, item, department, vendor...)."""
    id: str = Field(..., description="Internal id in the order system")
    name: Optional[str] = Field(default=None, description="Display name, when returned")

    class Config:
        frozen = True


class ExpenseLine(BaseModel):
    """An expense (account-coded) line on a purchase order.

    Unknown fields from the order system are carried in ``extra`` so a kept
    line can be written back unchanged.
    """
    line: Optional[int] = None
    account_ref: Optional[RecordRef] = None
    amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    memo: Optional[str] = None
    department_ref: Optional[RecordRef] = None
    location_ref: Optional[RecordRef] = None
    extra: Dict[str, Any] = Field(default_factory=dict)


class ItemLine(BaseModel):
    """An item (catalog-coded) line on a purchase order."""
    line_number: int = Field(..., ge=1)
    item_ref: RecordRef
    quantity: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    description: Optional[str] = None
    department_ref: Optional[RecordRef] = None
    location_ref: Optional[RecordRef] = None


class PurchaseOrder(BaseModel):
    """A purchase order as seen by reconciliation.

    IMPORTANT: external_id and entity_ref are pass-through fields; they must
    be re-asserted unchanged on write-back.
    """
    external_id: str = Field(..., description="Internal id used for API calls")
    tran_id: Optional[str] = Field(default=None, description="Human-facing transaction code")
    entity_ref: Optional[RecordRef] = Field(default=None, description="Vendor/counterparty")
    memo: Optional[str] = None
    tran_date: Optional[date] = None
    expense_lines: List[ExpenseLine] = Field(default_factory=list)
    item_lines: List[ItemLine] = Field(default_factory=list)
    header: Dict[str, Any] = Field(default_factory=dict, description="Other header fields, verbatim")


# =============================================================================
# Abstract Connector Interface
# =============================================================================

class OrderConnector(ABC):
    """Abstract base class for order system connectors.

    Implementations:
    - connectors/netsuite/ns_connector.py
    """

    def __init__(self, environment: Environment = Environment.SANDBOX):
        self.environment = environment
        self._connection_status = ConnectionStatus.DISCONNECTED

    # =========================================================================
    # Connection Management
    # =========================================================================

    @abstractmethod
    async def connect(self) -> bool:
        """Establish connection to the order system.

        Returns:
            True if connection successful
        """
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Disconnect from the order system."""
        pass

    @property
    def connection_status(self) -> ConnectionStatus:
        """Get current connection status."""
        return self._connection_status

    async def __aenter__(self) -> "OrderConnector":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.disconnect()

    # =========================================================================
    # Purchase Orders
    # =========================================================================

    @abstractmethod
    async def get_order_by_code(self, code: str) -> Optional[PurchaseOrder]:
        """Find a purchase order by its transaction code.

        Returns:
            The order with both line collections, or None if no order matches

        Raises:
            RemoteError: If the lookup was rejected
        """
        pass

    @abstractmethod
    async def get_order_by_id(self, external_id: str) -> PurchaseOrder:
        """Fetch a purchase order by internal id.

        Raises:
            NotFoundError: If the order does not exist
            RemoteError: If the request was rejected
        """
        pass

    @abstractmethod
    async def update_order(self, order: PurchaseOrder) -> None:
        """Write back an order, replacing BOTH line collections.

        An empty expense_lines list clears all expense lines.

        Raises:
            RemoteError: If the update was rejected
        """
        pass

    # =========================================================================
    # Reference Data (for the local cache)
    # =========================================================================

    @abstractmethod
    async def list_accounts(self) -> List[Account]:
        """List chart-of-accounts entries for this connector's environment."""
        pass

    @abstractmethod
    async def list_items(self) -> List[CatalogItem]:
        """List catalog items (summary fields) for this connector's environment."""
        pass

    @abstractmethod
    async def get_item_detail(self, item: CatalogItem) -> CatalogItem:
        """Fetch full detail (base price, unit of measure) for one catalog item."""
        pass

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def get_connector_name(self) -> str:
        """Get the name of this connector."""
        return self.__class__.__name__


# =============================================================================
# Connector Factory
# =============================================================================

_connector_registry: Dict[str, type] = {}


def register_connector(connector_type: str):
    """Decorator to register a connector implementation."""
    def decorator(cls):
        _connector_registry[connector_type] = cls
        return cls
    return decorator


def create_connector(connector_type: str, **kwargs) -> OrderConnector:
    """Create a connector instance by registered type name.

    Raises:
        ValueError: If connector_type is not registered
    """
    connector_type = connector_type.lower()

    if connector_type not in _connector_registry:
        available = list(_connector_registry.keys())
        raise ValueError(
            f"Unknown connector type: {connector_type}. "
            f"Available: {available}"
        )

    connector_class = _connector_registry[connector_type]
    return connector_class(**kwargs)


def list_available_connectors() -> List[str]:
    """List all registered connector types."""
    return list(_connector_registry.keys())
