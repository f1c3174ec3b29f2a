"""Order System Connectors - Pluggable purchase-order system integrations.

This package contains the abstract order connector interface and concrete
implementations for specific systems (NetSuite).

This package handles:
- System-specific authentication headers
- Data transformation (wire format <-> normalized order model)
- API communication, retries and error mapping
- Reading the list of order codes to process

Key Design Principle:
- The reconciliation driver depends ONLY on the OrderConnector interface
- All methods return NORMALIZED types (PurchaseOrder, ExpenseLine, etc.)
- No NetSuite-specific types leak through the interface

To add a new system:
1. Create a new folder (e.g., odoo/)
2. Implement OrderConnector
3. Register using @register_connector decorator
"""

from connectors.order_base import (
    # Core interface
    OrderConnector,
    ConnectionStatus,

    # Normalized order types
    RecordRef,
    ExpenseLine,
    ItemLine,
    PurchaseOrder,

    # Factory functions
    create_connector,
    register_connector,
    list_available_connectors,
)
from connectors.order_codes import OrderCodeRow, CsvOrderCodeSource, rows_from_codes

__all__ = [
    # Core interface
    "OrderConnector",
    "ConnectionStatus",

    # Normalized order types
    "RecordRef",
    "ExpenseLine",
    "ItemLine",
    "PurchaseOrder",

    # Factory
    "create_connector",
    "register_connector",
    "list_available_connectors",

    # Order code source
    "OrderCodeRow",
    "CsvOrderCodeSource",
    "rows_from_codes",
]
