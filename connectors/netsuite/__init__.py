"""NetSuite Connector Package.

Implements the OrderConnector interface for NetSuite (SuiteTalk REST).
"""

from connectors.netsuite.ns_connector import (
    NetSuiteConnector,
    ns_to_purchase_order,
    purchase_order_update_payload,
    expense_line_to_ns,
    item_line_to_ns,
    item_record_type,
)
from connectors.netsuite.ns_client import NetSuiteApiClient, NetSuiteApiConfig, RetryConfig
from connectors.netsuite.ns_auth import NetSuiteTokenAuth
from connectors.netsuite.ns_models import (
    NSPurchaseOrder,
    NSExpenseLine,
    NSItemLine,
    NSItemDetail,
    NSAccountRow,
    NSItemRow,
)

__all__ = [
    # Connector
    "NetSuiteConnector",
    "ns_to_purchase_order",
    "purchase_order_update_payload",
    "expense_line_to_ns",
    "item_line_to_ns",
    "item_record_type",
    # Client
    "NetSuiteApiClient",
    "NetSuiteApiConfig",
    "RetryConfig",
    "NetSuiteTokenAuth",
    # Models
    "NSPurchaseOrder",
    "NSExpenseLine",
    "NSItemLine",
    "NSItemDetail",
    "NSAccountRow",
    "NSItemRow",
]
