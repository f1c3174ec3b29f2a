"""NetSuite Connector Implementation.

Implements the OrderConnector interface for NetSuite (SuiteTalk REST).

Purchase orders are located by transaction code with a record-API query,
fetched with sublists expanded, and written back with a PATCH that
replaces the item and expense sublists in full.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional

from connectors.netsuite.ns_auth import NetSuiteTokenAuth
from connectors.netsuite.ns_client import NetSuiteApiClient, NetSuiteApiConfig
from connectors.netsuite.ns_models import (
    NSAccountRow,
    NSExpenseLine,
    NSItemDetail,
    NSItemLine,
    NSItemRow,
    NSPurchaseOrder,
    NSRef,
)
from connectors.order_base import (
    ConnectionStatus,
    ExpenseLine,
    ItemLine,
    OrderConnector,
    PurchaseOrder,
    RecordRef,
    register_connector,
)
from core.config import Environment
from core.errors import NotFoundError, RemoteError
from core.observability.logging import get_logger
from reference_cache.models import Account, CatalogItem

logger = get_logger(__name__)


PURCHASE_ORDER = "purchaseOrder"

ACCOUNT_QUERY = "SELECT id, acctnumber, fullname, accttype, isinactive FROM account"
ITEM_QUERY = "SELECT id, itemid, displayname, itemtype, subtype, description, isinactive FROM item"

# SuiteQL item type -> REST record type. "{sub}" is filled from the item subtype.
ITEM_RECORD_TYPES = {
    "InvtPart": "inventoryItem",
    "NonInvtPart": "nonInventory{sub}Item",
    "Service": "service{sub}Item",
    "OthCharge": "otherCharge{sub}Item",
    "Assembly": "assemblyItem",
    "Kit": "kitItem",
    "Discount": "discountItem",
    "Markup": "markupItem",
    "Description": "descriptionItem",
    "Subtotal": "subtotalItem",
    "Payment": "paymentItem",
    "GiftCert": "giftCertificateItem",
}


def item_record_type(itemtype: Optional[str], subtype: Optional[str] = None) -> Optional[str]:
    """Map a SuiteQL itemtype/subtype pair to the REST record type name."""
    if not itemtype:
        return None
    template = ITEM_RECORD_TYPES.get(itemtype)
    if template is None:
        return itemtype
    sub = (subtype or "Sale").strip().title() or "Sale"
    return template.format(sub=sub)


# =============================================================================
# Wire <-> normalized conversion
# =============================================================================

def _ref(ns_ref: Optional[NSRef]) -> Optional[RecordRef]:
    if ns_ref is None or not ns_ref.id:
        return None
    return RecordRef(id=ns_ref.id, name=ns_ref.refName)


def _ref_out(ref: Optional[RecordRef]) -> Optional[Dict[str, str]]:
    return {"id": ref.id} if ref else None


# Quantities, rates and amounts go on the wire at four decimal places
WIRE_SCALE = Decimal("0.0001")


def _number(value) -> Optional[float]:
    if value is None:
        return None
    return float(Decimal(value).quantize(WIRE_SCALE, rounding=ROUND_HALF_UP))


def ns_to_purchase_order(record: NSPurchaseOrder) -> PurchaseOrder:
    """Convert a fetched NetSuite purchase order to the normalized model."""
    if not record.id:
        raise RemoteError(f"Purchase order {record.tranId} has no internal id")

    expense_lines = [
        ExpenseLine(
            line=line.line,
            account_ref=_ref(line.account),
            amount=line.amount,
            rate=line.rate,
            memo=line.memo,
            department_ref=_ref(line.department),
            location_ref=_ref(line.location),
            extra=line.passthrough_fields(),
        )
        for line in (record.expense.items if record.expense else [])
    ]

    item_lines = []
    for index, line in enumerate(record.item.items if record.item else [], start=1):
        # Item lines are written back in full, so one that cannot be carried would be deleted
        if line.item is None or not line.item.id:
            raise RemoteError(f"Order {record.tranId}: item line {line.line or index} has no item reference")
        item_lines.append(ItemLine(
            line_number=line.line or index,
            item_ref=RecordRef(id=line.item.id, name=line.item.refName),
            quantity=line.quantity,
            rate=line.rate,
            description=line.description,
            department_ref=_ref(line.department),
            location_ref=_ref(line.location),
        ))

    return PurchaseOrder(
        external_id=record.id,
        tran_id=record.tranId,
        entity_ref=_ref(record.entity),
        memo=record.memo,
        tran_date=record.tranDate,
        expense_lines=expense_lines,
        item_lines=item_lines,
        header=record.passthrough_fields(),
    )


def expense_line_to_ns(line: ExpenseLine) -> Dict[str, Any]:
    """Serialize a kept expense line, including its pass-through fields."""
    data: Dict[str, Any] = dict(line.extra)
    optional = {
        "account": _ref_out(line.account_ref),
        "amount": _number(line.amount),
        "rate": _number(line.rate),
        "memo": line.memo,
        "department": _ref_out(line.department_ref),
        "location": _ref_out(line.location_ref),
    }
    data.update({k: v for k, v in optional.items() if v is not None})
    return data


def item_line_to_ns(line: ItemLine) -> Dict[str, Any]:
    """Serialize an item line."""
    data: Dict[str, Any] = {
        "line": line.line_number,
        "item": _ref_out(line.item_ref),
    }
    optional = {
        "quantity": _number(line.quantity),
        "rate": _number(line.rate),
        "description": line.description,
        "department": _ref_out(line.department_ref),
        "location": _ref_out(line.location_ref),
    }
    data.update({k: v for k, v in optional.items() if v is not None})
    return data


def purchase_order_update_payload(order: PurchaseOrder) -> Dict[str, Any]:
    """PATCH body replacing both sublists; expense items may be an empty list."""
    payload: Dict[str, Any] = {
        "item": {"items": [item_line_to_ns(line) for line in order.item_lines]},
        "expense": {"items": [expense_line_to_ns(line) for line in order.expense_lines]},
    }
    if order.entity_ref:
        payload["entity"] = {"id": order.entity_ref.id}
    return payload


# =============================================================================
# Connector
# =============================================================================

@register_connector("netsuite")
class NetSuiteConnector(OrderConnector):
    """NetSuite implementation of OrderConnector.

    Usage:
        connector = NetSuiteConnector(environment=Environment.SANDBOX)
        async with connector:
            order = await connector.get_order_by_code("PO1042")
    """

    def __init__(
        self,
        environment: Environment = Environment.SANDBOX,
        api_config: Optional[NetSuiteApiConfig] = None,
        auth_provider=None,
        client: Optional[NetSuiteApiClient] = None,
    ):
        super().__init__(environment)
        self.api_config = api_config or NetSuiteApiConfig.from_env(environment)
        self.auth_provider = auth_provider or NetSuiteTokenAuth.from_env()
        self.client = client or NetSuiteApiClient(self.auth_provider, self.api_config)

    async def connect(self) -> bool:
        connected = await self.client.connect()
        self._connection_status = ConnectionStatus.CONNECTED if connected else ConnectionStatus.FAILED
        if not connected:
            logger.error("NetSuite connection failed: no valid credentials")
        return connected

    async def disconnect(self) -> None:
        await self.client.disconnect()
        self._connection_status = ConnectionStatus.DISCONNECTED

    # =========================================================================
    # Purchase Orders
    # =========================================================================

    async def get_order_by_code(self, code: str) -> Optional[PurchaseOrder]:
        escaped = code.replace('"', '\\"')
        matches = await self.client.query_records(PURCHASE_ORDER, f'tranId IS "{escaped}"')
        if not matches:
            return None
        if len(matches) > 1:
            logger.warning(f"{len(matches)} purchase orders match {code}; using the first")

        order_id = str(matches[0]["id"])
        return await self.get_order_by_id(order_id)

    async def get_order_by_id(self, external_id: str) -> PurchaseOrder:
        data = await self.client.get_record(PURCHASE_ORDER, external_id, expand_sub_resources=True)
        if not data:
            raise NotFoundError(f"Purchase order {external_id} not found")
        return ns_to_purchase_order(NSPurchaseOrder.model_validate(data))

    async def update_order(self, order: PurchaseOrder) -> None:
        payload = purchase_order_update_payload(order)
        await self.client.update_record(
            PURCHASE_ORDER,
            order.external_id,
            payload,
            replace=["item", "expense"],
        )
        logger.info(
            f"Updated purchase order {order.tran_id or order.external_id}",
            extra_fields={
                "item_lines": len(order.item_lines),
                "expense_lines": len(order.expense_lines),
            },
        )

    # =========================================================================
    # Reference Data
    # =========================================================================

    async def list_accounts(self) -> List[Account]:
        rows = await self.client.suiteql(ACCOUNT_QUERY)
        accounts = []
        for row in rows:
            parsed = NSAccountRow.model_validate(row)
            accounts.append(Account(
                external_id=parsed.id,
                account_number=parsed.acctnumber,
                name=parsed.fullname or "",
                account_type=parsed.accttype,
                is_inactive=parsed.isinactive,
                is_sandbox=self.environment.is_sandbox,
            ))
        return accounts

    async def list_items(self) -> List[CatalogItem]:
        rows = await self.client.suiteql(ITEM_QUERY)
        items = []
        for row in rows:
            parsed = NSItemRow.model_validate(row)
            items.append(CatalogItem(
                external_id=parsed.id,
                name=parsed.displayname or parsed.itemid or "Unknown",
                item_number=parsed.itemid,
                item_type=item_record_type(parsed.itemtype, parsed.subtype),
                description=parsed.description,
                is_inactive=parsed.isinactive,
                is_sandbox=self.environment.is_sandbox,
            ))
        return items

    async def get_item_detail(self, item: CatalogItem) -> CatalogItem:
        if not item.item_type:
            raise NotFoundError(f"Item {item.external_id} has no record type")
        data = await self.client.get_record(item.item_type, item.external_id)
        detail = NSItemDetail.model_validate(data)
        return item.model_copy(update={
            "name": detail.displayName or item.name,
            "item_number": detail.itemId or item.item_number,
            "description": detail.description or detail.purchaseDescription or item.description,
            "base_price": detail.price,
            "unit_of_measure": detail.unit_name,
            "is_inactive": detail.isInactive if detail.isInactive is not None else item.is_inactive,
        })
