"""
Show the item and expense lines of one purchase order.

Usage:
    python scripts/show_po_lines.py PO1042
    python scripts/show_po_lines.py 88231 --by-id
"""

import argparse
import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from connectors.netsuite import NetSuiteConnector
from connectors.order_base import PurchaseOrder
from core.config import Environment, ReconcileConfig
from core.errors import ConfigError, NotFoundError, RemoteError


def _ref(ref) -> str:
    if ref is None:
        return "-"
    return f"{ref.name} ({ref.id})" if ref.name else ref.id


def print_order(order: PurchaseOrder) -> None:
    print(f"Purchase order {order.tran_id} (internal id {order.external_id})")
    print(f"  Vendor: {_ref(order.entity_ref)}")
    if order.tran_date:
        print(f"  Date:   {order.tran_date.isoformat()}")
    if order.memo:
        print(f"  Memo:   {order.memo}")

    print(f"\nItem lines ({len(order.item_lines)}):")
    for line in order.item_lines:
        print(
            f"  {line.line_number:>3}  {_ref(line.item_ref)}  "
            f"qty={line.quantity}  rate={line.rate}  {line.description or ''}"
        )

    print(f"\nExpense lines ({len(order.expense_lines)}):")
    for index, line in enumerate(order.expense_lines, start=1):
        print(
            f"  {line.line or index:>3}  {_ref(line.account_ref)}  "
            f"amount={line.amount}  dept={_ref(line.department_ref)}  {line.memo or ''}"
        )


async def show(identifier: str, by_id: bool, environment: Environment) -> int:
    async with NetSuiteConnector(environment=environment) as connector:
        try:
            if by_id:
                order = await connector.get_order_by_id(identifier)
            else:
                order = await connector.get_order_by_code(identifier)
        except NotFoundError:
            order = None
        except RemoteError as e:
            print(f"Error: {e}")
            return 1

    if order is None:
        print(f"Purchase order {identifier} not found")
        return 1

    print_order(order)
    return 0


def main():
    parser = argparse.ArgumentParser(description="Show item and expense lines of a purchase order")
    parser.add_argument("identifier", help="Order code (tranId) or internal id with --by-id")
    parser.add_argument("--by-id", action="store_true", help="Treat identifier as internal id")
    parser.add_argument("--environment", choices=[e.value for e in Environment])
    args = parser.parse_args()

    try:
        environment = (
            Environment.parse(args.environment) if args.environment
            else ReconcileConfig.from_env().environment
        )
        sys.exit(asyncio.run(show(args.identifier, args.by_id, environment)))
    except ConfigError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
