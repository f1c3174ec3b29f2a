"""Line rebuilder.

Builds the replacement line collections for an order: existing item lines
renumbered from 1, followed by one new item line per converted expense,
plus the expense lines that were kept. All arithmetic is Decimal.

Rate for a converted line, first positive value wins:
    expense rate -> item base price -> expense amount
Quantity is amount / rate, or 1 when the rate is not positive.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from connectors.order_base import ExpenseLine, ItemLine, RecordRef
from reconciliation.models import ClassifiedLine, RebuildResult
from reference_cache.models import CatalogItem

ZERO = Decimal("0")
ONE = Decimal("1")


def _positive(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is not None and value > ZERO:
        return value
    return None


def conversion_amounts(expense: ExpenseLine, item: CatalogItem) -> Tuple[Decimal, Decimal]:
    """Compute (quantity, rate) for a converted expense line."""
    if expense.amount is None:
        # No amount to spread: one unit at the catalog price
        return ONE, item.base_price if item.base_price is not None else ZERO

    rate = _positive(expense.rate) or _positive(item.base_price) or expense.amount
    if rate > ZERO:
        return expense.amount / rate, rate
    return ONE, expense.amount


def convert_line(classified: ClassifiedLine, line_number: int) -> ItemLine:
    """Build the item line that replaces one expense line."""
    expense = classified.expense
    quantity, rate = conversion_amounts(expense, classified.item)
    return ItemLine(
        line_number=line_number,
        item_ref=RecordRef(id=classified.item.external_id, name=classified.item.name or None),
        quantity=quantity,
        rate=rate,
        description=expense.memo,
        department_ref=expense.department_ref,
        location_ref=expense.location_ref,
    )


def rebuild(
    existing_items: Sequence[ItemLine],
    to_convert: Sequence[ClassifiedLine],
    to_keep: Sequence[ExpenseLine],
) -> RebuildResult:
    """Build the full replacement item and expense line lists.

    Args:
        existing_items: Item lines currently on the order
        to_convert: Classified expense lines to turn into items
        to_keep: Expense lines that stay expenses

    Returns:
        RebuildResult; expense_lines is always a list, possibly empty
    """
    item_lines: List[ItemLine] = []

    for existing in existing_items:
        item_lines.append(existing.model_copy(update={"line_number": len(item_lines) + 1}))

    for classified in to_convert:
        item_lines.append(convert_line(classified, len(item_lines) + 1))

    return RebuildResult(item_lines=item_lines, expense_lines=list(to_keep))


def planned_conversions(to_convert: Sequence[ClassifiedLine]) -> List[Dict[str, Any]]:
    """Describe each planned conversion (for dry-run output and logs)."""
    plan = []
    for classified in to_convert:
        quantity, rate = conversion_amounts(classified.expense, classified.item)
        plan.append({
            "account_number": classified.account.account_number,
            "account_name": classified.account.name,
            "mapped_name": classified.mapped_name,
            "item_id": classified.item.external_id,
            "item_name": classified.item.name,
            "item_number": classified.item.item_number,
            "strategy": classified.strategy.value,
            "amount": str(classified.expense.amount) if classified.expense.amount is not None else None,
            "quantity": str(quantity),
            "rate": str(rate),
        })
    return plan
