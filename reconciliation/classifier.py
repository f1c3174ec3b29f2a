"""Expense line classifier.

Decides, for each expense line on an order, whether it can become an item
line. A line converts only when its account resolves in the reference cache,
the account number is mapped to an item name, and that name resolves to a
usable catalog item. Everything else stays an expense.
"""

from core.config import ReconcileConfig
from core.errors import ResolutionMiss
from core.mapping import AccountItemMapping
from core.observability.logging import get_logger
from connectors.order_base import PurchaseOrder
from reconciliation.models import Classification, ClassifiedLine, LineMiss
from reference_cache.lookup import ReferenceCache
from reference_cache.models import ItemMatchStatus

logger = get_logger(__name__)


def classify(
    order: PurchaseOrder,
    mapping: AccountItemMapping,
    cache: ReferenceCache,
    config: ReconcileConfig,
) -> Classification:
    """Partition an order's expense lines into convertible and kept lines.

    Args:
        order: Order with its expense lines
        mapping: Account number -> mapped item name
        cache: Reference cache for account and item resolution
        config: Run configuration (environment, excluded item)

    Returns:
        Classification with to_convert, to_keep and misses
    """
    environment = config.environment
    result = Classification()

    for expense in order.expense_lines:
        if expense.account_ref is None:
            _keep(result, expense, ResolutionMiss.NO_ACCOUNT_REF, "line has no account")
            continue

        account = cache.resolve_account(expense.account_ref.id, environment)
        if account is None:
            _keep(
                result, expense, ResolutionMiss.ACCOUNT_NOT_FOUND,
                f"account {expense.account_ref.id} not in reference cache",
            )
            continue

        mapped_name = mapping.get(account.account_number)
        if mapped_name is None:
            _keep(
                result, expense, ResolutionMiss.NOT_MAPPED,
                f"account number {account.account_number} has no mapped item",
            )
            continue

        match = cache.resolve_item(mapped_name, environment)
        if match.status == ItemMatchStatus.EXCLUDED:
            logger.warning(
                f"Mapped item '{mapped_name}' for account {account.account_number} "
                f"only matches the excluded item; keeping expense line",
                extra_fields={"account_number": account.account_number, "mapped_name": mapped_name},
            )
            _keep(result, expense, ResolutionMiss.ITEM_EXCLUDED, f"'{mapped_name}' matches excluded item only")
            continue
        if match.status == ItemMatchStatus.NOT_FOUND:
            logger.warning(
                f"No catalog item found for mapped name '{mapped_name}' "
                f"(account {account.account_number}); keeping expense line",
                extra_fields={"account_number": account.account_number, "mapped_name": mapped_name},
            )
            _keep(result, expense, ResolutionMiss.ITEM_NOT_FOUND, f"no item matches '{mapped_name}'")
            continue

        result.to_convert.append(ClassifiedLine(
            expense=expense,
            account=account,
            mapped_name=mapped_name,
            item=match.item,
            strategy=match.strategy,
        ))

    return result


def _keep(result: Classification, expense, reason: ResolutionMiss, detail: str) -> None:
    logger.debug(f"Keeping expense line: {detail}")
    result.to_keep.append(expense)
    result.misses.append(LineMiss(expense=expense, reason=reason, detail=detail))
