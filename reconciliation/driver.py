"""Reconciliation batch driver.

Processes a list of order codes strictly one at a time:

    Fetched -> Classified -> RebuildReady -> Written | DryRunReported | WriteFailed

with early exits to SkippedNotFound, SkippedNoExpenses and SkippedNoMatch.
A failure on one order is recorded and the run moves on to the next order;
only a configuration error stops the whole run.
"""

import asyncio
import uuid
from typing import Iterable, List, Optional

from connectors.order_base import OrderConnector, PurchaseOrder
from connectors.order_codes import OrderCodeRow
from core.config import ReconcileConfig
from core.errors import ConfigError, NotFoundError, RemoteError
from core.mapping import AccountItemMapping, load_mapping
from core.observability.logging import get_logger, log_run_summary, log_stage, with_correlation
from reconciliation.classifier import classify
from reconciliation.models import OrderOutcome, OutcomeKind, RunSummary
from reconciliation.rebuilder import planned_conversions, rebuild
from reference_cache.lookup import ReferenceCache

logger = get_logger(__name__)


class ReconciliationDriver:
    """Runs expense-to-item reconciliation over a batch of orders.

    Usage:
        driver = ReconciliationDriver(connector, ReferenceCache(config.db_path, config), config)
        summary = await driver.run(CsvOrderCodeSource(path))
        for line in summary.as_lines():
            print(line)
    """

    def __init__(
        self,
        connector: OrderConnector,
        cache: ReferenceCache,
        config: ReconcileConfig,
        mapping: Optional[AccountItemMapping] = None,
    ):
        self.connector = connector
        self.cache = cache
        self.config = config
        self._mapping_override = mapping
        self.mapping: Optional[AccountItemMapping] = None
        self._stop_requested = False

    def request_stop(self) -> None:
        """Stop after the order currently in flight; remaining orders are not started."""
        self._stop_requested = True

    async def run(self, order_codes: Iterable[OrderCodeRow]) -> RunSummary:
        """Process every order code and return the run summary.

        Raises:
            ConfigError: If the mapping cannot be loaded (before any order)
        """
        run_id = f"run-{uuid.uuid4().hex[:8]}"
        summary = RunSummary(
            run_id=run_id,
            environment=self.config.environment.value,
            dry_run=self.config.dry_run,
        )

        with with_correlation(run_id=run_id, environment=self.config.environment.value):
            # Loaded fresh every run; the file may change between runs
            if self._mapping_override is not None:
                self.mapping = self._mapping_override
            else:
                self.mapping = load_mapping(self.config.mapping_path)

            rows: List[OrderCodeRow] = list(order_codes)
            logger.info(
                f"Starting reconciliation of {len(rows)} order(s)"
                f"{' in dry-run mode' if self.config.dry_run else ''}"
            )

            for index, row in enumerate(rows):
                if self._stop_requested:
                    summary.cancelled = True
                    logger.warning(f"Stop requested; {len(rows) - index} order(s) not processed")
                    break

                with with_correlation(order_code=row.code, row_number=row.row_number):
                    outcome = await self._process_row(row)
                summary.add(outcome)

                if self.config.inter_order_delay_seconds > 0 and index < len(rows) - 1:
                    await asyncio.sleep(self.config.inter_order_delay_seconds)

            log_run_summary(summary.counts())
        return summary

    async def _process_row(self, row: OrderCodeRow) -> OrderOutcome:
        """Run one order, converting any failure into an ERROR outcome."""
        try:
            return await self.reconcile_order(row)
        except ConfigError:
            raise
        except Exception as e:
            logger.exception(f"Order {row.code} failed: {e}")
            return OrderOutcome(
                row_number=row.row_number,
                order_code=row.code,
                kind=OutcomeKind.ERROR,
                dry_run=self.config.dry_run,
                reason=str(e) or type(e).__name__,
            )

    async def reconcile_order(self, row: OrderCodeRow) -> OrderOutcome:
        """Run the per-order state machine for one order code."""
        outcome = OrderOutcome(
            row_number=row.row_number,
            order_code=row.code,
            kind=OutcomeKind.SKIPPED_NOT_FOUND,
            dry_run=self.config.dry_run,
        )

        try:
            order = await self.connector.get_order_by_code(row.code)
        except NotFoundError as e:
            order = None
            outcome.reason = str(e)
        if order is None:
            log_stage("skipped_not_found", f"Order {row.code} not found")
            return outcome

        outcome.order_id = order.external_id
        with with_correlation(order_id=order.external_id):
            log_stage(
                "fetched",
                f"Fetched order {row.code}",
                expense_lines=len(order.expense_lines),
                item_lines=len(order.item_lines),
            )

            if not order.expense_lines:
                outcome.kind = OutcomeKind.SKIPPED_NO_EXPENSES
                log_stage("skipped_no_expenses", f"Order {row.code} has no expense lines")
                return outcome

            classification = classify(order, self.mapping, self.cache, self.config)
            outcome.kept_count = len(classification.to_keep)
            log_stage(
                "classified",
                f"{len(classification.to_convert)} convertible, {len(classification.to_keep)} kept",
                misses=classification.miss_counts(),
            )

            if not classification.to_convert:
                outcome.kind = OutcomeKind.SKIPPED_NO_MATCH
                return outcome

            result = rebuild(order.item_lines, classification.to_convert, classification.to_keep)
            outcome.planned = planned_conversions(classification.to_convert)
            outcome.converted_count = len(classification.to_convert)
            log_stage("rebuild_ready", f"Rebuilt {len(result.item_lines)} item line(s)")

            if self.config.dry_run:
                for entry in outcome.planned:
                    logger.info(
                        f"[dry run] account {entry['account_number']} -> "
                        f"item {entry['item_name']} ({entry['item_id']}) via {entry['strategy']}",
                        extra_fields=entry,
                    )
                outcome.kind = OutcomeKind.CONVERTED
                log_stage("dry_run_reported", f"Order {row.code} not written (dry run)")
                return outcome

            updated = self._updated_order(order, result.item_lines, result.expense_lines)
            try:
                await self.connector.update_order(updated)
            except RemoteError as e:
                outcome.kind = OutcomeKind.ERROR
                outcome.reason = str(e)
                logger.error(f"Update of order {row.code} rejected: {e}")
                return outcome

            outcome.kind = OutcomeKind.CONVERTED
            log_stage("written", f"Order {row.code} updated", converted=outcome.converted_count)
            return outcome

    @staticmethod
    def _updated_order(order: PurchaseOrder, item_lines, expense_lines) -> PurchaseOrder:
        """Copy of the order with replaced lines and pass-through fields re-asserted."""
        return order.model_copy(update={
            "external_id": order.external_id,
            "entity_ref": order.entity_ref,
            "item_lines": list(item_lines),
            "expense_lines": list(expense_lines),
        })
