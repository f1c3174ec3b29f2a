"""
Reconciliation Driver Tests

End-to-end runs against the in-memory connector:
1. Converted / skipped / error outcomes per order
2. Dry-run never writes
3. Second run over a converted order is a no-op
4. One failing order never stops the batch
5. ConfigError halts before any order
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest

from conftest import InMemoryConnector, expense, make_order
from connectors.order_base import ItemLine, RecordRef
from connectors.order_codes import rows_from_codes
from core.errors import ConfigError, NotFoundError, RemoteError
from reconciliation.driver import ReconciliationDriver
from reconciliation.models import OutcomeKind


def run(driver, codes):
    return asyncio.run(driver.run(rows_from_codes(codes)))


class TestScenarios:

    def test_stationery_scenario(self, cache, config):
        order = make_order("PO1", expense_lines=[expense("512", "100")])
        connector = InMemoryConnector([order])
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1"])

        assert summary.outcomes[0].kind == OutcomeKind.CONVERTED
        assert summary.outcomes[0].converted_count == 1
        assert len(connector.updates) == 1

        written = connector.updates[0]
        assert written.expense_lines == []
        assert len(written.item_lines) == 1
        line = written.item_lines[0]
        assert line.line_number == 1
        assert line.item_ref.id == "901"
        assert line.rate == Decimal("20.00")
        assert line.quantity == Decimal("100") / Decimal("20.00")

    def test_excluded_only_match_skips(self, cache, config):
        line = expense("514", "100")
        connector = InMemoryConnector([make_order("PO1", expense_lines=[line])])
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1"])

        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NO_MATCH
        assert summary.outcomes[0].kept_count == 1
        assert connector.updates == []
        assert connector.orders["PO1"].expense_lines == [line]

    def test_pass_through_fields_reasserted(self, cache, config):
        existing = ItemLine(line_number=4, item_ref=RecordRef(id="801"), quantity=Decimal("1"))
        order = make_order(
            "PO1",
            expense_lines=[expense("512", "40"), expense("515", "10")],
            item_lines=[existing],
        )
        connector = InMemoryConnector([order])
        run(ReconciliationDriver(connector, cache, config), ["PO1"])

        written = connector.updates[0]
        assert written.external_id == order.external_id
        assert written.entity_ref == order.entity_ref
        assert written.header == order.header
        assert [l.line_number for l in written.item_lines] == [1, 2]
        assert [e.account_ref.id for e in written.expense_lines] == ["515"]


class TestOutcomes:

    def test_not_found(self, cache, config):
        summary = run(ReconciliationDriver(InMemoryConnector(), cache, config), ["PO404"])
        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NOT_FOUND

    def test_not_found_error_is_a_skip(self, cache, config):
        connector = InMemoryConnector()
        connector.fail_fetches["PO9"] = NotFoundError("gone")
        summary = run(ReconciliationDriver(connector, cache, config), ["PO9"])
        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NOT_FOUND
        assert summary.errors == 0

    def test_no_expenses(self, cache, config):
        order = make_order("PO1", item_lines=[ItemLine(line_number=1, item_ref=RecordRef(id="801"))])
        connector = InMemoryConnector([order])
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1"])
        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NO_EXPENSES
        assert connector.updates == []

    def test_write_rejected(self, cache, config):
        connector = InMemoryConnector([make_order("PO1", expense_lines=[expense("512", "100")])])
        connector.fail_updates["PO1"] = RemoteError("Invalid item reference", 400)
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1"])
        outcome = summary.outcomes[0]
        assert outcome.kind == OutcomeKind.ERROR
        assert "Invalid item reference" in outcome.reason


class TestBatchBehaviour:

    def test_failure_isolated_to_one_order(self, cache, config):
        connector = InMemoryConnector([
            make_order("PO1", expense_lines=[expense("512", "100")]),
            make_order("PO3", expense_lines=[expense("512", "60")], external_id="3"),
        ])
        connector.fail_fetches["PO2"] = RuntimeError("connection reset")
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1", "PO2", "PO3"])

        assert [o.kind for o in summary.outcomes] == [
            OutcomeKind.CONVERTED, OutcomeKind.ERROR, OutcomeKind.CONVERTED,
        ]
        assert summary.outcomes[1].reason == "connection reset"
        assert summary.counts()["converted"] == 2
        assert summary.errors == 1

    def test_dry_run_does_not_write(self, cache, config):
        config.dry_run = True
        connector = InMemoryConnector([
            make_order("PO1", expense_lines=[expense("512", "100"), expense("512", "50")]),
        ])
        connector.update_order = AsyncMock()
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1"])

        connector.update_order.assert_not_called()
        outcome = summary.outcomes[0]
        assert outcome.kind == OutcomeKind.CONVERTED
        assert outcome.dry_run is True
        assert outcome.converted_count == 2
        assert len(outcome.planned) == 2

    def test_second_run_is_noop(self, cache, config):
        connector = InMemoryConnector([make_order("PO1", expense_lines=[expense("512", "100")])])
        driver = ReconciliationDriver(connector, cache, config)
        run(driver, ["PO1"])
        summary = run(driver, ["PO1"])

        assert len(connector.updates) == 1
        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NO_EXPENSES

    def test_second_run_with_kept_lines_does_not_rewrite(self, cache, config):
        connector = InMemoryConnector([
            make_order("PO1", expense_lines=[expense("512", "100"), expense("515", "10")]),
        ])
        driver = ReconciliationDriver(connector, cache, config)
        run(driver, ["PO1"])
        summary = run(driver, ["PO1"])

        assert len(connector.updates) == 1
        assert summary.outcomes[0].kind == OutcomeKind.SKIPPED_NO_MATCH

    def test_inter_order_delay(self, cache, config):
        config.inter_order_delay_seconds = 0.25
        connector = InMemoryConnector()
        with patch("reconciliation.driver.asyncio.sleep", new=AsyncMock()) as sleep:
            run(ReconciliationDriver(connector, cache, config), ["A", "B", "C"])
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.25)

    def test_stop_between_orders(self, cache, config):
        connector = InMemoryConnector([make_order("PO1", expense_lines=[expense("512", "100")])])
        driver = ReconciliationDriver(connector, cache, config)
        original = connector.get_order_by_code

        async def fetch_then_stop(code):
            driver.request_stop()
            return await original(code)

        connector.get_order_by_code = fetch_then_stop
        summary = run(driver, ["PO1", "PO2", "PO3"])

        assert summary.total == 1
        assert summary.cancelled is True
        assert len(connector.updates) == 1

    def test_config_error_halts_before_any_order(self, cache, config, tmp_path):
        config.mapping_path = tmp_path / "missing.json"
        connector = InMemoryConnector([make_order("PO1", expense_lines=[expense("512", "100")])])
        connector.get_order_by_code = AsyncMock()

        with pytest.raises(ConfigError):
            run(ReconciliationDriver(connector, cache, config), ["PO1"])
        connector.get_order_by_code.assert_not_called()

    def test_summary_lines(self, cache, config):
        connector = InMemoryConnector([make_order("PO1", expense_lines=[expense("512", "100")])])
        summary = run(ReconciliationDriver(connector, cache, config), ["PO1", "PO2"])
        text = "\n".join(summary.as_lines())
        assert "Total orders: 2" in text
        assert "Converted: 1" in text
        assert "Skipped: 1" in text
        assert summary.by_kind()["skipped_not_found"] == 1
