"""
Line Classifier Tests

Each expense line either converts (account resolves, number is mapped,
mapped name finds a usable item) or is kept with a recorded reason.
"""

import pytest

from conftest import expense, make_order
from core.config import Environment
from core.errors import ResolutionMiss
from reconciliation.classifier import classify
from reference_cache.models import MatchStrategy


class TestClassify:

    def test_mapped_line_converts(self, mapping, cache, config):
        order = make_order(expense_lines=[expense("512", "100", memo="Pens")])
        result = classify(order, mapping, cache, config)
        assert len(result.to_convert) == 1
        assert result.to_keep == []
        line = result.to_convert[0]
        assert line.item.external_id == "901"
        assert line.account.account_number == "4010"
        assert line.mapped_name == "Stationery"
        assert line.strategy == MatchStrategy.NAME_CONTAINS

    @pytest.mark.parametrize("account_id,reason", [
        (None, ResolutionMiss.NO_ACCOUNT_REF),
        ("999", ResolutionMiss.ACCOUNT_NOT_FOUND),
        ("515", ResolutionMiss.NOT_MAPPED),
        ("513", ResolutionMiss.ITEM_NOT_FOUND),
        ("514", ResolutionMiss.ITEM_EXCLUDED),
    ])
    def test_unresolvable_lines_are_kept(self, mapping, cache, config, account_id, reason):
        line = expense(account_id, "50")
        order = make_order(expense_lines=[line])
        result = classify(order, mapping, cache, config)
        assert result.to_convert == []
        assert result.to_keep == [line]
        assert [m.reason for m in result.misses] == [reason]

    def test_conservation_and_order(self, mapping, cache, config):
        lines = [
            expense("515", "10", memo="a"),
            expense("512", "20", memo="b"),
            expense("514", "30", memo="c"),
            expense("512", "40", memo="d"),
            expense(None, "50", memo="e"),
        ]
        order = make_order(expense_lines=lines)
        result = classify(order, mapping, cache, config)

        assert result.is_conserved(order)
        assert [c.expense.memo for c in result.to_convert] == ["b", "d"]
        assert [e.memo for e in result.to_keep] == ["a", "c", "e"]
        converted_ids = {id(c.expense) for c in result.to_convert}
        assert not any(id(e) in converted_ids for e in result.to_keep)

    def test_identical_inputs_identical_result(self, mapping, cache, config):
        order = make_order(expense_lines=[expense("512", "20"), expense("513", "30")])
        first = classify(order, mapping, cache, config)
        second = classify(order, mapping, cache, config)
        assert first.model_dump() == second.model_dump()

    def test_excluded_kept_in_production_too(self, mapping, cache, config):
        config.environment = Environment.PRODUCTION
        order = make_order(expense_lines=[expense("514", "30")])
        result = classify(order, mapping, cache, config)
        assert result.to_convert == []
        assert result.misses[0].reason == ResolutionMiss.ITEM_EXCLUDED

    def test_environment_selects_partition(self, mapping, cache, config, cache_db):
        from reference_cache.db import upsert_account
        from reference_cache.models import Account

        # Account only known in sandbox
        upsert_account(Account(external_id="700", account_number="4010", is_sandbox=True), cache_db)
        order = make_order(expense_lines=[expense("700", "30")])

        assert len(classify(order, mapping, cache, config).to_convert) == 1
        config.environment = Environment.PRODUCTION
        result = classify(order, mapping, cache, config)
        assert result.misses[0].reason == ResolutionMiss.ACCOUNT_NOT_FOUND

    def test_miss_counts(self, mapping, cache, config):
        order = make_order(expense_lines=[expense("513", "1"), expense("513", "2"), expense("515", "3")])
        result = classify(order, mapping, cache, config)
        assert result.miss_counts() == {"item_not_found": 2, "not_mapped": 1}

    def test_line_in_both_partitions_is_not_conserved(self, mapping, cache, config):
        from reconciliation.models import Classification

        first, second = expense("512", "20"), expense("515", "30")
        order = make_order(expense_lines=[first, second])
        converted = classify(order, mapping, cache, config).to_convert

        assert Classification(to_convert=converted, to_keep=[second]).is_conserved(order)
        assert not Classification(to_convert=converted, to_keep=[first]).is_conserved(order)
