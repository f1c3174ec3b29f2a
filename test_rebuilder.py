"""
Line Rebuilder Tests

Covers rate/quantity derivation, renumbering, and the replacement lists.
"""

from decimal import Decimal

from conftest import expense
from connectors.order_base import ItemLine, RecordRef
from reconciliation.models import ClassifiedLine
from reconciliation.rebuilder import conversion_amounts, planned_conversions, rebuild
from reference_cache.models import Account, CatalogItem, MatchStrategy


def item(base_price=None) -> CatalogItem:
    return CatalogItem(
        external_id="901",
        name="Stationery Pack",
        item_number="STAT-001",
        item_type="noninventory",
        base_price=Decimal(base_price) if base_price is not None else None,
    )


def classified(expense_line, catalog_item=None) -> ClassifiedLine:
    return ClassifiedLine(
        expense=expense_line,
        account=Account(external_id="512", account_number="4010", name="Office Supplies"),
        mapped_name="Stationery",
        item=catalog_item or item("20"),
        strategy=MatchStrategy.NAME_CONTAINS,
    )


def existing(line_number: int, item_id: str) -> ItemLine:
    return ItemLine(
        line_number=line_number,
        item_ref=RecordRef(id=item_id),
        quantity=Decimal("2"),
        rate=Decimal("5"),
        description=f"existing {item_id}",
        department_ref=RecordRef(id="3"),
    )


class TestConversionAmounts:

    def test_expense_rate_first(self):
        quantity, rate = conversion_amounts(expense("512", "100", rate="25"), item("20"))
        assert (quantity, rate) == (Decimal("4"), Decimal("25"))

    def test_base_price_when_no_rate(self):
        quantity, rate = conversion_amounts(expense("512", "100"), item("20"))
        assert (quantity, rate) == (Decimal("5"), Decimal("20"))

    def test_amount_when_no_price(self):
        quantity, rate = conversion_amounts(expense("512", "150"), item(None))
        assert (quantity, rate) == (Decimal("1"), Decimal("150"))

    def test_zero_rate_never_divides(self):
        quantity, rate = conversion_amounts(expense("512", "150", rate="0"), item(None))
        assert rate == Decimal("150")
        assert quantity == Decimal("1")

    def test_zero_rate_and_zero_price(self):
        quantity, rate = conversion_amounts(expense("512", "150", rate="0"), item("0"))
        assert (quantity, rate) == (Decimal("1"), Decimal("150"))

    def test_zero_amount(self):
        quantity, rate = conversion_amounts(expense("512", "0"), item(None))
        assert (quantity, rate) == (Decimal("1"), Decimal("0"))

    def test_missing_amount_uses_base_price(self):
        quantity, rate = conversion_amounts(expense("512", None), item("20"))
        assert (quantity, rate) == (Decimal("1"), Decimal("20"))

    def test_decimal_precision(self):
        quantity, rate = conversion_amounts(expense("512", "0.30"), item("0.10"))
        assert quantity == Decimal("3")


class TestRebuild:

    def test_existing_then_converted_numbered_contiguously(self):
        existing_items = [existing(3, "801"), existing(7, "802")]
        to_convert = [
            classified(expense("512", "100", memo="Pens")),
            classified(expense("512", "40", memo="Paper")),
        ]
        result = rebuild(existing_items, to_convert, [])

        assert [line.line_number for line in result.item_lines] == [1, 2, 3, 4]
        assert [line.item_ref.id for line in result.item_lines] == ["801", "802", "901", "901"]
        assert [line.description for line in result.item_lines[2:]] == ["Pens", "Paper"]

    def test_existing_lines_keep_their_fields(self):
        original = existing(5, "801")
        result = rebuild([original], [], [])
        copied = result.item_lines[0]
        assert copied.line_number == 1
        assert copied.quantity == original.quantity
        assert copied.rate == original.rate
        assert copied.description == original.description
        assert copied.department_ref == original.department_ref
        assert original.line_number == 5

    def test_converted_line_copies_dimensions(self):
        line = expense("512", "100", memo="Pens")
        line = line.model_copy(update={
            "department_ref": RecordRef(id="3"),
            "location_ref": RecordRef(id="9"),
        })
        result = rebuild([], [classified(line)], [])
        new = result.item_lines[0]
        assert new.department_ref.id == "3"
        assert new.location_ref.id == "9"
        assert new.quantity == Decimal("5")
        assert new.rate == Decimal("20")

    def test_kept_expenses_unchanged_and_ordered(self):
        kept = [expense("515", "10", memo="a"), expense(None, "20", memo="b")]
        result = rebuild([], [], kept)
        assert result.expense_lines == kept

    def test_empty_expense_list_is_explicit(self):
        result = rebuild([], [classified(expense("512", "100"))], [])
        assert result.expense_lines == []
        assert isinstance(result.expense_lines, list)

    def test_planned_conversions(self):
        plan = planned_conversions([classified(expense("512", "100"))])
        assert plan[0]["account_number"] == "4010"
        assert plan[0]["item_id"] == "901"
        assert plan[0]["strategy"] == "name_contains"
        assert plan[0]["quantity"] == "5"
