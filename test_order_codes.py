"""Order code source tests."""

import pytest

from connectors.order_codes import CsvOrderCodeSource, OrderCodeRow, rows_from_codes
from core.errors import ConfigError


class TestCsvOrderCodeSource:

    def test_reads_po_column(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("Date,PO,Vendor\n2025-01-02,PO1042,Acme\n2025-01-03,PO1043,Beta\n")
        rows = list(CsvOrderCodeSource(path))
        assert rows == [OrderCodeRow(2, "PO1042"), OrderCodeRow(3, "PO1043")]

    def test_first_candidate_header_wins(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("tranId,Transaction ID\nA1,B1\n")
        rows = list(CsvOrderCodeSource(path))
        assert rows[0].code == "B1"

    def test_blank_rows_skipped_with_row_numbers_kept(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("PO\nPO1\n\n  \nPO4\n")
        source = CsvOrderCodeSource(path)
        rows = list(source)
        assert [(r.row_number, r.code) for r in rows] == [(2, "PO1"), (5, "PO4")]
        assert source.blank_rows == 2

    def test_short_rows(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("Date,Vendor,PO\n2025-01-02\n2025-01-03,Beta,PO9\n")
        rows = list(CsvOrderCodeSource(path))
        assert [r.code for r in rows] == ["PO9"]

    def test_missing_column(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("Date,Vendor\n2025-01-02,Acme\n")
        with pytest.raises(ConfigError, match="No order code column"):
            list(CsvOrderCodeSource(path))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            list(CsvOrderCodeSource(tmp_path / "missing.csv"))

    def test_custom_columns(self, tmp_path):
        path = tmp_path / "tracking.csv"
        path.write_text("Order\nX-1\n")
        rows = list(CsvOrderCodeSource(path, columns=("Order",)))
        assert rows[0].code == "X-1"


def test_rows_from_codes():
    rows = rows_from_codes(["PO1", " ", "PO2 "])
    assert [r.code for r in rows] == ["PO1", "PO2"]
    assert rows[0].row_number == 2
