"""Order code source.

Reads the purchase-order tracking sheet (exported as CSV) and yields the
order codes to reconcile. The first header row names the columns; the
order code column is the first of the configured candidate headers that
is present.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from core.config import DEFAULT_ORDER_CODE_COLUMNS
from core.errors import ConfigError
from core.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class OrderCodeRow:
    """One order code and the sheet row it came from (header is row 1)."""
    row_number: int
    code: str


def rows_from_codes(codes: Iterable[str], first_row: int = 2) -> List[OrderCodeRow]:
    """Wrap plain order codes (e.g. from the command line) as rows."""
    return [
        OrderCodeRow(row_number=first_row + index, code=code.strip())
        for index, code in enumerate(codes)
        if code and code.strip()
    ]


class CsvOrderCodeSource:
    """Iterates order codes from a CSV export of the tracking sheet.

    Usage:
        source = CsvOrderCodeSource(Path("po_tracking.csv"))
        for row in source:
            print(row.row_number, row.code)
    """

    def __init__(self, path: Path, columns: Sequence[str] = DEFAULT_ORDER_CODE_COLUMNS):
        self.path = Path(path)
        self.columns = tuple(columns)
        self.blank_rows = 0

    def _find_column(self, header: List[str]) -> int:
        stripped = [h.strip() for h in header]
        for candidate in self.columns:
            if candidate in stripped:
                return stripped.index(candidate)
        raise ConfigError(
            f"No order code column in {self.path.name}. "
            f"Expected one of {list(self.columns)}, found {stripped}"
        )

    def __iter__(self) -> Iterator[OrderCodeRow]:
        if not self.path.exists():
            raise ConfigError(f"Order code file not found: {self.path}")

        self.blank_rows = 0
        with open(self.path, "r", encoding="utf-8-sig", newline="") as f:
            reader = csv.reader(f)
            header: Optional[List[str]] = next(reader, None)
            if not header:
                raise ConfigError(f"Order code file is empty: {self.path}")
            column = self._find_column(header)

            for row_number, row in enumerate(reader, start=2):
                code = row[column].strip() if column < len(row) else ""
                if not code:
                    self.blank_rows += 1
                    logger.warning(f"Row {row_number}: empty order code, skipping")
                    continue
                yield OrderCodeRow(row_number=row_number, code=code)
