"""Reconciliation Data Models.

- ClassifiedLine / LineMiss / Classification: classifier output
- RebuildResult: rebuilt line collections for one order
- OutcomeKind / OrderOutcome: result of processing one order
- RunSummary: counts for a whole batch run
"""

from collections import Counter
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from connectors.order_base import ExpenseLine, ItemLine, PurchaseOrder
from core.errors import ResolutionMiss
from reference_cache.models import Account, CatalogItem, MatchStrategy


# =============================================================================
# Classification
# =============================================================================

class ClassifiedLine(BaseModel):
    """An expense line that resolved to a catalog item."""
    expense: ExpenseLine
    account: Account
    mapped_name: str
    item: CatalogItem
    strategy: MatchStrategy


class LineMiss(BaseModel):
    """An expense line that stays an expense, and why."""
    expense: ExpenseLine
    reason: ResolutionMiss
    detail: str = ""


class Classification(BaseModel):
    """Partition of an order's expense lines.

    Both partitions keep the original relative order of the lines.
    """
    to_convert: List[ClassifiedLine] = Field(default_factory=list)
    to_keep: List[ExpenseLine] = Field(default_factory=list)
    misses: List[LineMiss] = Field(default_factory=list)

    def is_conserved(self, order: PurchaseOrder) -> bool:
        """Every expense line lands in exactly one partition."""
        if len(self.to_convert) + len(self.to_keep) != len(order.expense_lines):
            return False
        converted = {id(line.expense) for line in self.to_convert}
        kept = {id(line) for line in self.to_keep}
        source = {id(line) for line in order.expense_lines}
        return converted.isdisjoint(kept) and (converted | kept) == source

    def miss_counts(self) -> Dict[str, int]:
        return dict(Counter(m.reason.value for m in self.misses))


class RebuildResult(BaseModel):
    """Rebuilt line collections; both replace the order's lines in full."""
    item_lines: List[ItemLine] = Field(default_factory=list)
    expense_lines: List[ExpenseLine] = Field(default_factory=list)


# =============================================================================
# Outcomes
# =============================================================================

class OutcomeKind(str, Enum):
    """Terminal state of one order."""
    CONVERTED = "converted"
    SKIPPED_NO_MATCH = "skipped_no_match"
    SKIPPED_NO_EXPENSES = "skipped_no_expenses"
    SKIPPED_NOT_FOUND = "skipped_not_found"
    ERROR = "error"


SKIPPED_KINDS = (
    OutcomeKind.SKIPPED_NO_MATCH,
    OutcomeKind.SKIPPED_NO_EXPENSES,
    OutcomeKind.SKIPPED_NOT_FOUND,
)


class OrderOutcome(BaseModel):
    """Result of processing one order code.

    Attributes:
        row_number: Source row of the order code
        order_code: Transaction code as read from the source
        order_id: Internal id, when the order was found
        kind: Terminal state
        converted_count: Expense lines converted (or planned, in dry-run)
        kept_count: Expense lines left as expenses
        dry_run: True if nothing was written
        reason: Error or skip detail
        planned: Conversion plan entries (account -> item)
    """
    row_number: Optional[int] = None
    order_code: str
    order_id: Optional[str] = None
    kind: OutcomeKind
    converted_count: int = 0
    kept_count: int = 0
    dry_run: bool = False
    reason: Optional[str] = None
    planned: List[Dict[str, Any]] = Field(default_factory=list)

    def describe(self) -> str:
        row = f"row {self.row_number}" if self.row_number is not None else "-"
        if self.kind == OutcomeKind.CONVERTED:
            verb = "would convert" if self.dry_run else "converted"
            return f"{row} {self.order_code}: {verb} {self.converted_count} line(s), kept {self.kept_count}"
        if self.kind == OutcomeKind.ERROR:
            return f"{row} {self.order_code}: ERROR {self.reason}"
        return f"{row} {self.order_code}: {self.kind.value}" + (f" ({self.reason})" if self.reason else "")


class RunSummary(BaseModel):
    """Counts and per-order outcomes for one batch run."""
    run_id: str
    environment: str
    dry_run: bool = False
    cancelled: bool = False
    outcomes: List[OrderOutcome] = Field(default_factory=list)

    def add(self, outcome: OrderOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def converted(self) -> int:
        return sum(1 for o in self.outcomes if o.kind == OutcomeKind.CONVERTED)

    @property
    def skipped(self) -> int:
        return sum(1 for o in self.outcomes if o.kind in SKIPPED_KINDS)

    @property
    def errors(self) -> int:
        return sum(1 for o in self.outcomes if o.kind == OutcomeKind.ERROR)

    @property
    def lines_converted(self) -> int:
        return sum(o.converted_count for o in self.outcomes if o.kind == OutcomeKind.CONVERTED)

    def by_kind(self) -> Dict[str, int]:
        counts = {kind.value: 0 for kind in OutcomeKind}
        for outcome in self.outcomes:
            counts[outcome.kind.value] += 1
        return counts

    def counts(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "converted": self.converted,
            "skipped": self.skipped,
            "errors": self.errors,
            "lines_converted": self.lines_converted,
            "dry_run": self.dry_run,
            "cancelled": self.cancelled,
        }

    def as_lines(self) -> List[str]:
        """Printable summary, one line per order then totals."""
        lines = [o.describe() for o in self.outcomes]
        lines.append("")
        lines.append(f"Environment: {self.environment}{' (dry run)' if self.dry_run else ''}")
        lines.append(f"Total orders: {self.total}")
        lines.append(f"Converted: {self.converted}")
        lines.append(f"Skipped: {self.skipped}")
        lines.append(f"Errors: {self.errors}")
        if self.cancelled:
            lines.append("Run was stopped before all orders were processed")
        return lines
