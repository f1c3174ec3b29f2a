"""Reconciliation Module.

Converts account-coded expense lines on purchase orders into item lines.

Key components:
- classifier: Decide which expense lines can become item lines
- rebuilder: Build the replacement item/expense line lists
- driver: Sequential batch run with dry-run and per-order outcomes
"""

from reconciliation.models import (
    ClassifiedLine,
    LineMiss,
    Classification,
    RebuildResult,
    OutcomeKind,
    OrderOutcome,
    RunSummary,
)
from reconciliation.classifier import classify
from reconciliation.rebuilder import (
    conversion_amounts,
    convert_line,
    rebuild,
    planned_conversions,
)
from reconciliation.driver import ReconciliationDriver

__all__ = [
    # Models
    "ClassifiedLine",
    "LineMiss",
    "Classification",
    "RebuildResult",
    "OutcomeKind",
    "OrderOutcome",
    "RunSummary",
    # Classifier / rebuilder
    "classify",
    "conversion_amounts",
    "convert_line",
    "rebuild",
    "planned_conversions",
    # Driver
    "ReconciliationDriver",
]
