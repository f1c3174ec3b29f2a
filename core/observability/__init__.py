"""
Observability Module for purchase-order reconciliation

Provides:
- Structured logging with correlation IDs (run, order code, source row)
- JSON and human-readable formatters
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    get_correlation_context,
    with_correlation,
    log_stage,
    log_run_summary,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "get_correlation_context",
    "with_correlation",
    "log_stage",
    "log_run_summary",
]
