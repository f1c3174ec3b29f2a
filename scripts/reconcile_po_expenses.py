"""
Convert purchase-order expense lines into item lines.

For each order code in the tracking sheet export (or given on the command
line), expense lines whose account is mapped in po_items.json are replaced
by item lines for the mapped catalog item. Lines that cannot be resolved
stay as expenses.

Usage:
    python scripts/reconcile_po_expenses.py --codes po_tracking.csv --dry-run
    python scripts/reconcile_po_expenses.py --po PO1042 --po PO1043 --environment production
"""

import argparse
import asyncio
import logging
import signal
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from connectors.netsuite import NetSuiteConnector
from connectors.order_base import ConnectionStatus
from connectors.order_codes import CsvOrderCodeSource, rows_from_codes
from core.config import Environment, ReconcileConfig
from core.errors import ConfigError
from core.observability.logging import configure_logging, get_logger
from reconciliation.driver import ReconciliationDriver
from reference_cache.db import init_reference_cache_db
from reference_cache.lookup import ReferenceCache

logger = get_logger("scripts.reconcile_po_expenses")


def build_config(args: argparse.Namespace) -> ReconcileConfig:
    config = ReconcileConfig.from_env()
    if args.environment:
        config.environment = Environment.parse(args.environment)
    if args.mapping:
        config.mapping_path = Path(args.mapping)
    if args.db:
        config.db_path = Path(args.db)
    if args.codes:
        config.order_codes_path = Path(args.codes)
    if args.delay is not None:
        config.inter_order_delay_seconds = args.delay
    if args.dry_run:
        config.dry_run = True
    return config


async def run(config: ReconcileConfig, po_codes) -> int:
    if po_codes:
        rows = rows_from_codes(po_codes)
    elif config.order_codes_path:
        rows = list(CsvOrderCodeSource(config.order_codes_path, config.order_code_columns))
    else:
        raise ConfigError("No order codes: pass --po or --codes (or set RECONCILE_ORDER_CODES_PATH)")

    init_reference_cache_db(config.db_path)
    cache = ReferenceCache(config.db_path, config)
    connector = NetSuiteConnector(environment=config.environment)
    driver = ReconciliationDriver(connector, cache, config)

    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, driver.request_stop)
    except (NotImplementedError, RuntimeError):
        pass  # Windows event loops

    async with connector:
        if connector.connection_status != ConnectionStatus.CONNECTED:
            raise ConfigError("Could not connect to NetSuite; check NETSUITE_ACCESS_TOKEN")
        summary = await driver.run(rows)

    print()
    for line in summary.as_lines():
        print(line)
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Convert PO expense lines to item lines")
    parser.add_argument("--codes", help="CSV export of the PO tracking sheet")
    parser.add_argument("--po", action="append", default=[], help="Order code (repeatable)")
    parser.add_argument("--environment", choices=[e.value for e in Environment])
    parser.add_argument("--mapping", help="Account-to-item mapping JSON (default: po_items.json)")
    parser.add_argument("--db", help="Reference cache database path")
    parser.add_argument("--delay", type=float, help="Seconds to wait between orders")
    parser.add_argument("--dry-run", action="store_true", help="Report planned conversions without writing")
    parser.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    configure_logging(
        level=logging.DEBUG if args.verbose else logging.INFO,
        json_format=args.json_logs,
    )

    try:
        config = build_config(args)
        exit_code = asyncio.run(run(config, args.po))
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
