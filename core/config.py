"""Run configuration for purchase-order reconciliation.

Values come from environment variables (optionally from a .env file at the
repository root). The resulting ReconcileConfig is passed explicitly to the
driver, classifier, and reference cache.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from core.errors import ConfigError


REPO_ROOT = Path(__file__).resolve().parents[1]

# Load environment variables from .env file
load_dotenv(REPO_ROOT / ".env")


DEFAULT_EXCLUDED_ITEM_NUMBER = "Teaching Materials_Sales"
DEFAULT_ORDER_CODE_COLUMNS: Tuple[str, ...] = ("PO", "Transaction ID", "TranId", "tranId")


class Environment(str, Enum):
    """Order system environment; selects the reference cache partition."""
    PRODUCTION = "production"
    SANDBOX = "sandbox"

    @property
    def is_sandbox(self) -> bool:
        return self is Environment.SANDBOX

    @classmethod
    def parse(cls, value: Optional[str]) -> "Environment":
        """Parse an environment name, defaulting to sandbox."""
        if not value:
            return cls.SANDBOX
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(
                f"Unknown environment '{value}'. Expected one of: "
                f"{[e.value for e in cls]}"
            )


@dataclass
class ReconcileConfig:
    """Configuration for one reconciliation run."""
    environment: Environment = Environment.SANDBOX
    excluded_item_number: str = DEFAULT_EXCLUDED_ITEM_NUMBER
    sandbox_excluded_item_number: Optional[str] = None  # Overrides the above in sandbox
    noninventory_type_marker: str = "noninventory"

    mapping_path: Path = REPO_ROOT / "po_items.json"
    db_path: Path = REPO_ROOT / "po_reconcile.db"
    order_codes_path: Optional[Path] = None
    order_code_columns: Tuple[str, ...] = field(default=DEFAULT_ORDER_CODE_COLUMNS)

    inter_order_delay_seconds: float = 0.2
    dry_run: bool = False

    def excluded_item_number_for(self, environment: Environment) -> str:
        """Catalog item number that must never be selected in an environment."""
        if environment.is_sandbox and self.sandbox_excluded_item_number:
            return self.sandbox_excluded_item_number
        return self.excluded_item_number

    @classmethod
    def from_env(cls) -> "ReconcileConfig":
        """Build configuration from environment variables.

        Raises:
            ConfigError: If a value cannot be parsed
        """
        delay_raw = os.getenv("RECONCILE_INTER_ORDER_DELAY", "0.2")
        try:
            delay = float(delay_raw)
        except ValueError:
            raise ConfigError(f"RECONCILE_INTER_ORDER_DELAY must be a number, got '{delay_raw}'")
        if delay < 0:
            raise ConfigError("RECONCILE_INTER_ORDER_DELAY must not be negative")

        codes_path = os.getenv("RECONCILE_ORDER_CODES_PATH")

        return cls(
            environment=Environment.parse(os.getenv("NETSUITE_ENVIRONMENT")),
            excluded_item_number=os.getenv(
                "RECONCILE_EXCLUDED_ITEM_NUMBER", DEFAULT_EXCLUDED_ITEM_NUMBER
            ),
            sandbox_excluded_item_number=os.getenv("RECONCILE_SANDBOX_EXCLUDED_ITEM_NUMBER") or None,
            mapping_path=Path(os.getenv("RECONCILE_MAPPING_PATH", str(REPO_ROOT / "po_items.json"))),
            db_path=Path(os.getenv("RECONCILE_DB_PATH", str(REPO_ROOT / "po_reconcile.db"))),
            order_codes_path=Path(codes_path) if codes_path else None,
            inter_order_delay_seconds=delay,
            dry_run=os.getenv("RECONCILE_DRY_RUN", "false").lower() in ("1", "true", "yes"),
        )
