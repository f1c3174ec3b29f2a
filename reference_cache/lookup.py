"""Reference Cache Lookup.

Resolves accounts and catalog items against the local reference cache.

Item resolution runs the match strategies in a fixed order:
1. Item name contains the mapped name
2. Item number contains the mapped name
3. Name or number contains the mapped name, non-inventory items only

The first strategy that yields a usable item wins. The excluded item is
never returned; if it was the only thing a strategy matched, the search
moves on and the final result reports EXCLUDED when nothing else matched.
"""

from pathlib import Path
from typing import List, Optional

from core.config import Environment, ReconcileConfig
from core.observability.logging import get_logger
from reference_cache.db import (
    DEFAULT_DB_PATH,
    find_account,
    find_item_candidates,
)
from reference_cache.models import (
    Account,
    CatalogItem,
    ItemMatch,
    ItemMatchStatus,
    MatchStrategy,
    STRATEGY_ORDER,
)

logger = get_logger(__name__)


class ReferenceCache:
    """Read-only view of the local account and catalog item cache.

    Example:
        cache = ReferenceCache(config.db_path, config)
        account = cache.resolve_account("512", Environment.SANDBOX)
        match = cache.resolve_item("Stationery", Environment.SANDBOX)
        if match.found:
            print(match.item.external_id, match.strategy)
    """

    def __init__(
        self,
        db_path: Path = DEFAULT_DB_PATH,
        config: Optional[ReconcileConfig] = None,
        strategies: Optional[List[MatchStrategy]] = None,
    ):
        self.db_path = db_path
        self.config = config or ReconcileConfig(db_path=db_path)
        self.strategies = list(strategies or STRATEGY_ORDER)

    def resolve_account(self, external_id: str, environment: Environment) -> Optional[Account]:
        """Find an account by internal id in the environment partition."""
        return find_account(external_id, environment.is_sandbox, self.db_path)

    def match_strategy(
        self,
        strategy: MatchStrategy,
        mapped_name: str,
        environment: Environment,
    ) -> ItemMatch:
        """Run a single match strategy.

        Returns:
            ItemMatch with status FOUND, EXCLUDED, or NOT_FOUND
        """
        excluded = self.config.excluded_item_number_for(environment)
        candidates = find_item_candidates(
            strategy,
            mapped_name,
            environment.is_sandbox,
            self.config.noninventory_type_marker,
            self.db_path,
        )

        excluded_hit: Optional[CatalogItem] = None
        for candidate in candidates:
            if candidate.item_number == excluded:
                excluded_hit = excluded_hit or candidate
                continue
            return ItemMatch(
                mapped_name=mapped_name,
                status=ItemMatchStatus.FOUND,
                item=candidate,
                strategy=strategy,
                reasons=[f"{strategy.value}: matched item {candidate.external_id} ({candidate.name})"],
            )

        if excluded_hit is not None:
            return ItemMatch(
                mapped_name=mapped_name,
                status=ItemMatchStatus.EXCLUDED,
                strategy=strategy,
                excluded_item=excluded_hit,
                reasons=[f"{strategy.value}: only excluded item '{excluded}' matched"],
            )

        return ItemMatch(
            mapped_name=mapped_name,
            status=ItemMatchStatus.NOT_FOUND,
            reasons=[f"{strategy.value}: no match"],
        )

    def resolve_item(self, mapped_name: str, environment: Environment) -> ItemMatch:
        """Resolve a mapped item name using the ordered strategies."""
        reasons: List[str] = []
        excluded_match: Optional[ItemMatch] = None

        for strategy in self.strategies:
            match = self.match_strategy(strategy, mapped_name, environment)
            reasons.extend(match.reasons)

            if match.status == ItemMatchStatus.FOUND:
                return match.model_copy(update={"reasons": reasons})
            if match.status == ItemMatchStatus.EXCLUDED and excluded_match is None:
                excluded_match = match

        if excluded_match is not None:
            return excluded_match.model_copy(update={"reasons": reasons})

        logger.debug(f"No catalog item for '{mapped_name}' in {environment.value}")
        return ItemMatch(
            mapped_name=mapped_name,
            status=ItemMatchStatus.NOT_FOUND,
            reasons=reasons,
        )
