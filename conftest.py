"""Shared pytest fixtures: a seeded reference cache and an in-memory connector."""

import json
from decimal import Decimal
from typing import Dict, List, Optional

import pytest

from connectors.order_base import (
    ExpenseLine,
    ItemLine,
    OrderConnector,
    PurchaseOrder,
    RecordRef,
)
from core.config import Environment, ReconcileConfig
from core.errors import NotFoundError
from core.mapping import AccountItemMapping
from reference_cache.db import init_reference_cache_db, upsert_account, upsert_item
from reference_cache.lookup import ReferenceCache
from reference_cache.models import Account, CatalogItem


EXCLUDED = "Teaching Materials_Sales"


class InMemoryConnector(OrderConnector):
    """Order connector backed by a dict of orders; records every update."""

    def __init__(self, orders: Optional[List[PurchaseOrder]] = None, environment=Environment.SANDBOX):
        super().__init__(environment)
        self.orders: Dict[str, PurchaseOrder] = {o.tran_id: o for o in (orders or [])}
        self.updates: List[PurchaseOrder] = []
        self.fail_updates: Dict[str, Exception] = {}
        self.fail_fetches: Dict[str, Exception] = {}
        self.accounts: List[Account] = []
        self.items: List[CatalogItem] = []

    async def connect(self) -> bool:
        return True

    async def disconnect(self) -> None:
        pass

    async def get_order_by_code(self, code: str) -> Optional[PurchaseOrder]:
        if code in self.fail_fetches:
            raise self.fail_fetches[code]
        order = self.orders.get(code)
        return order.model_copy(deep=True) if order else None

    async def get_order_by_id(self, external_id: str) -> PurchaseOrder:
        for order in self.orders.values():
            if order.external_id == external_id:
                return order.model_copy(deep=True)
        raise NotFoundError(external_id)

    async def update_order(self, order: PurchaseOrder) -> None:
        if order.tran_id in self.fail_updates:
            raise self.fail_updates[order.tran_id]
        self.updates.append(order)
        self.orders[order.tran_id] = order

    async def list_accounts(self) -> List[Account]:
        return list(self.accounts)

    async def list_items(self) -> List[CatalogItem]:
        return list(self.items)

    async def get_item_detail(self, item: CatalogItem) -> CatalogItem:
        return item


@pytest.fixture
def cache_db(tmp_path):
    """Reference cache seeded with sandbox and production records.

    Accounts (external id -> number): 512 -> 4010, 513 -> 6200, 514 -> 6300, 515 -> 7000
    Items: 901 Stationery Pack (noninventory, 20.00), 950 Teaching Materials (excluded)
    """
    db_path = tmp_path / "reference.db"
    init_reference_cache_db(db_path)

    for is_sandbox in (True, False):
        for external_id, number, name in (
            ("512", "4010", "Office Supplies"),
            ("513", "6200", "Printing"),
            ("514", "6300", "Training"),
            ("515", "7000", "Travel"),
        ):
            upsert_account(Account(
                external_id=external_id,
                account_number=number,
                name=name,
                is_sandbox=is_sandbox,
            ), db_path)

        upsert_item(CatalogItem(
            external_id="901",
            name="Stationery Pack",
            item_number="STAT-001",
            item_type="noninventory",
            base_price=Decimal("20.00"),
            is_sandbox=is_sandbox,
        ), db_path)
        upsert_item(CatalogItem(
            external_id="950",
            name="Teaching Materials",
            item_number=EXCLUDED,
            item_type="nonInventorySaleItem",
            base_price=Decimal("10"),
            is_sandbox=is_sandbox,
        ), db_path)

    return db_path


@pytest.fixture
def config(cache_db, tmp_path):
    mapping_path = tmp_path / "po_items.json"
    mapping_path.write_text(json.dumps([
        {"account_number": "4010", "name": "Stationery"},
        {"account_number": "6200", "name": "Printing Services"},
        {"account_number": "6300", "name": "Teaching Materials"},
    ]))
    return ReconcileConfig(
        environment=Environment.SANDBOX,
        excluded_item_number=EXCLUDED,
        mapping_path=mapping_path,
        db_path=cache_db,
        inter_order_delay_seconds=0,
    )


@pytest.fixture
def cache(cache_db, config):
    return ReferenceCache(cache_db, config)


@pytest.fixture
def mapping():
    return AccountItemMapping({
        "4010": "Stationery",
        "6200": "Printing Services",
        "6300": "Teaching Materials",
    })


def make_order(
    tran_id: str = "PO1042",
    expense_lines: Optional[List[ExpenseLine]] = None,
    item_lines: Optional[List[ItemLine]] = None,
    external_id: str = "88231",
) -> PurchaseOrder:
    return PurchaseOrder(
        external_id=external_id,
        tran_id=tran_id,
        entity_ref=RecordRef(id="77", name="Acme Supplies"),
        expense_lines=expense_lines or [],
        item_lines=item_lines or [],
        header={"subsidiary": {"id": "1"}},
    )


def expense(account_id: Optional[str], amount="100", rate=None, memo=None) -> ExpenseLine:
    return ExpenseLine(
        account_ref=RecordRef(id=account_id) if account_id else None,
        amount=Decimal(amount) if amount is not None else None,
        rate=Decimal(rate) if rate is not None else None,
        memo=memo,
    )
