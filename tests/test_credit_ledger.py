import asyncio

import pytest
from bson import ObjectId

from creditsales.modules.credit_ledger import (
    ReleaseCredit,
    ReleaseStock,
    ReserveCredit,
    ReserveStock,
)
from creditsales.modules.exceptions import (
    InsufficientCredit,
    InsufficientStock,
    NotFound,
)


def test_reserve_credit_decrements_balance(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000))

    result = asyncio.run(ReserveCredit(db, customer["_id"], 400))

    assert result["balance_credit_limit"] == 600


def test_reserve_credit_refuses_shortfall_without_effect(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=300))

    with pytest.raises(InsufficientCredit) as exc_info:
        asyncio.run(ReserveCredit(db, customer["_id"], 301))

    assert exc_info.value.status_code == 402
    assert exc_info.value.retryable is True
    stored = asyncio.run(db.customers.find_one({"_id": customer["_id"]}))
    assert stored["balance_credit_limit"] == 300


def test_reserve_credit_unknown_customer(db):
    with pytest.raises(NotFound):
        asyncio.run(ReserveCredit(db, ObjectId(), 10))


def test_release_credit_is_clamped_to_credit_limit(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=900))

    result = asyncio.run(ReleaseCredit(db, customer["_id"], 250))

    assert result["balance_credit_limit"] == 1000


def test_release_credit_restores_reserved_amount(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=500))

    result = asyncio.run(ReleaseCredit(db, customer["_id"], 200))

    assert result["balance_credit_limit"] == 700


def test_reserve_and_release_stock(db, seed):
    product = asyncio.run(seed.product(quantity=10))

    assert asyncio.run(ReserveStock(db, product["_id"], 4))["quantity"] == 6
    assert asyncio.run(ReleaseStock(db, product["_id"], 3))["quantity"] == 9


def test_reserve_stock_refuses_shortfall_without_effect(db, seed):
    product = asyncio.run(seed.product(quantity=2))

    with pytest.raises(InsufficientStock):
        asyncio.run(ReserveStock(db, product["_id"], 3))

    stored = asyncio.run(db.products.find_one({"_id": product["_id"]}))
    assert stored["quantity"] == 2
