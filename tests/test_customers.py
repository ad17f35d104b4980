import asyncio

import pytest

from creditsales.modules.customers import (
    CreateCustomerWithUser,
    DeleteCustomer,
    UpdateCustomer,
    pwd_context,
)
from creditsales.modules.exceptions import InvalidAmount, InvalidState
from creditsales.modules.orders import CreateOrder


def _customer_payload(email="shop@example.com", credit_limit=1000):
    return {
        "name": "Corner Shop",
        "email": email,
        "phone_number": "0500000001",
        "address": "Market Road 4",
        "pincode": "600002",
        "credit_limit": credit_limit,
        "billing_type": "immediate",
    }


def test_create_customer_with_login(db):
    customer, temporary_password = asyncio.run(
        CreateCustomerWithUser(db, _customer_payload())
    )

    assert customer["balance_credit_limit"] == 1000
    user = asyncio.run(db.users.find_one({"_id": customer["id_user"]}))
    assert user["role"] == "Customer"
    assert pwd_context.verify(temporary_password, user["password"])


def test_duplicate_email_is_refused(db):
    asyncio.run(CreateCustomerWithUser(db, _customer_payload()))

    with pytest.raises(InvalidState):
        asyncio.run(CreateCustomerWithUser(db, _customer_payload()))
    assert asyncio.run(db.customers.count_documents({})) == 1


def test_negative_credit_limit_is_refused(db):
    with pytest.raises(InvalidAmount):
        asyncio.run(CreateCustomerWithUser(db, _customer_payload(credit_limit=-1)))


def test_credit_limit_change_moves_balance(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=400))

    asyncio.run(UpdateCustomer(db, customer["_id"], {"credit_limit": 1500}))
    stored = asyncio.run(db.customers.find_one({"_id": customer["_id"]}))
    assert stored["credit_limit"] == 1500
    assert stored["balance_credit_limit"] == 900

    with pytest.raises(InvalidAmount):
        asyncio.run(UpdateCustomer(db, customer["_id"], {"credit_limit": 500}))


def test_profile_change_syncs_login(db, seed):
    customer, user = asyncio.run(seed.customer())

    asyncio.run(UpdateCustomer(db, customer["_id"], {"name": "Renamed Shop"}))

    stored_user = asyncio.run(db.users.find_one({"email": user.email}))
    assert stored_user["name"] == "Renamed Shop"


def test_customer_with_pending_order_is_kept(db, seed):
    customer, user = asyncio.run(seed.customer())
    product = asyncio.run(seed.product())
    asyncio.run(
        CreateOrder(
            db,
            user,
            {"id_product": str(product["_id"]), "ordered_quantity": 1, "payment": "cash"},
        )
    )

    with pytest.raises(InvalidState):
        asyncio.run(DeleteCustomer(db, customer["_id"]))


def test_delete_customer_removes_login(db, seed):
    customer, _ = asyncio.run(seed.customer())

    asyncio.run(DeleteCustomer(db, customer["_id"]))

    assert asyncio.run(db.customers.count_documents({})) == 0
    assert asyncio.run(db.users.count_documents({"_id": customer["id_user"]})) == 0


def test_non_finite_credit_limit_is_refused(db):
    with pytest.raises(InvalidAmount):
        asyncio.run(
            CreateCustomerWithUser(db, _customer_payload(credit_limit=float("inf")))
        )
    assert asyncio.run(db.customers.count_documents({})) == 0
