import asyncio

import pytest
from bson import ObjectId

from creditsales.models.users import UserRole
from creditsales.modules.custody import (
    PAYMENT_TRANSACTION_CUSTODY,
    DecideAdminRequest,
    ForwardToAdmin,
    MarkReceivedByAdmin,
)
from creditsales.modules.exceptions import (
    Forbidden,
    InvalidAmount,
    InvalidState,
    ValidationError,
)
from creditsales.modules.orders import AcceptAssignment, AssignOrder, CreateOrder
from creditsales.modules.wallet import CollectPayment, GetReceiptData, GetWallet


def _accepted_order(db, seed, quantity=5, price=100):
    _, user = asyncio.run(seed.customer(credit_limit=10000))
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value, "Ravi"))
    product = asyncio.run(seed.product(price=price, quantity=50))
    order = asyncio.run(
        CreateOrder(
            db,
            user,
            {
                "id_product": str(product["_id"]),
                "ordered_quantity": quantity,
                "payment": "cash",
            },
        )
    )
    asyncio.run(AssignOrder(db, admin, order["_id"], ObjectId(delivery_man.id)))
    asyncio.run(AcceptAssignment(db, delivery_man, order["_id"]))
    return order, delivery_man, admin


def _collect(db, delivery_man, order, amount, method="cash"):
    payload = {"id_order": str(order["_id"]), "amount": amount, "method": method}
    if method == "cheque":
        payload["cheque_details"] = {
            "number": "000123",
            "bank": "State Bank",
            "date": "2026-10-01",
        }
    return asyncio.run(CollectPayment(db, delivery_man, payload))


def test_collections_never_exceed_order_total(db, seed):
    order, delivery_man, _ = _accepted_order(db, seed)

    first = _collect(db, delivery_man, order, 300)
    assert first["status"] == "received"
    assert first["id_delivery_man"] == ObjectId(delivery_man.id)

    with pytest.raises(InvalidAmount):
        _collect(db, delivery_man, order, 201)
    with pytest.raises(InvalidAmount):
        _collect(db, delivery_man, order, 0)
    with pytest.raises(InvalidAmount):
        _collect(db, delivery_man, order, float("nan"))

    _collect(db, delivery_man, order, 200, method="cheque")
    stored = asyncio.run(db.orders.find_one({"_id": order["_id"]}))
    assert stored["collected_amount"] == 500


def test_collect_needs_accepted_assignment(db, seed):
    order, _, _ = _accepted_order(db, seed)
    stranger = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))

    with pytest.raises(Forbidden):
        _collect(db, stranger, order, 100)
    assert asyncio.run(db.payment_transactions.count_documents({})) == 0


def test_wallet_totals_by_method(db, seed):
    order, delivery_man, _ = _accepted_order(db, seed)
    cash = _collect(db, delivery_man, order, 100)
    _collect(db, delivery_man, order, 150)
    _collect(db, delivery_man, order, 50, method="cheque")

    asyncio.run(
        ForwardToAdmin(
            db, PAYMENT_TRANSACTION_CUSTODY, delivery_man, cash["_id"], method="cash"
        )
    )
    cash_transactions, cash_total = asyncio.run(GetWallet(db, delivery_man, "cash"))
    cheque_transactions, cheque_total = asyncio.run(
        GetWallet(db, delivery_man, "cheque")
    )

    assert len(cash_transactions) == 2
    assert cash_total == 250
    assert len(cheque_transactions) == 1
    assert cheque_total == 50


def test_wallet_transaction_custody(db, seed):
    order, delivery_man, admin = _accepted_order(db, seed)
    cash = _collect(db, delivery_man, order, 100)

    with pytest.raises(ValidationError):
        asyncio.run(
            ForwardToAdmin(
                db,
                PAYMENT_TRANSACTION_CUSTODY,
                delivery_man,
                cash["_id"],
                method="cheque",
            )
        )

    forwarded = asyncio.run(
        ForwardToAdmin(
            db, PAYMENT_TRANSACTION_CUSTODY, delivery_man, cash["_id"], method="cash"
        )
    )
    assert forwarded["status"] == "pending"

    rejected = asyncio.run(
        DecideAdminRequest(
            db, PAYMENT_TRANSACTION_CUSTODY, admin, cash["_id"], accept=False
        )
    )
    assert rejected["status"] == "received"

    asyncio.run(
        ForwardToAdmin(
            db, PAYMENT_TRANSACTION_CUSTODY, delivery_man, cash["_id"], method="cash"
        )
    )
    accepted = asyncio.run(
        DecideAdminRequest(
            db, PAYMENT_TRANSACTION_CUSTODY, admin, cash["_id"], accept=True
        )
    )
    assert accepted["status"] == "paid_to_admin"
    _, total = asyncio.run(GetWallet(db, delivery_man, "cash"))
    assert total == 0


def test_mark_received_closes_custody(db, seed):
    order, delivery_man, admin = _accepted_order(db, seed)
    cash = _collect(db, delivery_man, order, 100)

    with pytest.raises(Forbidden):
        asyncio.run(
            MarkReceivedByAdmin(
                db, PAYMENT_TRANSACTION_CUSTODY, delivery_man, cash["_id"]
            )
        )

    marked = asyncio.run(
        MarkReceivedByAdmin(db, PAYMENT_TRANSACTION_CUSTODY, admin, cash["_id"])
    )
    assert marked["status"] == "paid_to_admin"

    with pytest.raises(InvalidState):
        asyncio.run(
            MarkReceivedByAdmin(db, PAYMENT_TRANSACTION_CUSTODY, admin, cash["_id"])
        )


def test_receipt_data(db, seed):
    order, delivery_man, admin = _accepted_order(db, seed)
    stranger = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    cash = _collect(db, delivery_man, order, 100)

    receipt = asyncio.run(GetReceiptData(db, delivery_man, cash["_id"]))
    assert receipt["amount"] == 100
    assert receipt["delivery_man_name"] == "Ravi"
    assert receipt["customer_name"] == "Customer"
    assert receipt["company_name"] == "Credit Sales"

    assert asyncio.run(GetReceiptData(db, admin, cash["_id"]))["id_order"] == str(
        order["_id"]
    )
    with pytest.raises(Forbidden):
        asyncio.run(GetReceiptData(db, stranger, cash["_id"]))
