import asyncio
from datetime import timedelta

import pytest
from bson import ObjectId

from creditsales.models.users import UserRole
from creditsales.modules.billing import (
    ApplyPayment,
    ComputeDueDate,
    GenerateBill,
    GetBill,
    GetBillForActor,
    MarkOverdueBills,
    PayBill,
)
from creditsales.modules.exceptions import (
    Forbidden,
    InvalidAmount,
    InvalidState,
    NoEligibleOrders,
    NotFound,
    ValidationError,
)
from creditsales.modules.generals import GetCurrentDateTime
from creditsales.modules.orders import CancelOrder, CreateOrder, DeliverOrder


def _cycle():
    now = GetCurrentDateTime()
    return now - timedelta(days=1), now + timedelta(days=1)


def _place(db, user, product, quantity, payment="credit"):
    payload = {
        "id_product": str(product["_id"]),
        "ordered_quantity": quantity,
        "payment": payment,
    }
    return asyncio.run(CreateOrder(db, user, payload))


def test_generate_bill_sums_credit_orders(db, seed):
    customer, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    first = _place(db, user, product, 2)
    second = _place(db, user, product, 3)
    cash = _place(db, user, product, 1, payment="cash")
    cycle_start, cycle_end = _cycle()

    bill = asyncio.run(GenerateBill(db, customer["_id"], cycle_start, cycle_end))

    assert bill["total_used"] == 500
    assert bill["amount_due"] == 500
    assert bill["paid_amount"] == 0
    assert bill["status"] == "pending"
    assert sorted(bill["orders"]) == sorted([first["_id"], second["_id"]])
    assert bill["due_date"] == cycle_end + timedelta(days=30)

    billed = asyncio.run(db.orders.find_one({"_id": first["_id"]}))
    unbilled = asyncio.run(db.orders.find_one({"_id": cash["_id"]}))
    assert billed["id_bill"] == bill["_id"]
    assert unbilled["id_bill"] is None


def test_orders_are_billed_once(db, seed):
    customer, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    _place(db, user, product, 2)
    cycle_start, cycle_end = _cycle()

    asyncio.run(GenerateBill(db, customer["_id"], cycle_start, cycle_end))

    with pytest.raises(NoEligibleOrders) as exc_info:
        asyncio.run(GenerateBill(db, customer["_id"], cycle_start, cycle_end))
    assert exc_info.value.status_code == 409
    assert asyncio.run(db.bills.count_documents({})) == 1


def test_orders_outside_cycle_are_not_billed(db, seed):
    customer, user = asyncio.run(seed.customer(credit_limit=1000))
    product = asyncio.run(seed.product(price=100, quantity=50))
    _place(db, user, product, 2)
    now = GetCurrentDateTime()

    with pytest.raises(NoEligibleOrders):
        asyncio.run(
            GenerateBill(
                db, customer["_id"], now - timedelta(days=10), now - timedelta(days=5)
            )
        )


def test_cancelled_orders_bill_only_delivered_part(db, seed):
    customer, user = asyncio.run(seed.customer(credit_limit=1000))
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    product = asyncio.run(seed.product(price=100, quantity=50))
    untouched = _place(db, user, product, 2)
    partial = _place(db, user, product, 4)
    asyncio.run(CancelOrder(db, user, untouched["_id"]))
    asyncio.run(DeliverOrder(db, admin, partial["_id"], 1))
    asyncio.run(CancelOrder(db, user, partial["_id"]))
    cycle_start, cycle_end = _cycle()

    bill = asyncio.run(GenerateBill(db, customer["_id"], cycle_start, cycle_end))

    assert bill["orders"] == [partial["_id"]]
    assert bill["total_used"] == 100


def test_generate_bill_rejects_inverted_cycle(db, seed):
    customer, _ = asyncio.run(seed.customer())
    cycle_start, cycle_end = _cycle()

    with pytest.raises(ValidationError):
        asyncio.run(GenerateBill(db, customer["_id"], cycle_end, cycle_start))


def test_due_date_follows_billing_type():
    cycle_end = GetCurrentDateTime()

    assert ComputeDueDate(cycle_end, "creditcard") == cycle_end + timedelta(days=30)
    assert ComputeDueDate(cycle_end, "immediate") == cycle_end + timedelta(days=1)


def test_apply_payment_caps_at_amount_due():
    bill = {"amount_due": 200, "paid_amount": 300}

    actual, update_data = ApplyPayment(bill, 500)

    assert actual == 200
    assert update_data == {"amount_due": 0, "paid_amount": 500, "status": "paid"}

    actual, update_data = ApplyPayment(bill, 50)
    assert actual == 50
    assert update_data["status"] == "partial"


def test_overdue_is_marked_once(db, seed):
    customer, _ = asyncio.run(seed.customer())
    bill = asyncio.run(seed.bill(customer, due_in_days=-1))

    first = asyncio.run(GetBill(db, bill["_id"]))
    second = asyncio.run(GetBill(db, bill["_id"]))

    assert first["status"] == "overdue"
    assert second["status"] == "overdue"
    assert second["version"] == 1
    assert asyncio.run(MarkOverdueBills(db)) == 0


def test_bill_not_yet_due_stays_pending(db, seed):
    customer, _ = asyncio.run(seed.customer())
    bill = asyncio.run(seed.bill(customer, due_in_days=3))

    assert asyncio.run(GetBill(db, bill["_id"]))["status"] == "pending"


def test_pay_bill_caps_and_restores_credit(db, seed):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=500))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    actual, paid_bill = asyncio.run(PayBill(db, bill["_id"], 200, "cash"))
    assert actual == 200
    assert paid_bill["amount_due"] == 300
    assert paid_bill["status"] == "partial"

    actual, paid_bill = asyncio.run(PayBill(db, bill["_id"], 1000, "cash"))
    assert actual == 300
    assert paid_bill["amount_due"] == 0
    assert paid_bill["paid_amount"] == 500
    assert paid_bill["status"] == "paid"
    assert paid_bill["paid_amount"] + paid_bill["amount_due"] == paid_bill["total_used"]

    stored = asyncio.run(db.customers.find_one({"_id": customer["_id"]}))
    assert stored["balance_credit_limit"] == 1000

    with pytest.raises(InvalidState):
        asyncio.run(PayBill(db, bill["_id"], 10))


def test_pay_bill_refuses_non_positive_amount(db, seed):
    customer, _ = asyncio.run(seed.customer())
    bill = asyncio.run(seed.bill(customer))

    with pytest.raises(InvalidAmount):
        asyncio.run(PayBill(db, bill["_id"], 0))


def test_bill_visible_to_owner_and_admin_only(db, seed):
    customer, owner = asyncio.run(seed.customer())
    _, stranger = asyncio.run(seed.customer())
    admin = asyncio.run(seed.user(UserRole.ADMIN.value))
    bill = asyncio.run(seed.bill(customer))

    assert asyncio.run(GetBillForActor(db, owner, bill["_id"]))["_id"] == bill["_id"]
    assert asyncio.run(GetBillForActor(db, admin, bill["_id"]))["_id"] == bill["_id"]
    with pytest.raises(Forbidden):
        asyncio.run(GetBillForActor(db, stranger, bill["_id"]))


def test_unknown_customer_can_not_be_billed(db):
    cycle_start, cycle_end = _cycle()
    with pytest.raises(NotFound):
        asyncio.run(GenerateBill(db, ObjectId(), cycle_start, cycle_end))


@pytest.mark.parametrize("amount", [float("nan"), float("inf")])
def test_pay_bill_refuses_non_finite_amount(db, seed, amount):
    customer, _ = asyncio.run(seed.customer(credit_limit=1000, balance=500))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    with pytest.raises(InvalidAmount):
        asyncio.run(PayBill(db, bill["_id"], amount))

    stored = asyncio.run(db.bills.find_one({"_id": bill["_id"]}))
    assert stored["status"] == "pending"
    assert stored["amount_due"] == 500
    assert stored["version"] == 0
    stored_customer = asyncio.run(db.customers.find_one({"_id": customer["_id"]}))
    assert stored_customer["balance_credit_limit"] == 500
