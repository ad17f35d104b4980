import asyncio

import pytest
from bson import ObjectId

from creditsales.models.users import UserRole
from creditsales.modules.billing import PayBill
from creditsales.modules.exceptions import (
    Forbidden,
    InvalidAmount,
    InvalidState,
    ValidationError,
)
from creditsales.modules.payment_requests import (
    AcceptPaymentRequest,
    CreatePaymentRequest,
    RejectPaymentRequest,
)


def _request_payload(bill, recipient, amount, recipient_type="delivery", method="cash"):
    return {
        "id_bill": str(bill["_id"]),
        "amount": amount,
        "method": method,
        "recipient_type": recipient_type,
        "id_recipient": recipient.id,
    }


async def _bill(db, bill):
    return await db.bills.find_one({"_id": bill["_id"]})


def test_accepted_request_pays_bill_and_opens_transaction(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    payment_request = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 500))
    )
    assert payment_request["status"] == "pending"
    assert asyncio.run(_bill(db, bill))["status"] == "pending_payment"

    transaction = asyncio.run(
        AcceptPaymentRequest(db, delivery_man, payment_request["_id"])
    )

    assert transaction["amount"] == 500
    assert transaction["status"] == "received"
    assert transaction["id_recipient"] == ObjectId(delivery_man.id)
    stored_bill = asyncio.run(_bill(db, bill))
    assert stored_bill["amount_due"] == 0
    assert stored_bill["paid_amount"] == 500
    assert stored_bill["status"] == "paid"
    stored_request = asyncio.run(
        db.payment_requests.find_one({"_id": payment_request["_id"]})
    )
    assert stored_request["status"] == "accepted"
    assert stored_request["actual_amount"] == 500


def test_acceptance_is_capped_by_payment_in_between(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))
    payment_request = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 500))
    )

    asyncio.run(PayBill(db, bill["_id"], 300))
    transaction = asyncio.run(
        AcceptPaymentRequest(db, delivery_man, payment_request["_id"])
    )

    assert transaction["amount"] == 200
    assert transaction["requested_amount"] == 500
    stored_bill = asyncio.run(_bill(db, bill))
    assert stored_bill["amount_due"] == 0
    assert stored_bill["paid_amount"] == 500


def test_two_requests_never_apply_more_than_due(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    sales_man = asyncio.run(seed.user(UserRole.SALES_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))
    first = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 300))
    )
    second = asyncio.run(
        CreatePaymentRequest(
            db, user, _request_payload(bill, sales_man, 400, recipient_type="sales")
        )
    )

    applied_first = asyncio.run(AcceptPaymentRequest(db, delivery_man, first["_id"]))
    applied_second = asyncio.run(AcceptPaymentRequest(db, sales_man, second["_id"]))

    assert applied_first["amount"] == 300
    assert applied_second["amount"] == 200
    stored_bill = asyncio.run(_bill(db, bill))
    assert stored_bill["paid_amount"] + stored_bill["amount_due"] == 500
    assert stored_bill["amount_due"] == 0


def test_request_amount_must_fit_the_bill(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    with pytest.raises(InvalidAmount):
        asyncio.run(
            CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 501))
        )
    with pytest.raises(InvalidAmount):
        asyncio.run(
            CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 0))
        )
    assert asyncio.run(db.payment_requests.count_documents({})) == 0


def test_request_on_paid_bill_is_refused(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500, paid_amount=500, status="paid"))

    with pytest.raises(InvalidState):
        asyncio.run(
            CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 10))
        )


def test_recipient_role_must_match_recipient_type(db, seed):
    customer, user = asyncio.run(seed.customer())
    sales_man = asyncio.run(seed.user(UserRole.SALES_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    with pytest.raises(ValidationError):
        asyncio.run(
            CreatePaymentRequest(db, user, _request_payload(bill, sales_man, 100))
        )


def test_foreign_bill_is_forbidden(db, seed):
    customer, _ = asyncio.run(seed.customer())
    _, stranger = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    with pytest.raises(Forbidden):
        asyncio.run(
            CreatePaymentRequest(db, stranger, _request_payload(bill, delivery_man, 100))
        )


def test_only_the_recipient_decides(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    other_delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))
    payment_request = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 100))
    )

    with pytest.raises(Forbidden):
        asyncio.run(AcceptPaymentRequest(db, other_delivery_man, payment_request["_id"]))

    asyncio.run(AcceptPaymentRequest(db, delivery_man, payment_request["_id"]))
    with pytest.raises(InvalidState):
        asyncio.run(AcceptPaymentRequest(db, delivery_man, payment_request["_id"]))


def test_reject_returns_bill_to_previous_status(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))
    payment_request = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 100))
    )

    rejected = asyncio.run(
        RejectPaymentRequest(db, delivery_man, payment_request["_id"], "Not collected")
    )

    assert rejected["status"] == "rejected"
    assert rejected["rejection_reason"] == "Not collected"
    assert asyncio.run(_bill(db, bill))["status"] == "pending"
    assert asyncio.run(db.bill_transactions.count_documents({})) == 0


def test_reject_keeps_pending_payment_while_other_request_open(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500, paid_amount=100, status="partial"))
    first = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 100))
    )
    second = asyncio.run(
        CreatePaymentRequest(db, user, _request_payload(bill, delivery_man, 100))
    )

    asyncio.run(RejectPaymentRequest(db, delivery_man, first["_id"]))
    assert asyncio.run(_bill(db, bill))["status"] == "pending_payment"

    asyncio.run(RejectPaymentRequest(db, delivery_man, second["_id"]))
    assert asyncio.run(_bill(db, bill))["status"] == "partial"


def test_request_amount_must_be_finite(db, seed):
    customer, user = asyncio.run(seed.customer())
    delivery_man = asyncio.run(seed.user(UserRole.DELIVERY_MAN.value))
    bill = asyncio.run(seed.bill(customer, total_used=500))

    with pytest.raises(InvalidAmount):
        asyncio.run(
            CreatePaymentRequest(
                db, user, _request_payload(bill, delivery_man, float("nan"))
            )
        )

    assert asyncio.run(db.payment_requests.count_documents({})) == 0
    stored_bill = asyncio.run(_bill(db, bill))
    assert stored_bill["status"] == "pending"
    assert stored_bill["paid_amount"] + stored_bill["amount_due"] == 500
