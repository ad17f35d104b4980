"""Customer payment requests against a Bill.

A request is addressed to a field agent. Accepting it applies the requested
amount, capped at the bill's current due, and opens a BillTransaction held by
that agent. Bill writes use the versioned update of `billing`, retried a
bounded number of times when another payment got there first.
"""

import logging
from bson import ObjectId
from creditsales.models.bills import BillStatusData
from creditsales.models.payment_requests import (
    PaymentRequestStatusData,
    RecipientTypeData,
)
from creditsales.models.settlements import CustodyStatusData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.billing import (
    BILL_PAID_MESSAGE,
    BILL_UPDATE_MAX_ATTEMPTS,
    ApplyPayment,
    GetBill,
    UpdateBillVersioned,
)
from creditsales.modules.crud_operations import (
    CreateOneData,
    GetDataCount,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    ConcurrentUpdate,
    Forbidden,
    InvalidAmount,
    InvalidState,
    NotFound,
    TransactionConflict,
    ValidationError,
)
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID, RoundAmount
from creditsales.modules.response_message import FORBIDDEN_ACCESS_MESSAGE

logger = logging.getLogger(__name__)

RECIPIENT_ROLES = {
    RecipientTypeData.DELIVERY.value: UserRole.DELIVERY_MAN.value,
    RecipientTypeData.SALES.value: UserRole.SALES_MAN.value,
}

PAYMENT_REQUEST_NOT_FOUND_MESSAGE = "Payment request not found!"
BILL_BUSY_MESSAGE = "Bill is being updated by another payment, try again!"


async def CreatePaymentRequest(db, current_user: UserData, payload: dict):
    if current_user.role != UserRole.CUSTOMER:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    customer = await GetCustomerOfUser(db, current_user.id)
    amount = RoundAmount(payload["amount"])
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than 0!")

    recipient_type = RecipientTypeData(payload["recipient_type"]).value
    recipient = await GetOneData(
        db.users, {"_id": ParseObjectID(payload["id_recipient"])}, is_json=False
    )
    if not recipient:
        raise NotFound("Recipient not found!")
    if recipient["role"] != RECIPIENT_ROLES[recipient_type]:
        raise ValidationError(
            f"Recipient must be a {RECIPIENT_ROLES[recipient_type]} for {recipient_type} payments!"
        )

    id_bill = ParseObjectID(payload["id_bill"])
    for attempt in range(1, BILL_UPDATE_MAX_ATTEMPTS + 1):
        bill = await GetBill(db, id_bill)
        if bill["id_customer"] != customer["_id"]:
            raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)
        if bill["amount_due"] <= 0:
            raise InvalidState(BILL_PAID_MESSAGE)
        if amount > bill["amount_due"]:
            raise InvalidAmount(
                f"Payment amount can not exceed the amount due of {bill['amount_due']}!"
            )

        now = GetCurrentDateTime()
        request_data = {
            "id_bill": id_bill,
            "id_customer": customer["_id"],
            "amount": amount,
            "method": payload["method"],
            "cheque_details": payload.get("cheque_details"),
            "recipient_type": recipient_type,
            "id_recipient": recipient["_id"],
            "status": PaymentRequestStatusData.PENDING.value,
            "created_at": now,
        }
        try:
            async with StartTransaction(db) as session:
                is_updated = await UpdateBillVersioned(
                    db,
                    bill,
                    {"status": BillStatusData.PENDING_PAYMENT.value},
                    session=session,
                )
                if is_updated:
                    result = await CreateOneData(
                        db.payment_requests, request_data, session=session
                    )
                    request_data["_id"] = result.inserted_id
        except TransactionConflict:
            is_updated = False
        if is_updated:
            logger.info(
                "payment request %s of %s on bill %s sent to %s",
                request_data["_id"],
                amount,
                id_bill,
                recipient["_id"],
            )
            return request_data

        logger.warning(
            "bill %s changed while requesting payment, retry %s/%s",
            id_bill,
            attempt,
            BILL_UPDATE_MAX_ATTEMPTS,
        )

    raise ConcurrentUpdate(BILL_BUSY_MESSAGE)


async def GetPendingRequestForRecipient(
    db, current_user: UserData, id_request: ObjectId
):
    payment_request = await GetOneData(
        db.payment_requests, {"_id": id_request}, is_json=False
    )
    if not payment_request:
        raise NotFound(PAYMENT_REQUEST_NOT_FOUND_MESSAGE)
    if payment_request["id_recipient"] != ObjectId(current_user.id):
        raise Forbidden("This payment request is not addressed to you!")
    if payment_request["status"] != PaymentRequestStatusData.PENDING.value:
        raise InvalidState(f"Payment request is already {payment_request['status']}!")
    return payment_request


async def AcceptPaymentRequest(db, current_user: UserData, id_request: ObjectId):
    """Apply a pending request to its bill and open the agent's transaction.

    The applied amount is `min(requested, amount_due)` read at acceptance, so
    a bill paid down in the meantime only takes what is left. The transaction
    is created even when nothing is left to apply.
    """
    payment_request = await GetPendingRequestForRecipient(db, current_user, id_request)

    for attempt in range(1, BILL_UPDATE_MAX_ATTEMPTS + 1):
        bill = await GetBill(db, payment_request["id_bill"])
        actual_payment, update_data = ApplyPayment(bill, payment_request["amount"])

        now = GetCurrentDateTime()
        transaction_data = {
            "id_bill": bill["_id"],
            "id_customer": payment_request["id_customer"],
            "id_recipient": payment_request["id_recipient"],
            "recipient_type": payment_request["recipient_type"],
            "amount": actual_payment,
            "requested_amount": payment_request["amount"],
            "method": payment_request["method"],
            "cheque_details": payment_request.get("cheque_details"),
            "id_payment_request": payment_request["_id"],
            "status": CustodyStatusData.RECEIVED.value,
            "created_at": now,
        }
        try:
            async with StartTransaction(db) as session:
                is_updated = await UpdateBillVersioned(
                    db, bill, update_data, session=session
                )
                if is_updated:
                    result = await UpdateOneData(
                        db.payment_requests,
                        {
                            "_id": id_request,
                            "status": PaymentRequestStatusData.PENDING.value,
                        },
                        {
                            "$set": {
                                "status": PaymentRequestStatusData.ACCEPTED.value,
                                "actual_amount": actual_payment,
                                "accepted_at": now,
                            }
                        },
                        session=session,
                    )
                    if not result.modified_count:
                        raise InvalidState("Payment request was already processed!")
                    transaction_result = await CreateOneData(
                        db.bill_transactions, transaction_data, session=session
                    )
                    transaction_data["_id"] = transaction_result.inserted_id
        except TransactionConflict:
            is_updated = False
        if is_updated:
            logger.info(
                "payment request %s accepted: applied %s of %s, bill %s due now %s",
                id_request,
                actual_payment,
                payment_request["amount"],
                bill["_id"],
                update_data["amount_due"],
            )
            return transaction_data

        logger.warning(
            "bill %s changed while accepting payment request %s, retry %s/%s",
            bill["_id"],
            id_request,
            attempt,
            BILL_UPDATE_MAX_ATTEMPTS,
        )

    raise ConcurrentUpdate(BILL_BUSY_MESSAGE)


async def RejectPaymentRequest(
    db, current_user: UserData, id_request: ObjectId, reason: str = None
):
    payment_request = await GetPendingRequestForRecipient(db, current_user, id_request)

    for attempt in range(1, BILL_UPDATE_MAX_ATTEMPTS + 1):
        bill = await GetBill(db, payment_request["id_bill"])

        # the bill leaves pending_payment once no other request is open on it
        bill_status = None
        if bill["status"] == BillStatusData.PENDING_PAYMENT.value:
            other_pending_requests = await GetDataCount(
                db.payment_requests,
                {
                    "id_bill": bill["_id"],
                    "_id": {"$ne": id_request},
                    "status": PaymentRequestStatusData.PENDING.value,
                },
            )
            if not other_pending_requests:
                bill_status = (
                    BillStatusData.PARTIAL.value
                    if bill["paid_amount"] > 0
                    else BillStatusData.PENDING.value
                )

        now = GetCurrentDateTime()
        try:
            async with StartTransaction(db) as session:
                is_updated = True
                if bill_status:
                    is_updated = await UpdateBillVersioned(
                        db, bill, {"status": bill_status}, session=session
                    )
                if is_updated:
                    result = await UpdateOneData(
                        db.payment_requests,
                        {
                            "_id": id_request,
                            "status": PaymentRequestStatusData.PENDING.value,
                        },
                        {
                            "$set": {
                                "status": PaymentRequestStatusData.REJECTED.value,
                                "rejection_reason": reason,
                                "rejected_at": now,
                            }
                        },
                        session=session,
                    )
                    if not result.modified_count:
                        raise InvalidState("Payment request was already processed!")
        except TransactionConflict:
            is_updated = False
        if is_updated:
            logger.info(
                "payment request %s rejected, bill %s status %s",
                id_request,
                bill["_id"],
                bill_status or bill["status"],
            )
            return await GetOneData(
                db.payment_requests, {"_id": id_request}, is_json=False
            )

        logger.warning(
            "bill %s changed while rejecting payment request %s, retry %s/%s",
            bill["_id"],
            id_request,
            attempt,
            BILL_UPDATE_MAX_ATTEMPTS,
        )

    raise ConcurrentUpdate(BILL_BUSY_MESSAGE)
