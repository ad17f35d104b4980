import logging
from bson import ObjectId
from creditsales.models.generals import PaymentMethodData
from creditsales.models.orders import OrderAssignmentStatusData, OrderStatusData
from creditsales.models.settlements import CustodyStatusData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    CreateOneData,
    FindOneAndUpdateData,
    GetListData,
    GetOneData,
)
from creditsales.modules.custody import (
    PAYMENT_TRANSACTION_CUSTODY,
    GetCustodyTransaction,
)
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    Forbidden,
    InvalidAmount,
    InvalidState,
    NotFound,
)
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID, RoundAmount
from creditsales.modules.response_message import FORBIDDEN_ACCESS_MESSAGE

logger = logging.getLogger(__name__)

WALLET_STATUS = [CustodyStatusData.RECEIVED.value, CustodyStatusData.PENDING.value]


async def CollectPayment(db, current_user: UserData, payload: dict):
    """Record money a delivery man collected against an accepted order.

    The order keeps a running `collected_amount`; the guarded increment makes
    sure the collections never add up to more than the order total.
    """
    if current_user.role != UserRole.DELIVERY_MAN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    id_order = ParseObjectID(payload["id_order"])
    order = await GetOneData(db.orders, {"_id": id_order}, is_json=False)
    if not order:
        raise NotFound("Order not found!")
    if (
        order.get("assigned_to") != ObjectId(current_user.id)
        or order["assignment_status"] != OrderAssignmentStatusData.ACCEPTED.value
    ):
        raise Forbidden("This order is not assigned to you!")
    if order["status"] == OrderStatusData.CANCELLED.value:
        raise InvalidState("Payment can not be collected for a cancelled order!")

    amount = RoundAmount(payload["amount"])
    collected_amount = order.get("collected_amount", 0)
    remaining_amount = RoundAmount(order["total_amount"] - collected_amount)
    if amount <= 0 or amount > remaining_amount:
        raise InvalidAmount(
            f"Collected amount must be greater than 0 and at most {remaining_amount}!"
        )

    now = GetCurrentDateTime()
    transaction_data = {
        "id_order": id_order,
        "id_delivery_man": ObjectId(current_user.id),
        "amount": amount,
        "method": payload["method"],
        "cheque_details": payload.get("cheque_details"),
        "date": now,
        "status": CustodyStatusData.RECEIVED.value,
        "created_at": now,
    }
    async with StartTransaction(db) as session:
        updated_order = await FindOneAndUpdateData(
            db.orders,
            {
                "_id": id_order,
                "$or": [
                    {"collected_amount": {"$lte": order["total_amount"] - amount}},
                    {"collected_amount": {"$exists": False}},
                ],
            },
            {"$inc": {"collected_amount": amount}},
            session=session,
        )
        if updated_order is None:
            raise InvalidAmount("Order was already paid by another collection!")
        result = await CreateOneData(
            db.payment_transactions, transaction_data, session=session
        )
        transaction_data["_id"] = result.inserted_id

    logger.info(
        "delivery man %s collected %s (%s) for order %s",
        current_user.id,
        amount,
        transaction_data["method"],
        id_order,
    )
    return transaction_data


async def GetWallet(db, current_user: UserData, method: PaymentMethodData):
    if current_user.role != UserRole.DELIVERY_MAN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    transactions = await GetListData(
        db.payment_transactions,
        {
            "id_delivery_man": ObjectId(current_user.id),
            "method": PaymentMethodData(method).value,
        },
        sort_by="date",
    )
    total_amount = RoundAmount(
        sum(
            transaction["amount"]
            for transaction in transactions
            if transaction["status"] in WALLET_STATUS
        )
    )
    return transactions, total_amount


async def GetReceiptData(db, current_user: UserData, id_transaction: ObjectId):
    transaction = await GetCustodyTransaction(
        db, PAYMENT_TRANSACTION_CUSTODY, id_transaction
    )
    if (
        transaction["id_delivery_man"] != ObjectId(current_user.id)
        and current_user.role != UserRole.ADMIN
    ):
        raise Forbidden("Not authorized to print this receipt!")

    order = await GetOneData(db.orders, {"_id": transaction["id_order"]}, is_json=False)
    if not order:
        raise NotFound("Associated order not found!")

    customer = await GetOneData(
        db.customers, {"_id": order["id_customer"]}, is_json=False
    )
    delivery_man = await GetOneData(
        db.users, {"_id": transaction["id_delivery_man"]}, is_json=False
    )
    company = await GetOneData(db.company_settings, {}, is_json=False) or {}

    return {
        "id_transaction": str(transaction["_id"]),
        "id_order": str(order["_id"]),
        "company_name": company.get("company_name") or "Credit Sales",
        "customer_name": customer["name"] if customer else "N/A",
        "delivery_man_name": delivery_man["name"] if delivery_man else "N/A",
        "amount": transaction["amount"],
        "method": transaction["method"],
        "cheque_details": transaction.get("cheque_details"),
        "date": transaction["date"],
    }
