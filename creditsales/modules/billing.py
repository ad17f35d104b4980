"""Billing cycles and direct bill payments.

A Bill keeps `paid_amount + amount_due == total_used`. Every write to a Bill
is conditioned on the `version` it read and bumps it, so two payments can
never both apply against the same stale `amount_due`.
"""

import logging
import os
from datetime import datetime, timedelta
from bson import ObjectId
from dotenv import load_dotenv
from creditsales.models.bills import BillStatusData
from creditsales.models.customers import CustomerBillingTypeData
from creditsales.models.orders import OrderPaymentData, OrderStatusData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.credit_ledger import ReleaseCredit
from creditsales.modules.crud_operations import (
    CreateOneData,
    GetListData,
    GetOneData,
    UpdateManyData,
    UpdateOneData,
)
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    ConcurrentUpdate,
    Forbidden,
    InvalidAmount,
    InvalidState,
    NoEligibleOrders,
    NotFound,
    TransactionConflict,
    ValidationError,
)
from creditsales.modules.generals import GetCurrentDateTime, RoundAmount
from creditsales.modules.response_message import FORBIDDEN_ACCESS_MESSAGE

load_dotenv()

BILL_UPDATE_MAX_ATTEMPTS = int(os.getenv("BILL_UPDATE_MAX_ATTEMPTS", 5))

BILLING_GRACE_DAYS = {
    CustomerBillingTypeData.CREDITCARD.value: 30,
    CustomerBillingTypeData.IMMEDIATE.value: 1,
}

BILL_NOT_FOUND_MESSAGE = "Bill not found!"
BILL_PAID_MESSAGE = "Bill is already fully paid!"

logger = logging.getLogger(__name__)


def ComputeDueDate(cycle_end: datetime, billing_type: str):
    grace_days = BILLING_GRACE_DAYS.get(
        billing_type, BILLING_GRACE_DAYS[CustomerBillingTypeData.IMMEDIATE.value]
    )
    return cycle_end + timedelta(days=grace_days)


def BilledAmount(order: dict):
    # a cancelled order only owes what was delivered before cancelling
    if order["status"] == OrderStatusData.CANCELLED.value:
        return RoundAmount(order["price"] * order["delivered_quantity"])
    return order["total_amount"]


def ApplyPayment(bill: dict, amount):
    """Cap `amount` at the bill's current due and return the applied amount
    together with the new amount fields and status."""
    actual_payment = RoundAmount(min(amount, bill["amount_due"]))
    amount_due = RoundAmount(max(0, bill["amount_due"] - actual_payment))
    paid_amount = RoundAmount(bill["paid_amount"] + actual_payment)
    status = (
        BillStatusData.PAID.value if amount_due == 0 else BillStatusData.PARTIAL.value
    )
    return actual_payment, {
        "amount_due": amount_due,
        "paid_amount": paid_amount,
        "status": status,
    }


async def MarkOverdueBills(db, query: dict = {}, session=None):
    now = GetCurrentDateTime()
    overdue_query = {
        **query,
        "status": BillStatusData.PENDING.value,
        "due_date": {"$lt": now},
    }
    result = await UpdateManyData(
        db.bills,
        overdue_query,
        {
            "$set": {"status": BillStatusData.OVERDUE.value, "updated_at": now},
            "$inc": {"version": 1},
        },
        session=session,
    )
    if result.modified_count:
        logger.info("%s bill(s) marked overdue", result.modified_count)
    return result.modified_count


async def GetBill(db, id_bill: ObjectId, session=None):
    await MarkOverdueBills(db, {"_id": id_bill}, session=session)
    bill = await GetOneData(db.bills, {"_id": id_bill}, is_json=False, session=session)
    if not bill:
        raise NotFound(BILL_NOT_FOUND_MESSAGE)
    return bill


async def GetBillForActor(db, current_user: UserData, id_bill: ObjectId):
    bill = await GetBill(db, id_bill)
    if current_user.role == UserRole.ADMIN:
        return bill
    if current_user.role == UserRole.CUSTOMER:
        customer = await GetCustomerOfUser(db, current_user.id)
        if customer["_id"] == bill["id_customer"]:
            return bill
    raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)


async def GenerateBill(
    db, id_customer: ObjectId, cycle_start: datetime, cycle_end: datetime
):
    if cycle_start > cycle_end:
        raise ValidationError("Cycle start must not be after cycle end!")

    customer = await GetOneData(db.customers, {"_id": id_customer}, is_json=False)
    if not customer:
        raise NotFound("Customer not found!")

    orders = await GetListData(
        db.orders,
        {
            "id_customer": id_customer,
            "payment": OrderPaymentData.CREDIT.value,
            "order_date": {"$gte": cycle_start, "$lte": cycle_end},
            "id_bill": None,
            "$or": [
                {"status": {"$ne": OrderStatusData.CANCELLED.value}},
                {"delivered_quantity": {"$gt": 0}},
            ],
        },
        sort_by="order_date",
        sort_direction=1,
        is_json=False,
    )
    if not orders:
        raise NoEligibleOrders("No unbilled credit orders found for this cycle!")

    id_orders = [order["_id"] for order in orders]
    total_used = RoundAmount(sum(BilledAmount(order) for order in orders))
    now = GetCurrentDateTime()
    bill_data = {
        "_id": ObjectId(),
        "id_customer": id_customer,
        "cycle_start": cycle_start,
        "cycle_end": cycle_end,
        "orders": id_orders,
        "total_used": total_used,
        "amount_due": total_used,
        "paid_amount": 0,
        "due_date": ComputeDueDate(cycle_end, customer.get("billing_type")),
        "status": BillStatusData.PENDING.value,
        "version": 0,
        "created_at": now,
    }

    async with StartTransaction(db) as session:
        result = await UpdateManyData(
            db.orders,
            {"_id": {"$in": id_orders}, "id_bill": None},
            {"$set": {"id_bill": bill_data["_id"], "updated_at": now}},
            session=session,
        )
        if result.modified_count != len(id_orders):
            raise ConcurrentUpdate(
                "Some orders were billed concurrently, generate the bill again!"
            )
        await CreateOneData(db.bills, bill_data, session=session)

    logger.info(
        "bill %s generated for customer %s: %s order(s), total %s",
        bill_data["_id"],
        id_customer,
        len(id_orders),
        total_used,
    )
    return bill_data


async def UpdateBillVersioned(db, bill: dict, update_data: dict, session=None):
    """Write `update_data` only if the bill is still at the version read."""
    update_data = {**update_data, "updated_at": GetCurrentDateTime()}
    result = await UpdateOneData(
        db.bills,
        {"_id": bill["_id"], "version": bill.get("version", 0)},
        {"$set": update_data, "$inc": {"version": 1}},
        session=session,
    )
    return result.modified_count == 1


async def PayBill(db, id_bill: ObjectId, amount, method: str = None):
    """Record a direct payment against a bill.

    The applied amount is capped at the current `amount_due`, and the same
    amount is given back to the customer's spendable credit.
    """
    amount = RoundAmount(amount)
    if amount <= 0:
        raise InvalidAmount("Payment amount must be greater than 0!")

    for attempt in range(1, BILL_UPDATE_MAX_ATTEMPTS + 1):
        bill = await GetBill(db, id_bill)
        if bill["amount_due"] <= 0:
            raise InvalidState(BILL_PAID_MESSAGE)

        actual_payment, update_data = ApplyPayment(bill, amount)
        try:
            async with StartTransaction(db) as session:
                is_updated = await UpdateBillVersioned(
                    db, bill, update_data, session=session
                )
                if is_updated:
                    await ReleaseCredit(
                        db, bill["id_customer"], actual_payment, session=session
                    )
        except TransactionConflict:
            is_updated = False
        if is_updated:
            logger.info(
                "bill %s paid %s (%s) directly, due now %s",
                id_bill,
                actual_payment,
                method,
                update_data["amount_due"],
            )
            return actual_payment, await GetOneData(
                db.bills, {"_id": id_bill}, is_json=False
            )

        logger.warning(
            "bill %s changed while paying, retry %s/%s",
            id_bill,
            attempt,
            BILL_UPDATE_MAX_ATTEMPTS,
        )

    raise ConcurrentUpdate("Bill is being updated by another payment, try again!")
