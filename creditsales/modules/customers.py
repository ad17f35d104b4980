import logging
import os
from bson import ObjectId
from passlib.context import CryptContext
from dotenv import load_dotenv
from creditsales.models.customers import CustomerBillingTypeData
from creditsales.models.orders import OrderStatusData
from creditsales.models.users import UserRole, UserStatusData
from creditsales.modules.crud_operations import (
    CreateOneData,
    DeleteOneData,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    ConcurrentUpdate,
    InvalidAmount,
    InvalidState,
    NotFound,
)
from creditsales.modules.generals import (
    GenerateRandomString,
    GetCurrentDateTime,
    RoundAmount,
)
from creditsales.modules.response_message import EXIST_DATA_MESSAGE

load_dotenv()

DEFAULT_CUSTOMER_PASSWORD = os.getenv("DEFAULT_CUSTOMER_PASSWORD")
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

logger = logging.getLogger(__name__)

CUSTOMER_NOT_FOUND_MESSAGE = "Customer not found!"


async def GetCustomerOfUser(db, id_user: str, session=None):
    customer = await GetOneData(
        db.customers, {"id_user": ObjectId(id_user)}, is_json=False, session=session
    )
    if not customer:
        raise NotFound(CUSTOMER_NOT_FOUND_MESSAGE)
    return customer


async def CreateCustomerWithUser(db, payload: dict, session=None):
    """Create a Customer and its linked login User.

    Returns the customer document and the temporary password that was set on
    the User. Must run inside the caller's transaction when `session` is given.
    """
    credit_limit = RoundAmount(payload["credit_limit"])
    if credit_limit < 0:
        raise InvalidAmount("Credit limit must not be negative!")

    exist_user = await GetOneData(
        db.users, {"email": payload["email"]}, is_json=False, session=session
    )
    exist_customer = await GetOneData(
        db.customers, {"email": payload["email"]}, is_json=False, session=session
    )
    if exist_user or exist_customer:
        raise InvalidState(EXIST_DATA_MESSAGE)

    temporary_password = DEFAULT_CUSTOMER_PASSWORD or GenerateRandomString(10)
    user_data = {
        "name": payload["name"],
        "email": payload["email"],
        "phone_number": payload.get("phone_number"),
        "password": pwd_context.hash(temporary_password),
        "role": UserRole.CUSTOMER.value,
        "status": UserStatusData.ACTIVE.value,
        "created_at": GetCurrentDateTime(),
    }
    user_result = await CreateOneData(db.users, user_data, session=session)

    customer_data = {
        "id_user": user_result.inserted_id,
        "name": payload["name"],
        "email": payload["email"],
        "phone_number": payload.get("phone_number"),
        "address": payload.get("address"),
        "pincode": payload.get("pincode"),
        "credit_limit": credit_limit,
        "balance_credit_limit": credit_limit,
        "billing_type": payload.get(
            "billing_type", CustomerBillingTypeData.CREDITCARD.value
        ),
        "created_at": GetCurrentDateTime(),
    }
    customer_result = await CreateOneData(db.customers, customer_data, session=session)
    customer_data["_id"] = customer_result.inserted_id

    logger.info(
        "customer %s created with user %s",
        customer_result.inserted_id,
        user_result.inserted_id,
    )
    return customer_data, temporary_password


async def UpdateCustomer(db, id_customer: ObjectId, payload: dict):
    customer = await GetOneData(db.customers, {"_id": id_customer}, is_json=False)
    if not customer:
        raise NotFound(CUSTOMER_NOT_FOUND_MESSAGE)

    query = {"_id": id_customer}
    update_data = payload.copy()
    if "credit_limit" in payload:
        # the spendable balance moves with the ceiling
        new_credit_limit = RoundAmount(payload["credit_limit"])
        delta = RoundAmount(new_credit_limit - customer["credit_limit"])
        new_balance = RoundAmount(customer["balance_credit_limit"] + delta)
        if new_credit_limit < 0 or new_balance < 0:
            raise InvalidAmount(
                "Credit limit can not be lowered below the credit already in use!"
            )
        update_data["credit_limit"] = new_credit_limit
        update_data["balance_credit_limit"] = new_balance
        query["credit_limit"] = customer["credit_limit"]
        query["balance_credit_limit"] = customer["balance_credit_limit"]

    update_data["updated_at"] = GetCurrentDateTime()
    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db.customers, query, {"$set": update_data}, session=session
        )
        if not result.matched_count:
            raise ConcurrentUpdate("Customer was modified concurrently, try again!")

        user_update = {
            key: update_data[key]
            for key in ["name", "email", "phone_number"]
            if key in update_data
        }
        if user_update:
            await UpdateOneData(
                db.users,
                {"_id": customer["id_user"]},
                {"$set": user_update},
                session=session,
            )

    logger.info("customer %s updated", id_customer)


async def DeleteCustomer(db, id_customer: ObjectId):
    customer = await GetOneData(db.customers, {"_id": id_customer}, is_json=False)
    if not customer:
        raise NotFound(CUSTOMER_NOT_FOUND_MESSAGE)

    pending_order = await GetOneData(
        db.orders,
        {"id_customer": id_customer, "status": OrderStatusData.PENDING.value},
        is_json=False,
    )
    if pending_order:
        raise InvalidState("Customer still has pending orders!")

    async with StartTransaction(db) as session:
        await DeleteOneData(db.customers, {"_id": id_customer}, session=session)
        await DeleteOneData(db.users, {"_id": customer["id_user"]}, session=session)

    logger.info("customer %s deleted with user %s", id_customer, customer["id_user"])
