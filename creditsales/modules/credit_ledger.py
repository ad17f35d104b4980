"""Customer credit and product stock adjustments.

All four operations are single-document guarded updates. Callers that combine
them with an Order or Bill write pass the transaction `session` so the ledger
change commits or aborts together with that write.
"""

import logging
from bson import ObjectId
from creditsales.modules.crud_operations import FindOneAndUpdateData, GetOneData
from creditsales.modules.exceptions import (
    InsufficientCredit,
    InsufficientStock,
    InvalidAmount,
    NotFound,
)
from creditsales.modules.generals import GetCurrentDateTime, RoundAmount

logger = logging.getLogger(__name__)

CUSTOMER_NOT_FOUND_MESSAGE = "Customer not found!"
PRODUCT_NOT_FOUND_MESSAGE = "Product not found!"


async def ReserveCredit(db, id_customer: ObjectId, amount, session=None):
    amount = RoundAmount(amount)
    if amount < 0:
        raise InvalidAmount("Credit amount must not be negative!")

    customer = await FindOneAndUpdateData(
        db.customers,
        {"_id": id_customer, "balance_credit_limit": {"$gte": amount}},
        {
            "$inc": {"balance_credit_limit": -amount},
            "$set": {"updated_at": GetCurrentDateTime()},
        },
        session=session,
    )
    if customer is None:
        exist_customer = await GetOneData(
            db.customers, {"_id": id_customer}, is_json=False, session=session
        )
        if not exist_customer:
            raise NotFound(CUSTOMER_NOT_FOUND_MESSAGE)
        raise InsufficientCredit(
            f"Insufficient credit limit: available {exist_customer['balance_credit_limit']}, required {amount}"
        )

    logger.info("reserved credit %s from customer %s", amount, id_customer)
    return customer


async def ReleaseCredit(db, id_customer: ObjectId, amount, session=None):
    amount = RoundAmount(amount)
    if amount < 0:
        raise InvalidAmount("Credit amount must not be negative!")

    customer = await FindOneAndUpdateData(
        db.customers,
        {"_id": id_customer},
        {
            "$inc": {"balance_credit_limit": amount},
            "$set": {"updated_at": GetCurrentDateTime()},
        },
        session=session,
    )
    if customer is None:
        raise NotFound(CUSTOMER_NOT_FOUND_MESSAGE)

    # balance never exceeds the ceiling
    if customer["balance_credit_limit"] > customer["credit_limit"]:
        customer = await FindOneAndUpdateData(
            db.customers,
            {"_id": id_customer},
            {"$set": {"balance_credit_limit": customer["credit_limit"]}},
            session=session,
        )

    logger.info("released credit %s to customer %s", amount, id_customer)
    return customer


async def ReserveStock(db, id_product: ObjectId, quantity: int, session=None):
    if quantity < 0:
        raise InvalidAmount("Quantity must not be negative!")

    product = await FindOneAndUpdateData(
        db.products,
        {"_id": id_product, "quantity": {"$gte": quantity}},
        {
            "$inc": {"quantity": -quantity},
            "$set": {"updated_at": GetCurrentDateTime()},
        },
        session=session,
    )
    if product is None:
        exist_product = await GetOneData(
            db.products, {"_id": id_product}, is_json=False, session=session
        )
        if not exist_product:
            raise NotFound(PRODUCT_NOT_FOUND_MESSAGE)
        raise InsufficientStock(
            f"Insufficient stock: available {exist_product['quantity']}, required {quantity}"
        )

    logger.info("reserved %s unit(s) of product %s", quantity, id_product)
    return product


async def ReleaseStock(db, id_product: ObjectId, quantity: int, session=None):
    if quantity < 0:
        raise InvalidAmount("Quantity must not be negative!")

    product = await FindOneAndUpdateData(
        db.products,
        {"_id": id_product},
        {
            "$inc": {"quantity": quantity},
            "$set": {"updated_at": GetCurrentDateTime()},
        },
        session=session,
    )
    if product is None:
        raise NotFound(PRODUCT_NOT_FOUND_MESSAGE)

    logger.info("released %s unit(s) of product %s", quantity, id_product)
    return product
