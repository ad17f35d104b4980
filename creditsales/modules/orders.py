"""Order lifecycle: creation, quantity/payment changes, delivery, cancellation
and the delivery-assignment sub-state.

Every transition that moves stock or credit runs the ledger writes and the
Order write in one transaction. The current state is read and validated first,
so a refused transition writes nothing.
"""

import logging
from bson import ObjectId
from creditsales.models.orders import (
    InvoiceTypeData,
    OrderAssignmentStatusData,
    OrderPaymentData,
    OrderStatusData,
)
from creditsales.models.users import UserData, UserRole
from creditsales.modules.credit_ledger import (
    ReleaseCredit,
    ReleaseStock,
    ReserveCredit,
    ReserveStock,
)
from creditsales.modules.crud_operations import (
    CreateOneData,
    DeleteOneData,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    ConcurrentUpdate,
    Forbidden,
    InsufficientCredit,
    InsufficientStock,
    InvalidAmount,
    InvalidState,
    NotFound,
    ValidationError,
)
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID, RoundAmount
from creditsales.modules.response_message import FORBIDDEN_ACCESS_MESSAGE

logger = logging.getLogger(__name__)

ORDER_NOT_FOUND_MESSAGE = "Order not found!"
ORDER_NOT_PENDING_MESSAGE = "Only pending orders can be changed!"
ORDER_BILLED_MESSAGE = "Order is already billed and can not be changed!"
ORDER_CHANGED_MESSAGE = "Order was modified concurrently, try again!"


def ReservedCredit(order: dict):
    if order["payment"] != OrderPaymentData.CREDIT.value:
        return 0
    return order["total_amount"]


async def GetOrder(db, id_order: ObjectId, session=None):
    order = await GetOneData(
        db.orders, {"_id": id_order}, is_json=False, session=session
    )
    if not order:
        raise NotFound(ORDER_NOT_FOUND_MESSAGE)
    return order


async def CheckOrderOwner(db, current_user: UserData, order: dict):
    if current_user.role == UserRole.ADMIN:
        return
    if current_user.role == UserRole.CUSTOMER:
        customer = await GetCustomerOfUser(db, current_user.id)
        if customer["_id"] == order["id_customer"]:
            return
    raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)


def CheckOrderMutable(order: dict):
    if order["status"] != OrderStatusData.PENDING.value:
        raise InvalidState(ORDER_NOT_PENDING_MESSAGE)
    if order.get("id_bill"):
        raise InvalidState(ORDER_BILLED_MESSAGE)


async def CreateOrder(db, current_user: UserData, payload: dict):
    if current_user.role == UserRole.CUSTOMER:
        customer = await GetCustomerOfUser(db, current_user.id)
        if payload.get("id_customer") and payload["id_customer"] != str(
            customer["_id"]
        ):
            raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)
    elif current_user.role == UserRole.ADMIN:
        if not payload.get("id_customer"):
            raise ValidationError("id_customer is required!")
        customer = await GetOneData(
            db.customers,
            {"_id": ParseObjectID(payload["id_customer"])},
            is_json=False,
        )
        if not customer:
            raise NotFound("Customer not found!")
    else:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    ordered_quantity = payload["ordered_quantity"]
    if ordered_quantity <= 0:
        raise InvalidAmount("Ordered quantity must be greater than 0!")

    product = await GetOneData(
        db.products, {"_id": ParseObjectID(payload["id_product"])}, is_json=False
    )
    if not product:
        raise NotFound("Product not found!")
    if product["quantity"] < ordered_quantity:
        raise InsufficientStock(
            f"Insufficient stock: available {product['quantity']}, required {ordered_quantity}"
        )

    price = RoundAmount(product["price"])
    total_amount = RoundAmount(price * ordered_quantity)
    payment = payload["payment"]
    if (
        payment == OrderPaymentData.CREDIT.value
        and customer["balance_credit_limit"] < total_amount
    ):
        raise InsufficientCredit(
            f"Insufficient credit limit: available {customer['balance_credit_limit']}, required {total_amount}"
        )

    now = GetCurrentDateTime()
    order_data = {
        "id_customer": customer["_id"],
        "id_product": product["_id"],
        "product_name": product["name"],
        "ordered_quantity": ordered_quantity,
        "delivered_quantity": 0,
        "price": price,
        "total_amount": total_amount,
        "payment": payment,
        "status": OrderStatusData.PENDING.value,
        "assignment_status": OrderAssignmentStatusData.PENDING_ASSIGNMENT.value,
        "assigned_to": None,
        "assigned_at": None,
        "accepted_at": None,
        "rejection_reason": None,
        "id_bill": None,
        "collected_amount": 0,
        "remarks": payload.get("remarks") or "",
        "order_date": now,
        "created_by": ObjectId(current_user.id),
        "created_at": now,
    }

    async with StartTransaction(db) as session:
        await ReserveStock(db, product["_id"], ordered_quantity, session=session)
        if payment == OrderPaymentData.CREDIT.value:
            await ReserveCredit(db, customer["_id"], total_amount, session=session)
        result = await CreateOneData(db.orders, order_data, session=session)

    order_data["_id"] = result.inserted_id
    logger.info(
        "order %s created for customer %s: %s x %s (%s)",
        result.inserted_id,
        customer["_id"],
        ordered_quantity,
        price,
        payment,
    )
    return order_data


async def UpdateOrder(db, current_user: UserData, id_order: ObjectId, payload: dict):
    """Change quantity and/or payment of a pending order.

    The old reservation is reversed and the new one applied as a single net
    adjustment of stock and credit, inside one transaction. The unit price
    stays the one captured when the order was created.
    """
    order = await GetOrder(db, id_order)
    await CheckOrderOwner(db, current_user, order)
    CheckOrderMutable(order)

    new_quantity = payload.get("ordered_quantity")
    if new_quantity is None:
        new_quantity = order["ordered_quantity"]
    new_payment = payload.get("payment") or order["payment"]
    if new_quantity <= 0:
        raise InvalidAmount("Ordered quantity must be greater than 0!")
    if new_quantity < order["delivered_quantity"]:
        raise InvalidAmount(
            "Ordered quantity can not be lower than the delivered quantity!"
        )

    new_total_amount = RoundAmount(order["price"] * new_quantity)
    new_order = {**order, "payment": new_payment, "total_amount": new_total_amount}
    stock_delta = new_quantity - order["ordered_quantity"]
    credit_delta = RoundAmount(ReservedCredit(new_order) - ReservedCredit(order))

    if stock_delta > 0:
        product = await GetOneData(
            db.products, {"_id": order["id_product"]}, is_json=False
        )
        if not product:
            raise NotFound("Product not found!")
        if product["quantity"] < stock_delta:
            raise InsufficientStock(
                f"Insufficient stock: available {product['quantity']}, required {stock_delta}"
            )
    if credit_delta > 0:
        customer = await GetOneData(
            db.customers, {"_id": order["id_customer"]}, is_json=False
        )
        if not customer:
            raise NotFound("Customer not found!")
        if customer["balance_credit_limit"] < credit_delta:
            raise InsufficientCredit(
                f"Insufficient credit limit: available {customer['balance_credit_limit']}, required {credit_delta}"
            )

    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db.orders,
            {
                "_id": id_order,
                "status": OrderStatusData.PENDING.value,
                "id_bill": None,
                "ordered_quantity": order["ordered_quantity"],
                "payment": order["payment"],
            },
            {
                "$set": {
                    "ordered_quantity": new_quantity,
                    "payment": new_payment,
                    "total_amount": new_total_amount,
                    "updated_at": GetCurrentDateTime(),
                }
            },
            session=session,
        )
        if not result.matched_count:
            raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)

        if stock_delta > 0:
            await ReserveStock(db, order["id_product"], stock_delta, session=session)
        elif stock_delta < 0:
            await ReleaseStock(db, order["id_product"], -stock_delta, session=session)

        if credit_delta > 0:
            await ReserveCredit(db, order["id_customer"], credit_delta, session=session)
        elif credit_delta < 0:
            await ReleaseCredit(
                db, order["id_customer"], -credit_delta, session=session
            )

    logger.info(
        "order %s updated: quantity %s -> %s, payment %s -> %s",
        id_order,
        order["ordered_quantity"],
        new_quantity,
        order["payment"],
        new_payment,
    )
    return await GetOrder(db, id_order)


async def DeliverOrder(db, current_user: UserData, id_order: ObjectId, quantity: int):
    order = await GetOrder(db, id_order)
    if current_user.role == UserRole.DELIVERY_MAN:
        if (
            order.get("assigned_to") != ObjectId(current_user.id)
            or order["assignment_status"] != OrderAssignmentStatusData.ACCEPTED.value
        ):
            raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)
    elif current_user.role != UserRole.ADMIN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    if order["status"] != OrderStatusData.PENDING.value:
        raise InvalidState(ORDER_NOT_PENDING_MESSAGE)

    remaining_quantity = order["ordered_quantity"] - order["delivered_quantity"]
    if quantity <= 0 or quantity > remaining_quantity:
        raise InvalidAmount(
            f"Delivered quantity must be between 1 and {remaining_quantity}!"
        )

    now = GetCurrentDateTime()
    delivered_quantity = order["delivered_quantity"] + quantity
    update_data = {"delivered_quantity": delivered_quantity, "updated_at": now}
    if delivered_quantity == order["ordered_quantity"]:
        update_data["status"] = OrderStatusData.DELIVERED.value
        update_data["delivered_at"] = now

    result = await UpdateOneData(
        db.orders,
        {
            "_id": id_order,
            "status": OrderStatusData.PENDING.value,
            "delivered_quantity": order["delivered_quantity"],
        },
        {"$set": update_data},
    )
    if not result.modified_count:
        raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)

    logger.info(
        "order %s delivered %s unit(s), %s/%s",
        id_order,
        quantity,
        delivered_quantity,
        order["ordered_quantity"],
    )
    return await GetOrder(db, id_order)


async def ReleaseUndeliveredRemainder(db, order: dict, session=None):
    remaining_quantity = order["ordered_quantity"] - order["delivered_quantity"]
    if remaining_quantity <= 0:
        return
    await ReleaseStock(db, order["id_product"], remaining_quantity, session=session)
    if order["payment"] == OrderPaymentData.CREDIT.value:
        await ReleaseCredit(
            db,
            order["id_customer"],
            RoundAmount(order["price"] * remaining_quantity),
            session=session,
        )


async def CancelOrder(db, current_user: UserData, id_order: ObjectId):
    order = await GetOrder(db, id_order)
    await CheckOrderOwner(db, current_user, order)
    CheckOrderMutable(order)

    now = GetCurrentDateTime()
    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db.orders,
            {
                "_id": id_order,
                "status": OrderStatusData.PENDING.value,
                "id_bill": None,
                "delivered_quantity": order["delivered_quantity"],
            },
            {
                "$set": {
                    "status": OrderStatusData.CANCELLED.value,
                    "assignment_status": OrderAssignmentStatusData.CANCELLED.value,
                    "cancelled_at": now,
                    "updated_at": now,
                }
            },
            session=session,
        )
        if not result.modified_count:
            raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)
        await ReleaseUndeliveredRemainder(db, order, session=session)

    logger.info("order %s cancelled", id_order)
    return await GetOrder(db, id_order)


async def DeleteOrder(db, current_user: UserData, id_order: ObjectId):
    if current_user.role != UserRole.ADMIN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    order = await GetOrder(db, id_order)
    if order.get("id_bill"):
        raise InvalidState(ORDER_BILLED_MESSAGE)

    async with StartTransaction(db) as session:
        result = await DeleteOneData(
            db.orders,
            {
                "_id": id_order,
                "status": order["status"],
                "delivered_quantity": order["delivered_quantity"],
                "id_bill": None,
            },
            session=session,
        )
        if not result.deleted_count:
            raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)
        # cancelled orders already gave their reservation back
        if order["status"] == OrderStatusData.PENDING.value:
            await ReleaseUndeliveredRemainder(db, order, session=session)

    logger.info("order %s deleted (was %s)", id_order, order["status"])


async def AssignOrder(
    db, current_user: UserData, id_order: ObjectId, id_delivery_man: ObjectId
):
    if current_user.role != UserRole.ADMIN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)

    order = await GetOrder(db, id_order)
    if order["status"] != OrderStatusData.PENDING.value:
        raise InvalidState(ORDER_NOT_PENDING_MESSAGE)

    assignable_status = [
        OrderAssignmentStatusData.PENDING_ASSIGNMENT.value,
        OrderAssignmentStatusData.REJECTED.value,
    ]
    if order["assignment_status"] not in assignable_status:
        raise InvalidState("Order is already assigned!")

    delivery_man = await GetOneData(
        db.users, {"_id": id_delivery_man}, is_json=False
    )
    if not delivery_man:
        raise NotFound("Delivery man not found!")
    if delivery_man["role"] != UserRole.DELIVERY_MAN.value:
        raise ValidationError("Selected user is not a delivery man!")

    now = GetCurrentDateTime()
    result = await UpdateOneData(
        db.orders,
        {
            "_id": id_order,
            "status": OrderStatusData.PENDING.value,
            "assignment_status": order["assignment_status"],
        },
        {
            "$set": {
                "assigned_to": id_delivery_man,
                "assigned_at": now,
                "accepted_at": None,
                "rejection_reason": None,
                "assignment_status": OrderAssignmentStatusData.ASSIGNED.value,
                "updated_at": now,
            }
        },
    )
    if not result.modified_count:
        raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)

    logger.info("order %s assigned to %s", id_order, id_delivery_man)
    return await GetOrder(db, id_order)


def CheckAssignedDeliveryMan(current_user: UserData, order: dict):
    if current_user.role != UserRole.DELIVERY_MAN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)
    if order.get("assigned_to") != ObjectId(current_user.id):
        raise Forbidden("This order is not assigned to you!")
    if order["assignment_status"] != OrderAssignmentStatusData.ASSIGNED.value:
        raise InvalidState("Order is not waiting for your response!")


async def AcceptAssignment(db, current_user: UserData, id_order: ObjectId):
    order = await GetOrder(db, id_order)
    CheckAssignedDeliveryMan(current_user, order)

    now = GetCurrentDateTime()
    result = await UpdateOneData(
        db.orders,
        {
            "_id": id_order,
            "assigned_to": ObjectId(current_user.id),
            "assignment_status": OrderAssignmentStatusData.ASSIGNED.value,
        },
        {
            "$set": {
                "assignment_status": OrderAssignmentStatusData.ACCEPTED.value,
                "accepted_at": now,
                "updated_at": now,
            }
        },
    )
    if not result.modified_count:
        raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)

    logger.info("order %s accepted by %s", id_order, current_user.id)
    return await GetOrder(db, id_order)


async def RejectAssignment(
    db, current_user: UserData, id_order: ObjectId, reason: str = None
):
    order = await GetOrder(db, id_order)
    CheckAssignedDeliveryMan(current_user, order)

    now = GetCurrentDateTime()
    result = await UpdateOneData(
        db.orders,
        {
            "_id": id_order,
            "assigned_to": ObjectId(current_user.id),
            "assignment_status": OrderAssignmentStatusData.ASSIGNED.value,
        },
        {
            "$set": {
                "assignment_status": OrderAssignmentStatusData.REJECTED.value,
                "rejection_reason": reason or "No reason provided",
                "updated_at": now,
            }
        },
    )
    if not result.modified_count:
        raise ConcurrentUpdate(ORDER_CHANGED_MESSAGE)

    logger.info("order %s rejected by %s", id_order, current_user.id)
    return await GetOrder(db, id_order)


async def GetOrderInvoice(
    db, current_user: UserData, id_order: ObjectId, invoice_type: InvoiceTypeData
):
    """Build the invoice view of an order without touching the order.

    `delivered` bills the delivered quantity, `pending` the undelivered
    remainder, both at the unit price captured on the order.
    """
    invoice_type = InvoiceTypeData(invoice_type)
    order = await GetOrder(db, id_order)
    if current_user.role == UserRole.DELIVERY_MAN:
        if order.get("assigned_to") != ObjectId(current_user.id):
            raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)
    else:
        await CheckOrderOwner(db, current_user, order)

    if invoice_type == InvoiceTypeData.DELIVERED:
        quantity = order["delivered_quantity"]
    else:
        quantity = order["ordered_quantity"] - order["delivered_quantity"]
    if quantity <= 0:
        raise InvalidState(f"Order has no {invoice_type.value} quantity to invoice!")

    customer = await GetOneData(
        db.customers, {"_id": order["id_customer"]}, is_json=False
    )
    product = await GetOneData(db.products, {"_id": order["id_product"]}, is_json=False)

    return {
        "id_order": str(order["_id"]),
        "type": invoice_type.value,
        "customer": {
            "name": customer["name"] if customer else "-",
            "email": customer.get("email") if customer else None,
            "phone_number": customer.get("phone_number") if customer else None,
            "address": customer.get("address") if customer else None,
            "pincode": customer.get("pincode") if customer else None,
        },
        "product": product["name"] if product else order.get("product_name", "-"),
        "quantity": quantity,
        "price": order["price"],
        "amount": RoundAmount(order["price"] * quantity),
        "payment": order["payment"],
        "date": order["order_date"],
    }
