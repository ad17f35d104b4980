"""Custody transfer of collected funds from a field agent to the admin.

Both settlement records share one state machine:

    received --forward--> pending --accept--> paid_to_admin
                             \\--reject--> received

`BILL_TRANSACTION_CUSTODY` records each forward as a BillAdminRequest that the
admin decides on, `PAYMENT_TRANSACTION_CUSTODY` lets the admin decide on the
wallet transaction itself. Status changes are conditioned on the expected
current status, so a forward or decision can never be applied twice.
"""

import logging
from bson import ObjectId
from creditsales.models.settlements import (
    BillAdminRequestStatusData,
    CustodyStatusData,
)
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    CreateOneData,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.database import StartTransaction
from creditsales.modules.exceptions import (
    ConcurrentUpdate,
    Forbidden,
    InvalidState,
    NotFound,
    ValidationError,
)
from creditsales.modules.generals import GetCurrentDateTime
from creditsales.modules.response_message import FORBIDDEN_ACCESS_MESSAGE

logger = logging.getLogger(__name__)

TRANSACTION_NOT_FOUND_MESSAGE = "Transaction not found!"
TRANSACTION_CHANGED_MESSAGE = "Transaction was modified concurrently, try again!"


class CustodyChain:
    def __init__(
        self, collection: str, holder_field: str, admin_request_collection: str = None
    ):
        self.collection = collection
        self.holder_field = holder_field
        self.admin_request_collection = admin_request_collection


BILL_TRANSACTION_CUSTODY = CustodyChain(
    "bill_transactions", "id_recipient", "bill_admin_requests"
)
PAYMENT_TRANSACTION_CUSTODY = CustodyChain("payment_transactions", "id_delivery_man")


def CheckAdmin(current_user: UserData):
    if current_user.role != UserRole.ADMIN:
        raise Forbidden(FORBIDDEN_ACCESS_MESSAGE)


async def GetCustodyTransaction(db, chain: CustodyChain, id_transaction: ObjectId):
    transaction = await GetOneData(
        db[chain.collection], {"_id": id_transaction}, is_json=False
    )
    if not transaction:
        raise NotFound(TRANSACTION_NOT_FOUND_MESSAGE)
    return transaction


async def ForwardToAdmin(
    db,
    chain: CustodyChain,
    current_user: UserData,
    id_transaction: ObjectId,
    method: str = None,
):
    """Hand a `received` transaction over to the admin (`received -> pending`).

    Only the holder may forward. When `method` is given the transaction must
    have been collected with that method. Returns the admin request when the
    chain keeps one, else the updated transaction.
    """
    transaction = await GetCustodyTransaction(db, chain, id_transaction)
    id_holder = ObjectId(current_user.id)
    if transaction[chain.holder_field] != id_holder:
        raise Forbidden("Not your transaction!")
    if method and transaction["method"] != method:
        raise ValidationError(f"This is not a {method} transaction!")
    if transaction["status"] != CustodyStatusData.RECEIVED.value:
        raise InvalidState(
            f"Transaction is {transaction['status']}, only received transactions can be paid to admin!"
        )

    now = GetCurrentDateTime()
    admin_request = None
    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db[chain.collection],
            {
                "_id": id_transaction,
                chain.holder_field: id_holder,
                "status": CustodyStatusData.RECEIVED.value,
            },
            {
                "$set": {
                    "status": CustodyStatusData.PENDING.value,
                    "forwarded_at": now,
                    "updated_at": now,
                }
            },
            session=session,
        )
        if not result.modified_count:
            raise ConcurrentUpdate(TRANSACTION_CHANGED_MESSAGE)

        if chain.admin_request_collection:
            admin_request = {
                "id_transaction": id_transaction,
                "id_sender": id_holder,
                "amount": transaction["amount"],
                "method": transaction["method"],
                "cheque_details": transaction.get("cheque_details"),
                "status": BillAdminRequestStatusData.PENDING.value,
                "created_at": now,
            }
            request_result = await CreateOneData(
                db[chain.admin_request_collection], admin_request, session=session
            )
            admin_request["_id"] = request_result.inserted_id

    logger.info(
        "%s %s forwarded to admin by %s",
        chain.collection,
        id_transaction,
        id_holder,
    )
    if admin_request:
        return admin_request
    return await GetCustodyTransaction(db, chain, id_transaction)


async def DecideAdminRequest(
    db, chain: CustodyChain, current_user: UserData, id_record: ObjectId, accept: bool
):
    """Admin decision on a forwarded transaction.

    `id_record` is the admin request for chains that keep one, else the
    transaction itself. Accepting ends custody at `paid_to_admin`, rejecting
    puts the transaction back to `received` so it can be forwarded again.
    """
    CheckAdmin(current_user)

    admin_request = None
    if chain.admin_request_collection:
        admin_request = await GetOneData(
            db[chain.admin_request_collection], {"_id": id_record}, is_json=False
        )
        if not admin_request:
            raise NotFound("Admin request not found!")
        if admin_request["status"] != BillAdminRequestStatusData.PENDING.value:
            raise InvalidState(f"Admin request is already {admin_request['status']}!")
        id_transaction = admin_request["id_transaction"]
    else:
        id_transaction = id_record

    transaction = await GetCustodyTransaction(db, chain, id_transaction)
    if transaction["status"] != CustodyStatusData.PENDING.value:
        raise InvalidState(
            f"Transaction is {transaction['status']}, only pending transactions can be decided!"
        )

    now = GetCurrentDateTime()
    if accept:
        request_status = BillAdminRequestStatusData.ACCEPTED.value
        transaction_status = CustodyStatusData.PAID_TO_ADMIN.value
    else:
        request_status = BillAdminRequestStatusData.REJECTED.value
        transaction_status = CustodyStatusData.RECEIVED.value

    async with StartTransaction(db) as session:
        if admin_request:
            result = await UpdateOneData(
                db[chain.admin_request_collection],
                {
                    "_id": admin_request["_id"],
                    "status": BillAdminRequestStatusData.PENDING.value,
                },
                {
                    "$set": {
                        "status": request_status,
                        "decided_by": ObjectId(current_user.id),
                        "decided_at": now,
                    }
                },
                session=session,
            )
            if not result.modified_count:
                raise ConcurrentUpdate("Admin request was decided concurrently!")

        result = await UpdateOneData(
            db[chain.collection],
            {"_id": id_transaction, "status": CustodyStatusData.PENDING.value},
            {"$set": {"status": transaction_status, "updated_at": now}},
            session=session,
        )
        if not result.modified_count:
            raise ConcurrentUpdate(TRANSACTION_CHANGED_MESSAGE)

    logger.info(
        "%s %s %s by admin %s",
        chain.collection,
        id_transaction,
        "accepted" if accept else "rejected",
        current_user.id,
    )
    return await GetCustodyTransaction(db, chain, id_transaction)


async def MarkReceivedByAdmin(
    db, chain: CustodyChain, current_user: UserData, id_transaction: ObjectId
):
    """Close custody of a transaction regardless of its forward state."""
    CheckAdmin(current_user)

    transaction = await GetCustodyTransaction(db, chain, id_transaction)
    if transaction["status"] == CustodyStatusData.PAID_TO_ADMIN.value:
        raise InvalidState("Transaction is already received by admin!")

    result = await UpdateOneData(
        db[chain.collection],
        {"_id": id_transaction, "status": transaction["status"]},
        {
            "$set": {
                "status": CustodyStatusData.PAID_TO_ADMIN.value,
                "updated_at": GetCurrentDateTime(),
            }
        },
    )
    if not result.modified_count:
        raise ConcurrentUpdate(TRANSACTION_CHANGED_MESSAGE)

    logger.info(
        "%s %s marked received by admin %s",
        chain.collection,
        id_transaction,
        current_user.id,
    )
    return await GetCustodyTransaction(db, chain, id_transaction)
