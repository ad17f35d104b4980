from bson import ObjectId
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from creditsales.models.generals import Pagination
from creditsales.models.settlements import (
    BillAdminRequestStatusData,
    CustodyStatusData,
)
from creditsales.models.users import FIELD_AGENT_ROLES, UserData, UserRole
from creditsales.modules.crud_operations import GetListData, GetManyData, JsonFormatter
from creditsales.modules.custody import (
    BILL_TRANSACTION_CUSTODY,
    DecideAdminRequest,
    ForwardToAdmin,
)
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import ParseObjectID
from creditsales.modules.response_message import DATA_HAS_UPDATED_MESSAGE
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/bill-transactions", tags=["Bill Transactions"])


@router.get("/my")
async def get_my_bill_transactions(
    status: CustodyStatusData = None,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, FIELD_AGENT_ROLES)
    query = {"id_recipient": ObjectId(current_user.id)}
    if status:
        query["status"] = status.value

    transaction_data = await GetListData(
        db.bill_transactions, query, sort_by="created_at"
    )
    total_amount = sum(
        item["amount"]
        for item in transaction_data
        if item["status"]
        in [CustodyStatusData.RECEIVED.value, CustodyStatusData.PENDING.value]
    )
    return JSONResponse(
        content={"transaction_data": transaction_data, "total_amount": total_amount}
    )


@router.put("/pay-to-admin/{id}")
async def pay_bill_transaction_to_admin(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    admin_request_data = await ForwardToAdmin(
        db, BILL_TRANSACTION_CUSTODY, current_user, ParseObjectID(id)
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "admin_request_data": JsonFormatter(admin_request_data),
        }
    )


@router.get("/admin/pending")
async def get_pending_admin_requests(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    admin_request_data = await GetListData(
        db.bill_admin_requests,
        {"status": BillAdminRequestStatusData.PENDING.value},
        sort_by="created_at",
    )
    return JSONResponse(content={"admin_request_data": admin_request_data})


@router.get("/admin/all")
async def get_all_bill_transactions(
    status: CustodyStatusData = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    query = {}
    if status:
        query["status"] = status.value

    # latest decided admin request of each transaction
    pipeline = [
        {"$match": query},
        {"$sort": {"created_at": -1}},
        {
            "$lookup": {
                "from": "bill_admin_requests",
                "let": {"idTransaction": "$_id"},
                "pipeline": [
                    {
                        "$match": {
                            "$expr": {"$eq": ["$id_transaction", "$$idTransaction"]},
                            "status": {
                                "$in": [
                                    BillAdminRequestStatusData.ACCEPTED.value,
                                    BillAdminRequestStatusData.REJECTED.value,
                                ]
                            },
                        }
                    },
                    {"$sort": {"decided_at": -1}},
                    {"$limit": 1},
                ],
                "as": "admin_request",
            }
        },
        {
            "$addFields": {
                "admin_request": {
                    "$ifNull": [{"$arrayElemAt": ["$admin_request", 0]}, None]
                }
            }
        },
    ]
    transaction_data, count = await GetManyData(
        db.bill_transactions, pipeline, {}, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={
            "transaction_data": transaction_data,
            "pagination_info": pagination_info,
        }
    )


@router.put("/admin/accept/{id}")
async def accept_admin_request(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await DecideAdminRequest(
        db, BILL_TRANSACTION_CUSTODY, current_user, ParseObjectID(id), accept=True
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.put("/admin/reject/{id}")
async def reject_admin_request(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await DecideAdminRequest(
        db, BILL_TRANSACTION_CUSTODY, current_user, ParseObjectID(id), accept=False
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )
