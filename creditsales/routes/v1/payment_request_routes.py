from typing import Optional
from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from creditsales.models.generals import RejectReasonData
from creditsales.models.payment_requests import (
    PaymentRequestInsertData,
    PaymentRequestStatusData,
)
from creditsales.models.users import FIELD_AGENT_ROLES, UserData, UserRole
from creditsales.modules.crud_operations import GetListData, JsonFormatter
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import ParseObjectID
from creditsales.modules.payment_requests import (
    AcceptPaymentRequest,
    CreatePaymentRequest,
    RejectPaymentRequest,
)
from creditsales.modules.response_message import (
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/payment-requests", tags=["Payment Requests"])


@router.post("/add")
async def create_payment_request(
    data: PaymentRequestInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    payload["method"] = data.method.value
    request_data = await CreatePaymentRequest(db, current_user, payload)

    return JSONResponse(
        content={
            "message": DATA_HAS_INSERTED_MESSAGE,
            "request_data": JsonFormatter(request_data),
        }
    )


@router.get("/my")
async def get_my_payment_requests(
    status: PaymentRequestStatusData = None,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.CUSTOMER] + FIELD_AGENT_ROLES)
    if current_user.role == UserRole.CUSTOMER:
        customer = await GetCustomerOfUser(db, current_user.id)
        query = {"id_customer": customer["_id"]}
    else:
        query = {"id_recipient": ObjectId(current_user.id)}
    if status:
        query["status"] = status.value

    request_data = await GetListData(db.payment_requests, query, sort_by="created_at")
    return JSONResponse(content={"request_data": request_data})


@router.put("/accept/{id}")
async def accept_payment_request(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    transaction_data = await AcceptPaymentRequest(db, current_user, ParseObjectID(id))

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "transaction_data": JsonFormatter(transaction_data),
        }
    )


@router.put("/reject/{id}")
async def reject_payment_request(
    id: str,
    data: Optional[RejectReasonData] = Body(None, embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    request_data = await RejectPaymentRequest(
        db, current_user, ParseObjectID(id), data.reason if data else None
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "request_data": JsonFormatter(request_data),
        }
    )
