import logging
from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from creditsales.models.customer_requests import (
    CustomerRequestInsertData,
    CustomerRequestRejectData,
    CustomerRequestStatusData,
)
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    CreateOneData,
    GetListData,
    GetOneData,
    JsonFormatter,
    UpdateOneData,
)
from creditsales.modules.customers import CreateCustomerWithUser
from creditsales.modules.database import (
    AsyncIOMotorClient,
    GetCreditSalesDatabase,
    StartTransaction,
)
from creditsales.modules.exceptions import ConcurrentUpdate, InvalidState, NotFound
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID
from creditsales.modules.response_message import (
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/customer-requests", tags=["Customer Requests"])


async def GetPendingCustomerRequest(db, id_request: ObjectId):
    customer_request = await GetOneData(
        db.customer_requests, {"_id": id_request}, is_json=False
    )
    if not customer_request:
        raise NotFound("Customer request not found!")
    if customer_request["status"] != CustomerRequestStatusData.PENDING.value:
        raise InvalidState(f"Customer request is already {customer_request['status']}!")
    return customer_request


@router.post("/add")
async def create_customer_request(
    data: CustomerRequestInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.SALES_MAN])
    payload = data.dict()
    payload["id_salesman"] = ObjectId(current_user.id)
    payload["status"] = CustomerRequestStatusData.PENDING.value
    payload["rejection_reason"] = None
    payload["created_at"] = GetCurrentDateTime()
    result = await CreateOneData(db.customer_requests, payload)

    return JSONResponse(
        content={"message": DATA_HAS_INSERTED_MESSAGE, "id": str(result.inserted_id)}
    )


@router.get("/my")
async def get_my_customer_requests(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.SALES_MAN])
    request_data = await GetListData(
        db.customer_requests,
        {"id_salesman": ObjectId(current_user.id)},
        sort_by="created_at",
    )
    return JSONResponse(content={"request_data": request_data})


@router.get("/pending")
async def get_pending_customer_requests(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    request_data = await GetListData(
        db.customer_requests,
        {"status": CustomerRequestStatusData.PENDING.value},
        sort_by="created_at",
    )
    return JSONResponse(content={"request_data": request_data})


@router.put("/accept/{id}")
async def accept_customer_request(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    id_request = ParseObjectID(id)
    customer_request = await GetPendingCustomerRequest(db, id_request)

    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db.customer_requests,
            {"_id": id_request, "status": CustomerRequestStatusData.PENDING.value},
            {
                "$set": {
                    "status": CustomerRequestStatusData.ACCEPTED.value,
                    "updated_at": GetCurrentDateTime(),
                }
            },
            session=session,
        )
        if not result.modified_count:
            raise ConcurrentUpdate("Customer request was decided concurrently!")
        customer_data, temporary_password = await CreateCustomerWithUser(
            db, customer_request, session=session
        )

    logger.info("customer request %s accepted", id_request)
    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "customer_data": JsonFormatter(customer_data),
            "temporary_password": temporary_password,
        }
    )


@router.put("/reject/{id}")
async def reject_customer_request(
    id: str,
    data: CustomerRequestRejectData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    id_request = ParseObjectID(id)
    await GetPendingCustomerRequest(db, id_request)

    result = await UpdateOneData(
        db.customer_requests,
        {"_id": id_request, "status": CustomerRequestStatusData.PENDING.value},
        {
            "$set": {
                "status": CustomerRequestStatusData.REJECTED.value,
                "rejection_reason": data.rejection_reason,
                "updated_at": GetCurrentDateTime(),
            }
        },
    )
    if not result.modified_count:
        raise ConcurrentUpdate("Customer request was decided concurrently!")

    logger.info("customer request %s rejected", id_request)
    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})
