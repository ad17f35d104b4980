from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from creditsales.models.bills import (
    BillGenerateData,
    BillPayData,
    BillProjections,
    BillStatusData,
)
from creditsales.models.generals import Pagination
from creditsales.models.users import UserData, UserRole
from creditsales.modules.billing import (
    GenerateBill,
    GetBillForActor,
    MarkOverdueBills,
    PayBill,
)
from creditsales.modules.crud_operations import GetListData, GetManyData, JsonFormatter
from creditsales.modules.customers import GetCustomerOfUser
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import ParseObjectID
from creditsales.modules.response_message import (
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/bills", tags=["Bills"])


@router.get("")
async def get_bills(
    status: BillStatusData = None,
    id_customer: str = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    await MarkOverdueBills(db)

    query = {}
    if status:
        query["status"] = status.value
    if id_customer:
        query["id_customer"] = ParseObjectID(id_customer)

    pipeline = [
        {"$match": query},
        {"$sort": {"created_at": -1}},
        {
            "$lookup": {
                "from": "customers",
                "let": {"idCustomer": "$id_customer"},
                "pipeline": [
                    {"$match": {"$expr": {"$eq": ["$_id", "$$idCustomer"]}}},
                    {"$project": {"name": 1, "email": 1, "balance_credit_limit": 1}},
                ],
                "as": "customer",
            }
        },
        {
            "$addFields": {
                "customer": {"$ifNull": [{"$arrayElemAt": ["$customer", 0]}, None]}
            }
        },
    ]
    bill_data, count = await GetManyData(
        db.bills, pipeline, BillProjections, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"bill_data": bill_data, "pagination_info": pagination_info}
    )


@router.get("/my")
async def get_my_bills(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.CUSTOMER])
    customer = await GetCustomerOfUser(db, current_user.id)
    await MarkOverdueBills(db, {"id_customer": customer["_id"]})

    bill_data = await GetListData(
        db.bills, {"id_customer": customer["_id"]}, BillProjections, sort_by="created_at"
    )
    return JSONResponse(content={"bill_data": bill_data})


@router.get("/detail/{id}")
async def get_bill_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    bill_data = await GetBillForActor(db, current_user, ParseObjectID(id))
    return JSONResponse(content={"bill_data": JsonFormatter(bill_data)})


@router.post("/generate")
async def generate_bill(
    data: BillGenerateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    bill_data = await GenerateBill(
        db, ParseObjectID(data.id_customer), data.cycle_start, data.cycle_end
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_INSERTED_MESSAGE,
            "bill_data": JsonFormatter(bill_data),
        }
    )


@router.put("/pay/{id}")
async def pay_bill(
    id: str,
    data: BillPayData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    actual_payment, bill_data = await PayBill(
        db, ParseObjectID(id), data.amount, data.method.value
    )

    return JSONResponse(
        content={
            "message": DATA_HAS_UPDATED_MESSAGE,
            "paid_amount": actual_payment,
            "bill_data": JsonFormatter(bill_data),
        }
    )
