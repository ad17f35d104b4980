from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from creditsales.models.customers import (
    CustomerInsertData,
    CustomerProjections,
    CustomerUpdateData,
)
from creditsales.models.generals import Pagination
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    GetManyData,
    GetOneData,
    JsonFormatter,
)
from creditsales.modules.customers import (
    CreateCustomerWithUser,
    DeleteCustomer,
    GetCustomerOfUser,
    UpdateCustomer,
)
from creditsales.modules.database import (
    AsyncIOMotorClient,
    GetCreditSalesDatabase,
    StartTransaction,
)
from creditsales.modules.generals import ParseObjectID
from creditsales.modules.response_message import (
    DATA_HAS_DELETED_MESSAGE,
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
    NOT_FOUND_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/customers", tags=["Customers"])


@router.get("")
async def get_customers(
    key: str = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN, UserRole.SALES_MAN])

    query = {}
    if key:
        query["$or"] = [
            {"name": {"$regex": key, "$options": "i"}},
            {"email": {"$regex": key, "$options": "i"}},
            {"phone_number": {"$regex": key, "$options": "i"}},
        ]

    pipeline = [{"$match": query}, {"$sort": {"created_at": -1}}]
    customer_data, count = await GetManyData(
        db.customers, pipeline, CustomerProjections, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"customer_data": customer_data, "pagination_info": pagination_info}
    )


@router.get("/me")
async def get_my_customer_profile(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.CUSTOMER])
    customer_data = await GetCustomerOfUser(db, current_user.id)
    return JSONResponse(content={"customer_data": JsonFormatter(customer_data)})


@router.get("/detail/{id}")
async def get_customer_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN, UserRole.SALES_MAN])
    customer_data = await GetOneData(
        db.customers, {"_id": ParseObjectID(id)}, CustomerProjections
    )
    if not customer_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"customer_data": customer_data})


@router.post("/add")
async def create_customer(
    data: CustomerInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict()
    async with StartTransaction(db) as session:
        customer_data, temporary_password = await CreateCustomerWithUser(
            db, payload, session=session
        )

    return JSONResponse(
        content={
            "message": DATA_HAS_INSERTED_MESSAGE,
            "customer_data": JsonFormatter(customer_data),
            "temporary_password": temporary_password,
        }
    )


@router.put("/update/{id}")
async def update_customer(
    id: str,
    data: CustomerUpdateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict(exclude_unset=True)
    await UpdateCustomer(db, ParseObjectID(id), payload)

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})


@router.delete("/delete/{id}")
async def delete_customer(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    await DeleteCustomer(db, ParseObjectID(id))

    return JSONResponse(content={"message": DATA_HAS_DELETED_MESSAGE})
