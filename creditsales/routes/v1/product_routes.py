from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from creditsales.models.generals import Pagination
from creditsales.models.orders import OrderStatusData
from creditsales.models.products import (
    ProductInsertData,
    ProductProjections,
    ProductUpdateData,
)
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    CreateOneData,
    DeleteOneData,
    GetManyData,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.exceptions import InvalidState
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID
from creditsales.modules.response_message import (
    DATA_HAS_DELETED_MESSAGE,
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
    NOT_FOUND_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/products", tags=["Products"])


@router.get("")
async def get_products(
    key: str = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    query = {}
    if key:
        query["name"] = {"$regex": key, "$options": "i"}

    pipeline = [{"$match": query}, {"$sort": {"name": 1}}]
    product_data, count = await GetManyData(
        db.products, pipeline, ProductProjections, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"product_data": product_data, "pagination_info": pagination_info}
    )


@router.get("/detail/{id}")
async def get_product_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    product_data = await GetOneData(
        db.products, {"_id": ParseObjectID(id)}, ProductProjections
    )
    if not product_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"product_data": product_data})


@router.post("/add")
async def create_product(
    data: ProductInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict()
    payload["created_at"] = GetCurrentDateTime()
    result = await CreateOneData(db.products, payload)

    return JSONResponse(
        content={"message": DATA_HAS_INSERTED_MESSAGE, "id": str(result.inserted_id)}
    )


@router.put("/update/{id}")
async def update_product(
    id: str,
    data: ProductUpdateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict(exclude_unset=True)
    payload["updated_at"] = GetCurrentDateTime()
    # existing orders keep the price they were placed with
    result = await UpdateOneData(
        db.products, {"_id": ParseObjectID(id)}, {"$set": payload}
    )
    if not result.matched_count:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})


@router.delete("/delete/{id}")
async def delete_product(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    id_product = ParseObjectID(id)
    # pending orders release their stock back to this product
    pending_order = await GetOneData(
        db.orders,
        {"id_product": id_product, "status": OrderStatusData.PENDING.value},
        is_json=False,
    )
    if pending_order:
        raise InvalidState("Product still has pending orders!")

    result = await DeleteOneData(db.products, {"_id": id_product})
    if not result.deleted_count:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"message": DATA_HAS_DELETED_MESSAGE})
