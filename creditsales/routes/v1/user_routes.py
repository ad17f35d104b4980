from fastapi import APIRouter, Depends, Body, HTTPException
from fastapi.responses import JSONResponse
from creditsales.modules.crud_operations import (
    DeleteOneData,
    GetManyData,
    GetOneData,
    UpdateOneData,
    CreateOneData,
)
from creditsales.models.generals import Pagination
from creditsales.models.users import (
    FIELD_AGENT_ROLES,
    UserChangePasswordData,
    UserData,
    UserEditProfileData,
    UserInsertData,
    UserRole,
    UserUpdateData,
)
from creditsales.models.users import UserProjections
from creditsales.modules.database import (
    AsyncIOMotorClient,
    GetCreditSalesDatabase,
    StartTransaction,
)
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID
from creditsales.modules.response_message import (
    DATA_HAS_DELETED_MESSAGE,
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
    EXIST_DATA_MESSAGE,
    SYSTEM_ERROR_MESSAGE,
    NOT_FOUND_MESSAGE,
)
from creditsales.routes.v1.auth_routes import (
    CheckRole,
    GetCurrentUser,
    VerifyPassword,
    pwd_context,
)

router = APIRouter(prefix="/user", tags=["Users"])


@router.get("")
async def get_users(
    key: str = None,
    role: UserRole = None,
    page: int = 1,
    items: int = 10,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])

    query = {}
    if key:
        query = {
            "$or": [
                {"name": {"$regex": key, "$options": "i"}},
                {"email": {"$regex": key, "$options": "i"}},
                {"phone_number": {"$regex": key, "$options": "i"}},
            ]
        }
    if role:
        query["role"] = role.value

    pipeline = [
        {"$match": query},
        {"$sort": {"role": 1, "name": 1}},
    ]

    user_data, count = await GetManyData(
        db.users, pipeline, UserProjections, {"page": page, "items": items}
    )
    pagination_info: Pagination = {"page": page, "items": items, "count": count}

    return JSONResponse(
        content={"user_data": user_data, "pagination_info": pagination_info}
    )


@router.get("/field-agents")
async def get_field_agents(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    pipeline = [
        {"$match": {"role": {"$in": FIELD_AGENT_ROLES}}},
        {"$sort": {"name": 1}},
    ]
    user_data, _ = await GetManyData(
        db.users, pipeline, {"name": 1, "role": 1, "phone_number": 1}
    )
    return JSONResponse(content={"user_data": user_data})


@router.get("/detail/{id}")
async def get_user_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    user_data = await GetOneData(db.users, {"_id": ParseObjectID(id)}, UserProjections)
    if not user_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(
        content={"user_data": user_data},
    )


@router.post("/add")
async def create_user(
    data: UserInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    if data.role == UserRole.CUSTOMER:
        raise HTTPException(
            status_code=400,
            detail={"message": "Customers are created from the customer menu!"},
        )

    payload = data.dict(exclude_unset=True)
    exist_user_data = await GetOneData(db.users, {"email": payload["email"]})
    if exist_user_data:
        raise HTTPException(status_code=400, detail={"message": EXIST_DATA_MESSAGE})

    payload["role"] = data.role.value
    payload["status"] = int(data.status)
    payload["created_at"] = GetCurrentDateTime()
    payload["password"] = pwd_context.hash(payload["password"])
    result = await CreateOneData(db.users, payload)
    if not result.inserted_id:
        raise HTTPException(status_code=500, detail={"message": SYSTEM_ERROR_MESSAGE})

    return JSONResponse(
        content={"message": DATA_HAS_INSERTED_MESSAGE, "id": str(result.inserted_id)}
    )


@router.put("/update/{id}")
async def update_user(
    id: str,
    data: UserUpdateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    id_user = ParseObjectID(id)
    exist_user_data = await GetOneData(db.users, {"_id": id_user})
    if not exist_user_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})
    if (
        exist_user_data["role"] == UserRole.CUSTOMER.value
        or data.role == UserRole.CUSTOMER
    ):
        raise HTTPException(
            status_code=400,
            detail={"message": "Customers are updated from the customer menu!"},
        )

    payload = data.dict(exclude_unset=True)
    exist_email_data = await GetOneData(
        db.users, {"email": payload["email"], "_id": {"$ne": id_user}}
    )
    if exist_email_data:
        raise HTTPException(status_code=400, detail={"message": EXIST_DATA_MESSAGE})

    payload["role"] = data.role.value
    payload["status"] = int(data.status)
    payload["updated_at"] = GetCurrentDateTime()
    await UpdateOneData(db.users, {"_id": id_user}, {"$set": payload})

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})


@router.put("/edit-profile")
async def edit_profile(
    data: UserEditProfileData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    id_user = ParseObjectID(current_user.id)
    payload = data.dict(exclude_unset=True)
    exist_email_data = await GetOneData(
        db.users, {"email": payload["email"], "_id": {"$ne": id_user}}
    )
    if exist_email_data:
        raise HTTPException(status_code=400, detail={"message": EXIST_DATA_MESSAGE})

    async with StartTransaction(db) as session:
        result = await UpdateOneData(
            db.users,
            {"_id": id_user},
            {"$set": {**payload, "updated_at": GetCurrentDateTime()}},
            session=session,
        )
        if not result.matched_count:
            raise HTTPException(
                status_code=404, detail={"message": NOT_FOUND_MESSAGE}
            )
        # a customer's account mirrors its login profile
        if current_user.role == UserRole.CUSTOMER:
            await UpdateOneData(
                db.customers, {"id_user": id_user}, {"$set": payload}, session=session
            )

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})


@router.delete("/delete/{id}")
async def delete_user(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    id_user = ParseObjectID(id)
    exist_user = await GetOneData(db.users, {"_id": id_user})
    if not exist_user:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})
    if exist_user["role"] == UserRole.CUSTOMER.value:
        raise HTTPException(
            status_code=400,
            detail={"message": "Customers are deleted from the customer menu!"},
        )

    result = await DeleteOneData(db.users, {"_id": id_user})
    if not result.deleted_count:
        raise HTTPException(status_code=500, detail={"message": SYSTEM_ERROR_MESSAGE})

    return JSONResponse(content={"message": DATA_HAS_DELETED_MESSAGE})


@router.put("/change-password")
async def change_password(
    data: UserChangePasswordData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    payload = data.dict(exclude_unset=True)
    if not payload["new_password"] == payload["confirm_new_password"]:
        raise HTTPException(
            status_code=400, detail={"message": "Password confirmation does not match!"}
        )

    id_user = ParseObjectID(current_user.id)
    user_data = await GetOneData(db.users, {"_id": id_user}, {"password": 1})
    if not user_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    is_password_verified = await VerifyPassword(
        payload["old_password"], user_data["password"]
    )
    if not is_password_verified:
        raise HTTPException(
            status_code=400, detail={"message": "Old password is incorrect!"}
        )

    await UpdateOneData(
        db.users,
        {"_id": id_user},
        {
            "$set": {
                "password": pwd_context.hash(payload["new_password"]),
                "updated_at": GetCurrentDateTime(),
            }
        },
    )
    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})
