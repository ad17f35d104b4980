from fastapi import APIRouter, Body, Depends, HTTPException
from fastapi.responses import JSONResponse
from creditsales.models.roles import RoleInsertData, RoleProjections, RoleUpdateData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import (
    CreateOneData,
    DeleteOneData,
    GetListData,
    GetOneData,
    UpdateOneData,
)
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import GetCurrentDateTime, ParseObjectID
from creditsales.modules.permissions import ExpandPermissions
from creditsales.modules.response_message import (
    DATA_HAS_DELETED_MESSAGE,
    DATA_HAS_INSERTED_MESSAGE,
    DATA_HAS_UPDATED_MESSAGE,
    EXIST_DATA_MESSAGE,
    NOT_FOUND_MESSAGE,
)
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/roles", tags=["Roles"])


@router.get("")
async def get_roles(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    role_data = await GetListData(
        db.roles, {}, RoleProjections, sort_by="name", sort_direction=1
    )
    return JSONResponse(content={"role_data": role_data})


@router.get("/permissions")
async def get_my_permissions(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    role_data = await GetOneData(db.roles, {"name": current_user.role})
    stored_permissions = role_data.get("permissions", []) if role_data else []
    permissions = ExpandPermissions(current_user.role, stored_permissions)
    return JSONResponse(content={"permissions": sorted(permissions)})


@router.get("/detail/{id}")
async def get_role_detail(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    role_data = await GetOneData(db.roles, {"_id": ParseObjectID(id)}, RoleProjections)
    if not role_data:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"role_data": role_data})


@router.post("/add")
async def create_role(
    data: RoleInsertData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict(exclude_unset=True)
    exist_role = await GetOneData(db.roles, {"name": payload["name"]})
    if exist_role:
        raise HTTPException(status_code=400, detail={"message": EXIST_DATA_MESSAGE})

    payload["permissions"] = data.permissions
    payload["created_at"] = GetCurrentDateTime()
    result = await CreateOneData(db.roles, payload)

    return JSONResponse(
        content={"message": DATA_HAS_INSERTED_MESSAGE, "id": str(result.inserted_id)}
    )


@router.put("/update/{id}")
async def update_role_permissions(
    id: str,
    data: RoleUpdateData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    result = await UpdateOneData(
        db.roles,
        {"_id": ParseObjectID(id)},
        {
            "$set": {
                "permissions": data.permissions,
                "updated_at": GetCurrentDateTime(),
            }
        },
    )
    if not result.matched_count:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})


@router.delete("/delete/{id}")
async def delete_role(
    id: str,
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    result = await DeleteOneData(db.roles, {"_id": ParseObjectID(id)})
    if not result.deleted_count:
        raise HTTPException(status_code=404, detail={"message": NOT_FOUND_MESSAGE})

    return JSONResponse(content={"message": DATA_HAS_DELETED_MESSAGE})
