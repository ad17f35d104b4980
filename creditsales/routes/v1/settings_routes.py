from bson import ObjectId
from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from creditsales.models.settings import CompanySettingsData
from creditsales.models.users import UserData, UserRole
from creditsales.modules.crud_operations import GetOneData, UpdateOneData
from creditsales.modules.database import AsyncIOMotorClient, GetCreditSalesDatabase
from creditsales.modules.generals import GetCurrentDateTime
from creditsales.modules.response_message import DATA_HAS_UPDATED_MESSAGE
from creditsales.routes.v1.auth_routes import CheckRole, GetCurrentUser

router = APIRouter(prefix="/settings", tags=["Settings"])


@router.get("/company")
async def get_company_settings(
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    settings_data = await GetOneData(db.company_settings, {}, {"_id": 0})
    return JSONResponse(content={"settings_data": settings_data or {}})


@router.put("/company")
async def update_company_settings(
    data: CompanySettingsData = Body(..., embed=True),
    current_user: UserData = Depends(GetCurrentUser),
    db: AsyncIOMotorClient = Depends(GetCreditSalesDatabase),
):
    CheckRole(current_user, [UserRole.ADMIN])
    payload = data.dict(exclude_unset=True)
    payload["updated_by"] = ObjectId(current_user.id)
    payload["updated_at"] = GetCurrentDateTime()
    # single settings document
    await UpdateOneData(db.company_settings, {}, {"$set": payload}, upsert=True)

    return JSONResponse(content={"message": DATA_HAS_UPDATED_MESSAGE})
