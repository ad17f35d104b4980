from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

# responses
UserProjections = {
    "_id": 1,
    "name": 1,
    "email": 1,
    "phone_number": 1,
    "status": 1,
    "role": 1,
    "created_at": 1,
}


# schemas
class UserStatusData(int, Enum):
    ACTIVE = 1
    NONACTIVE = 0


class UserRole(str, Enum):
    ADMIN = "Admin"
    CUSTOMER = "Customer"
    DELIVERY_MAN = "Delivery Man"
    SALES_MAN = "Sales Man"


FIELD_AGENT_ROLES = [UserRole.DELIVERY_MAN.value, UserRole.SALES_MAN.value]


class UserData(BaseModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    phone_number: Optional[str] = None
    status: Optional[int] = None
    role: str

    class Config:
        populate_by_name = True


class UserInsertData(BaseModel):
    name: str
    email: str
    password: str
    phone_number: Optional[str] = None
    status: UserStatusData = UserStatusData.ACTIVE.value
    role: UserRole


class UserChangePasswordData(BaseModel):
    old_password: str
    new_password: str
    confirm_new_password: str


class UserUpdateData(BaseModel):
    name: str
    email: str
    phone_number: Optional[str] = None
    status: UserStatusData = UserStatusData.ACTIVE.value
    role: UserRole


class UserEditProfileData(BaseModel):
    name: str
    email: str
    phone_number: Optional[str] = None
