from typing import Optional
from pydantic import BaseModel, Field
from enum import Enum

# responses
CustomerProjections = {
    "name": 1,
    "email": 1,
    "phone_number": 1,
    "address": 1,
    "pincode": 1,
    "credit_limit": 1,
    "balance_credit_limit": 1,
    "billing_type": 1,
    "id_user": 1,
    "created_at": 1,
}


# schemas
class CustomerBillingTypeData(str, Enum):
    CREDITCARD = "creditcard"
    IMMEDIATE = "immediate"


class CustomerInsertData(BaseModel):
    name: str
    email: str
    phone_number: str
    address: str
    pincode: str
    credit_limit: float = Field(..., allow_inf_nan=False)
    billing_type: CustomerBillingTypeData = CustomerBillingTypeData.CREDITCARD.value


class CustomerUpdateData(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone_number: Optional[str] = None
    address: Optional[str] = None
    pincode: Optional[str] = None
    credit_limit: Optional[float] = Field(None, allow_inf_nan=False)
    billing_type: Optional[CustomerBillingTypeData] = None
