from enum import Enum
from typing import Optional
from pydantic import BaseModel
from creditsales.models.customers import CustomerInsertData


# schemas
class CustomerRequestStatusData(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class CustomerRequestInsertData(CustomerInsertData):
    pass


class CustomerRequestRejectData(BaseModel):
    rejection_reason: Optional[str] = None
