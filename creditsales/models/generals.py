from enum import Enum
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


# schemas
class Pagination(BaseModel):
    page: int = 1
    item: int = 10
    count: int


class PaymentMethodData(str, Enum):
    CASH = "cash"
    CHEQUE = "cheque"


class ChequeDetailsData(BaseModel):
    number: str
    bank: str
    date: Optional[datetime] = None


class RejectReasonData(BaseModel):
    reason: Optional[str] = None
