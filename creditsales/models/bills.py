from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field
from creditsales.models.generals import PaymentMethodData

# responses
BillProjections = {
    "id_customer": 1,
    "cycle_start": 1,
    "cycle_end": 1,
    "orders": 1,
    "total_used": 1,
    "amount_due": 1,
    "paid_amount": 1,
    "due_date": 1,
    "status": 1,
    "customer": 1,
    "created_at": 1,
    "updated_at": 1,
}


# schemas
class BillStatusData(str, Enum):
    PENDING = "pending"
    PENDING_PAYMENT = "pending_payment"
    PARTIAL = "partial"
    PAID = "paid"
    OVERDUE = "overdue"


class BillGenerateData(BaseModel):
    id_customer: str
    cycle_start: datetime
    cycle_end: datetime


class BillPayData(BaseModel):
    amount: float = Field(..., allow_inf_nan=False)
    method: PaymentMethodData = PaymentMethodData.CASH.value
    description: Optional[str] = None
