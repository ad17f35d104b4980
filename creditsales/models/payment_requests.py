from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from creditsales.models.generals import ChequeDetailsData, PaymentMethodData


# schemas
class PaymentRequestStatusData(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class RecipientTypeData(str, Enum):
    DELIVERY = "delivery"
    SALES = "sales"


class PaymentRequestInsertData(BaseModel):
    id_bill: str
    amount: float = Field(..., allow_inf_nan=False)
    method: PaymentMethodData
    cheque_details: Optional[ChequeDetailsData] = None
    recipient_type: RecipientTypeData
    id_recipient: str

    @model_validator(mode="after")
    def check_cheque_details(self):
        if self.method == PaymentMethodData.CHEQUE and self.cheque_details is None:
            raise ValueError("cheque_details is required for cheque payments")
        return self
