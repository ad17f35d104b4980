from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, model_validator
from creditsales.models.generals import ChequeDetailsData, PaymentMethodData


# schemas
class CustodyStatusData(str, Enum):
    RECEIVED = "received"
    PENDING = "pending"
    PAID_TO_ADMIN = "paid_to_admin"
    REJECTED = "rejected"


class BillAdminRequestStatusData(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class WalletCollectData(BaseModel):
    id_order: str
    amount: float = Field(..., allow_inf_nan=False)
    method: PaymentMethodData
    cheque_details: Optional[ChequeDetailsData] = None

    @model_validator(mode="after")
    def check_cheque_details(self):
        if self.method == PaymentMethodData.CHEQUE and self.cheque_details is None:
            raise ValueError("cheque_details is required for cheque payments")
        return self


class WalletTransactionData(BaseModel):
    id_transaction: str
