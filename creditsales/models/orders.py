from enum import Enum
from typing import Optional
from pydantic import BaseModel


# schemas
class OrderStatusData(str, Enum):
    PENDING = "pending"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderAssignmentStatusData(str, Enum):
    PENDING_ASSIGNMENT = "pending_assignment"
    ASSIGNED = "assigned"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class OrderPaymentData(str, Enum):
    CREDIT = "credit"
    CASH = "cash"


class InvoiceTypeData(str, Enum):
    DELIVERED = "delivered"
    PENDING = "pending"


class OrderInsertData(BaseModel):
    id_customer: Optional[str] = None
    id_product: str
    ordered_quantity: int
    payment: OrderPaymentData
    remarks: Optional[str] = ""


class OrderUpdateData(BaseModel):
    ordered_quantity: Optional[int] = None
    payment: Optional[OrderPaymentData] = None


class OrderDeliverData(BaseModel):
    quantity: int


class OrderAssignData(BaseModel):
    id_delivery_man: str
