from typing import Optional
from pydantic import BaseModel, Field

# responses
ProductProjections = {
    "name": 1,
    "category": 1,
    "price": 1,
    "quantity": 1,
    "created_at": 1,
    "updated_at": 1,
}


# schemas
class ProductInsertData(BaseModel):
    name: str
    category: Optional[str] = None
    price: float = Field(..., ge=0, allow_inf_nan=False)
    quantity: int = Field(0, ge=0)


class ProductUpdateData(BaseModel):
    name: Optional[str] = None
    category: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, allow_inf_nan=False)
    quantity: Optional[int] = Field(None, ge=0)
