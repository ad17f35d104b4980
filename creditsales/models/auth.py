from typing import Optional
from pydantic import BaseModel
from creditsales.models.users import UserData


# schemas
class LoginData(BaseModel):
    email: str
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str
    user_data: UserData
    customer_data: Optional[dict] = None
