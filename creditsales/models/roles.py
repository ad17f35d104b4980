from typing import List
from pydantic import BaseModel

# responses
RoleProjections = {"name": 1, "permissions": 1, "created_at": 1}


# schemas
class RoleInsertData(BaseModel):
    name: str
    permissions: List[str] = []


class RoleUpdateData(BaseModel):
    permissions: List[str]
