from typing import Optional
from pydantic import BaseModel


# schemas
class CompanySettingsData(BaseModel):
    company_name: Optional[str] = None
    company_address: Optional[str] = None
    company_phone: Optional[str] = None
    company_email: Optional[str] = None
    bank_name: Optional[str] = None
    bank_account_number: Optional[str] = None
