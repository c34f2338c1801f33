from typing import Literal, Optional

from pydantic import BaseModel, Field


class AccountCreate(BaseModel):
    entity_id: int
    entity_type: Literal["staff", "doctor", "patient"]
    email: str = Field(..., description="Email address or mobile number")
    name: str = Field(..., min_length=1, max_length=120)
    role: str
    password: Optional[str] = None


class AccountCreatedOut(BaseModel):
    success: bool = True
    email: str
    password: str
    user_id: int
