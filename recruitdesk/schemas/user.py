from pydantic import BaseModel, EmailStr, Field
from typing import List, Literal, Optional

AppRole = Literal["admin", "user"]


# 1. For Login (Input)
class UserLogin(BaseModel):
    email: str
    password: str


# 2. For Creating HR accounts (Input, admin only)
class UserCreate(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: AppRole = "user"


# 3. For Responses (Output)
class UserResponse(BaseModel):
    id: str
    name: Optional[str] = None
    email: EmailStr
    roles: List[str] = []

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str


class RoleCheckResponse(BaseModel):
    user_id: str
    role: str
    has_role: bool
