"""Request and response bodies of the /auth endpoints"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Bearer token plus the role, so the client can pick its dashboard."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token lifetime in seconds")
    role: str = Field(..., description="vendor, consultant or admin")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    name: str
    role: str
    company_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    assigned_consultant_id: Optional[UUID] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime


class MeResponse(BaseModel):
    user: UserResponse
