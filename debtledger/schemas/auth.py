from typing import Optional

from pydantic import BaseModel, Field

from debtledger.schemas.friend import FriendResponse


class AdminLogin(BaseModel):
    """Schema for owner login"""
    password: str = Field(..., min_length=1)


class FriendLogin(BaseModel):
    """Schema for friend self-service login"""
    access_code: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$")


class TokenResponse(BaseModel):
    """Schema for authentication token response"""
    access_token: str
    token_type: str = "bearer"
    role: str
    friend: Optional[FriendResponse] = None
