from datetime import datetime

from pydantic import BaseModel, Field, ConfigDict


class FriendCreate(BaseModel):
    """Friend creation schema."""
    name: str = Field(..., min_length=1, max_length=100)


class FriendResponse(BaseModel):
    """Friend as seen by the owner."""
    id: str
    name: str
    access_code: str
    balance: float
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PortalFriendResponse(BaseModel):
    """Friend as seen by themselves in the portal."""
    id: str
    name: str
    balance: float

    model_config = ConfigDict(from_attributes=True)


class BalanceAudit(BaseModel):
    """Stored balance checked against a recomputation from history."""
    friend_id: str
    stored_balance: float
    derived_balance: float
    outstanding_total: float
    consistent: bool
