import logging

from fastapi import APIRouter, Depends, HTTPException, status

from debtledger.api.deps import get_friend_service
from debtledger.core.auth import (
    ADMIN_SUBJECT,
    ROLE_ADMIN,
    ROLE_FRIEND,
    create_access_token,
    verify_password,
)
from debtledger.core.config import settings
from debtledger.schemas.auth import AdminLogin, FriendLogin, TokenResponse
from debtledger.schemas.friend import FriendResponse
from debtledger.services.friend_service import FriendService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/admin/login", response_model=TokenResponse)
async def admin_login(credentials: AdminLogin):
    """Log the ledger owner in"""
    if not verify_password(credentials.password, settings.ADMIN_PASSWORD_HASH):
        logger.warning("Rejected admin login")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return TokenResponse(
        access_token=create_access_token(ADMIN_SUBJECT, ROLE_ADMIN),
        role=ROLE_ADMIN
    )


@router.post("/friend/login", response_model=TokenResponse)
async def friend_login(
    credentials: FriendLogin,
    friends: FriendService = Depends(get_friend_service)
):
    """Log a friend into the portal with their access code"""
    friend = await friends.find_by_access_code(credentials.access_code)
    if friend is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid access code"
        )

    return TokenResponse(
        access_token=create_access_token(friend.id, ROLE_FRIEND),
        role=ROLE_FRIEND,
        friend=FriendResponse.model_validate(friend)
    )
