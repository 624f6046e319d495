"""
services/user/router.py
User profile management and public profiles.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import exists, select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from core.errors import DuplicateAccountError, NotFoundError
from shared.middleware.auth import get_current_user
from shared.models.models import User
from shared.schemas.schemas import (
    ChangePasswordRequest,
    MessageResponse,
    PublicUserResponse,
    UserResponse,
    UserUpdateRequest,
)
from shared.utils.security import hash_password, verify_password

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Return the currently authenticated user's profile."""
    return UserResponse.model_validate(current_user)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Update profile fields (first_name, last_name, email, bio).
    Only non-None fields in the request body are updated.
    """
    updates = data.model_dump(exclude_none=True)
    if not updates:
        return UserResponse.model_validate(current_user)

    # Email uniqueness check
    if "email" in updates and updates["email"] != current_user.email:
        taken = await db.scalar(
            select(exists().where(User.email == updates["email"], User.id != current_user.id))
        )
        if taken:
            raise DuplicateAccountError("email")

    for field, value in updates.items():
        setattr(current_user, field, value)

    await db.commit()
    return UserResponse.model_validate(current_user)


@router.patch("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    if not verify_password(data.current_password, current_user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )
    current_user.password_hash = hash_password(data.new_password)
    await db.commit()
    return MessageResponse(message="Password changed successfully")


@router.get("/{user_id}", response_model=PublicUserResponse)
async def get_user(
    user_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError("User", user_id)
    return PublicUserResponse.model_validate(user)
