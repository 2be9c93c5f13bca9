"""
User profile API endpoints.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional
import logging

from unipool.core.database import get_db
from unipool.core.identity import current_user_id
from unipool.models.user import UserProfile, UserRole
from unipool.api.v1.schemas import UserCreate, UserResponse, UserRoleUpdate

logger = logging.getLogger(__name__)
router = APIRouter()

@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    user_data: UserCreate,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Create the caller's profile after sign-up."""

    existing_user_query = select(UserProfile).where(
        (UserProfile.id == user_id) | (UserProfile.email == user_data.email.strip().lower())
    )
    existing_result = await db.execute(existing_user_query)
    if existing_result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Profile with this id or email already exists"
        )

    new_user = UserProfile(
        id=user_id,
        email=user_data.email.strip().lower(),
        display_name=user_data.display_name.strip(),
        phone=user_data.phone,
        role=user_data.role,
    )

    db.add(new_user)
    await db.commit()
    await db.refresh(new_user)

    logger.info(f"Profile created: {new_user.id} ({new_user.role})")

    return new_user

@router.get("/{user_id}", response_model=UserResponse)
async def get_profile(
    user_id: str,
    db: AsyncSession = Depends(get_db)
):
    """Get a profile by user ID."""

    user = await db.get(UserProfile, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return user

@router.put("/me/role", response_model=UserResponse)
async def select_role(
    role_update: UserRoleUpdate,
    user_id: str = Depends(current_user_id),
    db: AsyncSession = Depends(get_db)
):
    """Choose whether the caller rides or drives."""

    user = await db.get(UserProfile, user_id)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    user.role = role_update.role
    await db.commit()
    await db.refresh(user)

    logger.info(f"User {user_id} selected role {user.role.value}")

    return user

@router.get("/", response_model=List[UserResponse])
async def list_profiles(
    role: Optional[UserRole] = None,
    limit: int = 50,
    offset: int = 0,
    db: AsyncSession = Depends(get_db)
):
    """List profiles with optional role filtering."""

    query = select(UserProfile)

    if role:
        query = query.where(UserProfile.role == role)

    query = query.order_by(UserProfile.created_at.asc()).limit(limit).offset(offset)

    result = await db.execute(query)
    users = result.scalars().all()

    return users
