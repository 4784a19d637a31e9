"""User profile and account endpoints."""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_storage
from models.user import User
from schemas.user import (
    PasswordUpdate,
    ProfileUpdate,
    RoleUpdate,
    UserListResponse,
    UserResponse,
)
from services import user_service
from services.authorization import UserAction, authorize_user
from services.storage import BlobStorage

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)) -> User:
    """Get the current authenticated user's info."""
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Update name, username or email of the current user."""
    authorize_user(current_user, UserAction.UPDATE, current_user)
    return await user_service.update_profile(db, current_user, data)


@router.put("/me/password", response_model=UserResponse)
async def change_my_password(
    data: PasswordUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Change the current user's password; the current password must be supplied."""
    return await user_service.change_password(db, current_user, data)


@router.delete("/me", status_code=status.HTTP_204_NO_CONTENT)
async def delete_me(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    storage: BlobStorage = Depends(get_storage),
) -> None:
    """Delete the current user's account and all of their prompts."""
    authorize_user(current_user, UserAction.DESTROY, current_user)
    await user_service.delete_user(db, storage, current_user)


@router.get("/", response_model=UserListResponse)
async def list_users(
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=50, ge=1, le=100, description="Pagination limit"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> UserListResponse:
    """List all users (admins only)."""
    authorize_user(current_user, UserAction.INDEX, None)
    users, total = await user_service.list_users(db, offset=offset, limit=limit)
    return UserListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        offset=offset,
        limit=limit,
        has_more=offset + len(users) < total,
    )


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(
    user_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Get a user; only the user themselves and admins may see an account."""
    user = await user_service.get_user(db, user_id)
    authorize_user(current_user, UserAction.SHOW, user)
    return user


@router.put("/{user_id}/role", response_model=UserResponse)
async def update_role(
    user_id: int,
    data: RoleUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """Grant or revoke the admin role (admins only)."""
    user = await user_service.get_user(db, user_id)
    authorize_user(current_user, UserAction.MAKE_ADMIN, user)
    return await user_service.set_role(db, user, data.role)
