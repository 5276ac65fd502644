from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.config import logger
from app.core.firebase_client import get_current_user, require_roles
from app.core.security import ROLE_ADMIN, log_security_event
from app.core.users import TenantMismatchError, UserDirectory, UserNotFoundError
from app.dependencies import get_directory
from app.schemas import RoleUpdateRequest, UserResponse, UsersListResponse

router = APIRouter(prefix="/api/auth", tags=["Users"])


@router.get("/profile", response_model=UserResponse)
async def get_profile(
    user: Dict[str, Any] = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    """Get the caller's own account."""
    try:
        account = directory.get_user(user["uid"])
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return UserResponse(**account)


@router.get("/users", response_model=UsersListResponse)
async def list_users(
    user: Dict[str, Any] = Depends(require_roles(ROLE_ADMIN)),
    directory: UserDirectory = Depends(get_directory),
) -> UsersListResponse:
    """List every user in the admin's tenant."""
    accounts = directory.list_tenant_users(user["tenant_id"])
    return UsersListResponse(users=[UserResponse(**account) for account in accounts])


@router.put("/users/{uid}/role", response_model=UserResponse)
async def update_user_role(
    uid: str,
    payload: RoleUpdateRequest,
    request: Request,
    user: Dict[str, Any] = Depends(require_roles(ROLE_ADMIN)),
    directory: UserDirectory = Depends(get_directory),
) -> UserResponse:
    """
    Change the role of a user in the admin's tenant.

    The new role applies once the user's ID token is refreshed.
    """
    try:
        account = directory.set_role(uid, payload.role, user["tenant_id"])
    except UserNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    except TenantMismatchError:
        log_security_event("cross_tenant_role_change", conn=request, user=user, target_uid=uid)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Unauthorized to update users outside your tenant",
        )
    logger.info("User %s set role of %s to %s", user["uid"], uid, payload.role)
    return UserResponse(**account)
