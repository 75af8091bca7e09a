"""Authentication and role dependencies for the API routers.

Every request reloads the user from the database, so a deactivated account
or a changed role takes effect on the next call, not at token expiry.

    @router.post("/{submission_id}/final-approval")
    def final_approval(current_user: ReviewerUser, ...):
        ...
"""

from typing import Annotated, Callable, Optional
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from database import get_db
from models.user import User
from .jwt import decode_token
from .roles import UserRole, has_role

# auto_error=False so a missing header is a 401 like any other bad credential
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def user_id_from_token(token: str) -> UUID:
    """Validate a bearer token and return its subject.

    Raises:
        HTTPException 401: expired, malformed or tampered token
    """
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    try:
        return UUID(str(payload.get("sub") or ""))
    except ValueError:
        raise _unauthorized("Invalid token: missing or malformed subject")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Resolve the bearer token to an active user.

    Raises:
        HTTPException 401: no token, bad token, or unknown user
        HTTPException 403: the account is deactivated
    """
    if credentials is None:
        raise _unauthorized("Not authenticated")

    user_id = user_id_from_token(credentials.credentials)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("User not found")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is disabled")
    return user


def require_role(*allowed_roles: UserRole) -> Callable:
    """Dependency factory admitting only the given roles (403 otherwise)."""
    allowed = ", ".join(role.value for role in allowed_roles)

    def role_dependency(current_user: User = Depends(get_current_user)) -> User:
        if not has_role(current_user.role, allowed_roles):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required role: {allowed}",
            )
        return current_user

    return role_dependency


CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_role(UserRole.ADMIN))]
ReviewerUser = Annotated[User, Depends(require_role(UserRole.CONSULTANT, UserRole.ADMIN))]
OwnerUser = Annotated[User, Depends(require_role(UserRole.VENDOR, UserRole.ADMIN))]
VendorUser = Annotated[User, Depends(require_role(UserRole.VENDOR))]
