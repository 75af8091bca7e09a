"""Login and current-user endpoints.

Every login attempt lands in the activity log: LOGIN_SUCCESS, or
LOGIN_FAILED with the reason (unknown email and wrong password are
reported to the client identically).
"""

from datetime import datetime, timezone
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from audit.service import log_from_request
from database import get_db
from models.user import User
from .dependencies import CurrentUser
from .jwt import _get_jwt_expiry_minutes, create_access_token
from .password import verify_password
from .schemas import LoginRequest, LoginResponse, MeResponse, UserResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _reject_login(db: Session, request: Request, email: str, user: Optional[User], reason: str, detail: str):
    log_from_request(
        db=db,
        request=request,
        action="LOGIN_FAILED",
        actor_id=user.id if user else None,
        metadata={"email": email, "reason": reason},
    )
    db.commit()
    raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


@router.post("/login", response_model=LoginResponse)
def login(credentials: LoginRequest, request: Request, db: Annotated[Session, Depends(get_db)]):
    """Exchange email and password for a bearer token.

    Raises:
        HTTPException 401: bad credentials or a deactivated account
    """
    email = credentials.email.lower()
    user = db.query(User).filter(User.email == email).first()

    if user is None or not verify_password(credentials.password, user.password_hash):
        _reject_login(db, request, email, user, "invalid_credentials", "Invalid email or password")
    if not user.is_active:
        _reject_login(db, request, email, user, "account_disabled", "Account is disabled")

    user.last_login_at = datetime.now(timezone.utc)
    log_from_request(
        db=db,
        request=request,
        action="LOGIN_SUCCESS",
        actor_id=user.id,
        entity_type="user",
        entity_id=user.id,
        metadata={"email": user.email, "role": user.role},
    )
    db.commit()

    return LoginResponse(
        access_token=create_access_token(user_id=user.id, role=user.role, email=user.email),
        expires_in=_get_jwt_expiry_minutes() * 60,
        role=user.role,
    )


@router.get("/me", response_model=MeResponse)
def get_me(current_user: CurrentUser):
    return MeResponse(user=UserResponse.model_validate(current_user))
