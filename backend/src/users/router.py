"""Account administration.

Admins create vendors, consultants and other admins, toggle accounts and
pair each vendor with its reviewing consultant. Consultants can list the
vendors paired with them. Every change is written to the activity log.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from audit.service import log_from_request
from auth.dependencies import AdminUser, require_role
from auth.password import hash_password, validate_password_strength
from auth.roles import UserRole
from database import get_db
from domain.notifications.ports import ConnectionRegistryPort
from models.user import User
from notifications.registry import get_connection_registry
from .schemas import AssignConsultantRequest, UserCreate, UserListResponse, UserResponse, UserUpdate

router = APIRouter(prefix="/users", tags=["User Management"])

_PROFILE_FIELDS = ("name", "company_name", "phone")


def _bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _load_user(db: Session, user_id: UUID) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _active_consultant(db: Session, consultant_id: UUID) -> User:
    consultant = db.get(User, consultant_id)
    if consultant is None or consultant.role != UserRole.CONSULTANT.value:
        raise _bad_request("Assigned user must be an existing consultant")
    if not consultant.is_active:
        raise _bad_request("Cannot assign an inactive consultant")
    return consultant


@router.get("/assigned-vendors", response_model=UserListResponse, summary="Vendors assigned to me (CONSULTANT)")
def list_assigned_vendors(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.CONSULTANT)),
):
    vendors = (
        db.query(User)
        .filter(User.assigned_consultant_id == current_user.id, User.role == UserRole.VENDOR.value)
        .order_by(User.name)
        .all()
    )
    return UserListResponse(users=vendors, total=len(vendors))


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED, summary="Create a user (ADMIN)")
def create_user(request: Request, data: UserCreate, current_user: AdminUser, db: Session = Depends(get_db)):
    """Create an account.

    Raises:
        400: weak password, or a consultant pairing on a non-vendor
        409: the email is taken
    """
    is_valid, error_msg = validate_password_strength(data.password)
    if not is_valid:
        raise _bad_request(error_msg)

    email = data.email.lower()
    if db.query(User.id).filter(User.email == email).first() is not None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"User with email {data.email} already exists")

    consultant = None
    if data.assigned_consultant_id is not None:
        if data.role != UserRole.VENDOR.value:
            raise _bad_request("Only vendors can have an assigned consultant")
        consultant = _active_consultant(db, data.assigned_consultant_id)

    user = User(
        email=email,
        name=data.name,
        role=data.role,
        password_hash=hash_password(data.password),
        company_name=data.company_name,
        phone=data.phone,
        assigned_consultant_id=consultant.id if consultant else None,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError:
        # lost a race with a concurrent signup for the same email
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"User with email {data.email} already exists")

    log_from_request(
        db=db,
        request=request,
        action="USER_CREATED",
        actor_id=current_user.id,
        entity_type="user",
        entity_id=user.id,
        description=f"Created {user.role} {user.email}",
        metadata={"email": user.email, "role": user.role},
    )
    db.commit()
    db.refresh(user)
    return user


@router.get("", response_model=UserListResponse, summary="List users (ADMIN)")
def list_users(
    current_user: AdminUser,
    db: Session = Depends(get_db),
    role: Optional[str] = Query(None, pattern="^(vendor|consultant|admin)$"),
    is_active: Optional[bool] = None,
):
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if is_active is not None:
        query = query.filter(User.is_active.is_(is_active))
    users = query.order_by(User.created_at.desc()).all()
    return UserListResponse(users=users, total=len(users))


@router.get("/{user_id}", response_model=UserResponse, summary="Get a user (ADMIN)")
def get_user(user_id: UUID, current_user: AdminUser, db: Session = Depends(get_db)):
    return _load_user(db, user_id)


@router.patch(
    "/{user_id}",
    response_model=UserResponse,
    summary="Update a user (ADMIN)",
    description="Deactivating an account also closes its realtime connections.",
)
def update_user(
    user_id: UUID,
    request: Request,
    data: UserUpdate,
    current_user: AdminUser,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    registry: ConnectionRegistryPort = Depends(get_connection_registry),
):
    user = _load_user(db, user_id)

    changes = {}
    for field in _PROFILE_FIELDS:
        value = getattr(data, field)
        if value is not None and value != getattr(user, field):
            changes[field] = {"old": getattr(user, field), "new": value}
            setattr(user, field, value)

    toggle_action = None
    if data.is_active is not None and data.is_active != user.is_active:
        if not data.is_active and user.id == current_user.id:
            raise _bad_request("You cannot deactivate your own account")
        changes["is_active"] = {"old": user.is_active, "new": data.is_active}
        user.is_active = data.is_active
        toggle_action = "USER_ACTIVATED" if data.is_active else "USER_DEACTIVATED"

    audit_actions = (["USER_UPDATED"] if changes else []) + ([toggle_action] if toggle_action else [])
    for action in audit_actions:
        log_from_request(
            db=db,
            request=request,
            action=action,
            actor_id=current_user.id,
            entity_type="user",
            entity_id=user.id,
            metadata=changes if action == "USER_UPDATED" else None,
        )
    db.commit()
    db.refresh(user)

    if toggle_action == "USER_DEACTIVATED":
        background_tasks.add_task(registry.close_user, user.id)
    return user


@router.put("/{vendor_id}/consultant", response_model=UserResponse, summary="Pair a consultant with a vendor (ADMIN)")
def assign_consultant(
    vendor_id: UUID,
    request: Request,
    data: AssignConsultantRequest,
    current_user: AdminUser,
    db: Session = Depends(get_db),
):
    """Set the vendor's consultant; a null consultant_id removes the pairing.

    Raises:
        400: the target is not a vendor, or the assignee is not an active consultant
        404: no such vendor
    """
    vendor = _load_user(db, vendor_id)
    if vendor.role != UserRole.VENDOR.value:
        raise _bad_request("Consultants can only be assigned to vendors")

    consultant = _active_consultant(db, data.consultant_id) if data.consultant_id else None
    previous_id = vendor.assigned_consultant_id
    vendor.assigned_consultant_id = consultant.id if consultant else None

    vendor_label = vendor.company_name or vendor.name
    log_from_request(
        db=db,
        request=request,
        action="CONSULTANT_ASSIGNED",
        actor_id=current_user.id,
        entity_type="user",
        entity_id=vendor.id,
        description=f"Assigned {consultant.name} to {vendor_label}" if consultant else f"Removed consultant from {vendor_label}",
        metadata={
            "previous_consultant_id": str(previous_id) if previous_id else None,
            "consultant_id": str(consultant.id) if consultant else None,
        },
    )
    db.commit()
    db.refresh(vendor)
    return vendor
