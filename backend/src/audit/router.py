"""Read-only activity log (ADMIN only)"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from auth.dependencies import AdminUser
from database import get_db
from models.audit_log import AuditLog
from .schemas import AuditLogListResponse, AuditLogResponse

router = APIRouter(prefix="/audit", tags=["Audit Logs"])


@router.get("", response_model=AuditLogListResponse, summary="Query the activity log (ADMIN only)")
def query_audit_logs(
    current_user: AdminUser,
    db: Session = Depends(get_db),
    action: Optional[str] = Query(None, examples=["DOCUMENT_REJECTED"]),
    entity_type: Optional[str] = Query(None, examples=["submission"]),
    entity_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    start_date: Optional[datetime] = Query(None, description="Earliest created_at, inclusive"),
    end_date: Optional[datetime] = Query(None, description="Latest created_at, inclusive"),
    page: int = Query(1, ge=1),
    per_page: int = Query(50, ge=1, le=100),
) -> AuditLogListResponse:
    """Newest entries first, e.g. ``GET /audit?action=DOCUMENT_REJECTED&page=2``."""
    equality_filters = (
        (AuditLog.action, action),
        (AuditLog.entity_type, entity_type),
        (AuditLog.entity_id, entity_id),
        (AuditLog.actor_id, actor_id),
    )
    query = db.query(AuditLog)
    for column, value in equality_filters:
        if value is not None:
            query = query.filter(column == value)
    if start_date is not None:
        query = query.filter(AuditLog.created_at >= start_date)
    if end_date is not None:
        query = query.filter(AuditLog.created_at <= end_date)

    total = query.count()
    entries = (
        query.order_by(AuditLog.created_at.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return AuditLogListResponse(
        entries=[AuditLogResponse.model_validate(entry) for entry in entries],
        total=total,
        page=page,
        per_page=per_page,
    )
