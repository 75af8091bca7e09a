"""Activity log writer.

Entries join the caller's transaction: they commit or roll back together
with the change they describe. Actions written by the application:

    LOGIN_SUCCESS  LOGIN_FAILED
    USER_CREATED  USER_UPDATED  USER_ACTIVATED  USER_DEACTIVATED  CONSULTANT_ASSIGNED
    SUBMISSION_CREATED  SUBMISSION_SUBMITTED  SUBMISSION_REVIEW_STARTED
    SUBMISSION_FINALIZED  SUBMISSION_BULK_APPROVED  SUBMISSION_BULK_REJECTED
    DOCUMENT_UPLOADED  DOCUMENT_DELETED  DOCUMENT_APPROVED  DOCUMENT_REJECTED
    DOCUMENT_RESUBMITTED
"""

import logging
from typing import Any, Optional
from uuid import UUID

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def _client_ip(request: Request) -> Optional[str]:
    # First X-Forwarded-For hop is the original client behind the proxy
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def log_from_request(
    db: Session,
    request: Optional[Request],
    action: str,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    description: Optional[str] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> AuditLog:
    """Add an activity log entry to ``db`` and flush it.

    Client IP and User-Agent come from ``request`` when there is one.
    """
    entry = AuditLog(
        actor_id=actor_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        description=description,
        metadata_json=metadata,
        ip_address=_client_ip(request) if request is not None else None,
        user_agent=request.headers.get("User-Agent") if request is not None else None,
    )
    db.add(entry)
    db.flush()
    return entry


def log_document_activity(
    db: Session,
    actor,
    action: str,
    document,
    request: Optional[Request] = None,
    description: Optional[str] = None,
) -> Optional[AuditLog]:
    """Record a document workflow step without ever failing the step.

    The entry goes into a SAVEPOINT; a database error there rolls back only
    the entry, is logged, and returns None.
    """
    submission_id = document.document_submission_id
    try:
        with db.begin_nested():
            return log_from_request(
                db=db,
                request=request,
                action=action,
                actor_id=getattr(actor, "id", None),
                entity_type="submission_document",
                entity_id=document.id,
                description=description,
                metadata={
                    "document_type": document.document_type,
                    "document_name": document.document_name,
                    "status": document.status,
                    "submission_id": str(submission_id) if submission_id else None,
                    "actor_role": getattr(actor, "role", None),
                },
            )
    except SQLAlchemyError as e:
        logger.warning(f"Activity log write failed: action={action}, document_id={document.id}, error={e}")
        return None
