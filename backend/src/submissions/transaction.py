"""Single-commit unit of work for workflow operations.

A workflow operation flushes all of its changes (document status, ledger,
submission recompute, activity log, in-app notifications) into one session
and commits them together here. Failures roll everything back:

    TransitionRejected  -> 400, or 403 when the role may never act
    StaleDataError      -> 409 (another writer bumped the submission version)
    HTTPException       -> re-raised unchanged
"""

import logging
from contextlib import contextmanager

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from domain.compliance.workflow import TransitionRejected
from observability.metrics import workflow_transitions_total

logger = logging.getLogger(__name__)

CONCURRENT_MODIFICATION_MESSAGE = "Submission was modified concurrently. Reload and try again."


def transition_http_error(exc: TransitionRejected) -> HTTPException:
    """Map a workflow rejection to the HTTP error returned to the client."""
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN if exc.forbidden else status.HTTP_400_BAD_REQUEST,
        detail=exc.reason,
    )


@contextmanager
def workflow_transaction(db: Session, action: str):
    """Commit the operation's changes once, or roll them all back.

    Example:
        with workflow_transaction(db, "review_document"):
            document = review_document(db, submission_ref, document_id, ...)
        # committed here
    """
    try:
        yield
        db.commit()
    except TransitionRejected as e:
        db.rollback()
        workflow_transitions_total.labels(action=action, outcome="rejected").inc()
        raise transition_http_error(e)
    except StaleDataError:
        db.rollback()
        workflow_transitions_total.labels(action=action, outcome="conflict").inc()
        logger.warning(f"Concurrent modification detected during {action}", extra={"action": action})
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=CONCURRENT_MODIFICATION_MESSAGE)
    except HTTPException:
        db.rollback()
        workflow_transitions_total.labels(action=action, outcome="rejected").inc()
        raise
    except Exception:
        db.rollback()
        workflow_transitions_total.labels(action=action, outcome="error").inc()
        raise
    else:
        workflow_transitions_total.labels(action=action, outcome="success").inc()
