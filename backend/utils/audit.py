import uuid
import logging
from datetime import datetime
from typing import Optional
from sqlmodel import Session
from models.audit_log import AuditLog, AuditAction

logger = logging.getLogger(__name__)


def log_action(
    session: Session,
    performed_by: Optional[uuid.UUID],
    action: AuditAction,
    details: Optional[str] = None,
    commit: bool = True,
):
    logger.info("audit: user=%s action=%s details=%s", performed_by, action.value, details)
    audit = AuditLog(
        action=action.value,
        details=details,
        user_id=performed_by,
        created_at=datetime.utcnow(),
    )
    session.add(audit)
    if commit:
        session.commit()
