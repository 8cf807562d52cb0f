import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field
import enum


class AuditAction(str, enum.Enum):
    # Identity-related actions
    SIGNED_UP = "signed_up"
    SIGNED_IN = "signed_in"
    SIGNED_OUT = "signed_out"
    FORCED_SIGN_OUT = "forced_sign_out"

    # Complaint-related actions
    CREATED_COMPLAINT = "created_complaint"
    ASSIGNED_COMPLAINT = "assigned_complaint"
    REJECTED_COMPLAINT = "rejected_complaint"
    UPDATED_COMPLAINT_STATUS = "updated_complaint_status"
    OVERRODE_COMPLAINT_STATUS = "overrode_complaint_status"

    # Driver-related actions
    ADDED_DRIVER = "added_driver"
    UPDATED_DRIVER = "updated_driver"
    REMOVED_DRIVER = "removed_driver"

    # Bin-related actions
    ADDED_BIN = "added_bin"
    UPDATED_BIN = "updated_bin"
    REMOVED_BIN = "removed_bin"

    # Notification hook
    NOTIFICATION_SENT = "notification_sent"
    NOTIFICATION_FAILED = "notification_failed"


class AuditLog(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    action: str  # one of AuditAction
    details: Optional[str] = None

    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="identities.id")  # who did the action
    created_at: datetime = Field(default_factory=datetime.utcnow)
