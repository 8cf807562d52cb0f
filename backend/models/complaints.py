import uuid
from datetime import datetime
from typing import Dict, Optional
from sqlalchemy import event
from sqlmodel import SQLModel, Field
import enum

from utils.validators import complaint_errors, ensure_valid


class ComplaintStatus(str, enum.Enum):
    pending = "pending"           # Submitted, waiting for an admin
    assigned = "assigned"         # Admin handed it to a driver
    in_progress = "in_progress"   # Driver is working on it
    completed = "completed"       # Resolved by the driver
    rejected = "rejected"         # Closed by an admin without action


# Statuses that only make sense with a driver attached
DRIVER_BOUND_STATUSES = {ComplaintStatus.assigned, ComplaintStatus.in_progress, ComplaintStatus.completed}
TERMINAL_STATUSES = {ComplaintStatus.completed, ComplaintStatus.rejected}


def generate_complaint_number() -> str:
    return f"WC-{datetime.utcnow():%Y%m%d}-{uuid.uuid4().hex[:6].upper()}"


class Complaint(SQLModel, table=True):
    __tablename__ = "complaints"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    complaint_number: str = Field(default_factory=generate_complaint_number, unique=True, index=True)
    user_id: uuid.UUID = Field(foreign_key="identities.id", index=True, nullable=False)

    area: str = Field(nullable=False, index=True)
    locality: Optional[str] = None
    landmark: Optional[str] = None
    address: str = Field(nullable=False)
    description: Optional[str] = None
    notes: Optional[str] = None

    status: ComplaintStatus = Field(default=ComplaintStatus.pending, nullable=False)
    admin_remarks: Optional[str] = None
    assigned_driver_id: Optional[uuid.UUID] = Field(default=None, foreign_key="drivers.id", index=True)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    assigned_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


def lifecycle_errors(complaint: Complaint) -> Dict[str, str]:
    errors = {}
    status = ComplaintStatus(complaint.status)
    if status in DRIVER_BOUND_STATUSES:
        if complaint.assigned_driver_id is None:
            errors["assigned_driver_id"] = f"A driver is required for status '{status.value}'"
        if complaint.assigned_at is None:
            errors["assigned_at"] = f"assigned_at is required for status '{status.value}'"
    if status == ComplaintStatus.completed and complaint.resolved_at is None:
        errors["resolved_at"] = "resolved_at is required for completed complaints"
    return errors


@event.listens_for(Complaint, "before_insert")
@event.listens_for(Complaint, "before_update")
def _check_complaint(mapper, connection, target: Complaint):
    ensure_valid({**complaint_errors(target.area, target.address), **lifecycle_errors(target)})
