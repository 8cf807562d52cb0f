import uuid
from datetime import datetime
from typing import Dict, Optional
from pydantic import BaseModel
from models.complaints import ComplaintStatus


# Request schema for filing a complaint
class ComplaintCreate(BaseModel):
    area: str
    address: str
    locality: Optional[str] = None
    landmark: Optional[str] = None
    description: Optional[str] = None
    notes: Optional[str] = None


# Admin "Manage" action
class ComplaintManage(BaseModel):
    status: ComplaintStatus = ComplaintStatus.assigned
    driver_id: Optional[uuid.UUID] = None
    remarks: Optional[str] = None


# Driver status update
class ComplaintStatusUpdate(BaseModel):
    status: ComplaintStatus


# Response schema
class ComplaintRead(BaseModel):
    id: uuid.UUID
    complaint_number: str
    user_id: uuid.UUID
    area: str
    locality: Optional[str]
    landmark: Optional[str]
    address: str
    description: Optional[str]
    notes: Optional[str]
    status: ComplaintStatus
    admin_remarks: Optional[str]
    assigned_driver_id: Optional[uuid.UUID]
    created_at: datetime
    assigned_at: Optional[datetime]
    resolved_at: Optional[datetime]

    class Config:
        from_attributes = True  # allows reading from ORM objects


class ComplaintStats(BaseModel):
    counts: Dict[str, int]
