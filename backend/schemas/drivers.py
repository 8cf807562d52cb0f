import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from models.driver import DriverStatus


# Admin form: driver plus login credentials
class DriverCreate(BaseModel):
    full_name: str
    phone: str
    email: str
    password: str
    license_number: Optional[str] = None
    vehicle_number: Optional[str] = None


class DriverUpdate(BaseModel):
    full_name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    license_number: Optional[str] = None
    vehicle_number: Optional[str] = None
    status: Optional[DriverStatus] = None


class DriverRead(BaseModel):
    id: uuid.UUID
    full_name: str
    phone: str
    email: Optional[str]
    license_number: Optional[str]
    vehicle_number: Optional[str]
    status: DriverStatus
    user_id: Optional[uuid.UUID]
    created_at: datetime

    class Config:
        from_attributes = True
