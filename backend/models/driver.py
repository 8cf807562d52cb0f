import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import event
from sqlmodel import SQLModel, Field
import enum

from utils.validators import driver_errors, ensure_valid, normalize_vehicle_number, normalize_license_number


class DriverStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class Driver(SQLModel, table=True):
    __tablename__ = "drivers"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    full_name: str = Field(nullable=False)
    phone: str = Field(nullable=False)
    email: Optional[str] = None
    license_number: Optional[str] = None
    vehicle_number: Optional[str] = Field(default=None, unique=True)  # one driver per vehicle
    status: DriverStatus = Field(default=DriverStatus.active, nullable=False)
    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="identities.id", unique=True)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


@event.listens_for(Driver, "before_insert")
@event.listens_for(Driver, "before_update")
def _check_driver(mapper, connection, target: Driver):
    # Rows are refused here even when a caller skipped the request checks
    target.vehicle_number = normalize_vehicle_number(target.vehicle_number)
    target.license_number = normalize_license_number(target.license_number)
    target.email = target.email or None
    ensure_valid(driver_errors(
        full_name=target.full_name,
        phone=target.phone,
        email=target.email,
        license_number=target.license_number,
        vehicle_number=target.vehicle_number,
    ))
