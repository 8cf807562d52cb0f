import uuid
from datetime import datetime
from typing import Optional
from sqlalchemy import event
from sqlmodel import SQLModel, Field
import enum

from utils.validators import bin_errors, ensure_valid


class BinCapacity(str, enum.Enum):
    small = "small"
    medium = "medium"
    large = "large"


class BinStatus(str, enum.Enum):
    active = "active"
    inactive = "inactive"


class Bin(SQLModel, table=True):
    __tablename__ = "bins"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    location: str = Field(nullable=False)
    area: str = Field(nullable=False, index=True)
    locality: Optional[str] = None
    capacity: BinCapacity = Field(default=BinCapacity.medium, nullable=False)
    status: BinStatus = Field(default=BinStatus.active, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


@event.listens_for(Bin, "before_insert")
@event.listens_for(Bin, "before_update")
def _check_bin(mapper, connection, target: Bin):
    ensure_valid(bin_errors(target.location, target.area))
