import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel
from models.bin import BinCapacity, BinStatus


class BinCreate(BaseModel):
    location: str
    area: str
    locality: Optional[str] = None
    capacity: BinCapacity = BinCapacity.medium
    status: BinStatus = BinStatus.active


class BinUpdate(BaseModel):
    location: Optional[str] = None
    area: Optional[str] = None
    locality: Optional[str] = None
    capacity: Optional[BinCapacity] = None
    status: Optional[BinStatus] = None


class BinRead(BaseModel):
    id: uuid.UUID
    location: str
    area: str
    locality: Optional[str]
    capacity: BinCapacity
    status: BinStatus
    created_at: datetime

    class Config:
        from_attributes = True
