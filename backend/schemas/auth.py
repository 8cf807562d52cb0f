import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel
import enum

from models.user import Role


class Portal(str, enum.Enum):
    admin = "admin"
    driver = "driver"
    citizen = "citizen"


class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str
    portal: Portal = Portal.citizen


class IdentityRead(BaseModel):
    id: uuid.UUID
    email: str
    full_name: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"
    roles: List[Role] = []


class MeResponse(BaseModel):
    identity: IdentityRead
    roles: List[Role]
    operating_role: Optional[Role] = None
