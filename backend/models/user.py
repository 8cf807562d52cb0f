import uuid
from datetime import datetime
from typing import Optional
from sqlmodel import SQLModel, Field, UniqueConstraint
import enum


class Role(str, enum.Enum):
    admin = "admin"
    driver = "driver"


class Identity(SQLModel, table=True):
    __tablename__ = "identities"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    email: str = Field(index=True, unique=True, nullable=False)
    password_hash: str = Field(nullable=False)
    full_name: Optional[str] = None
    email_confirmed: bool = Field(default=False, nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)


class UserRoleAssignment(SQLModel, table=True):
    __tablename__ = "user_roles"
    __table_args__ = (UniqueConstraint("user_id", "role", name="uq_user_roles_user_role"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="identities.id", index=True, nullable=False)
    role: Role = Field(nullable=False)
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
