import uuid
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import FrozenSet, Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from sqlmodel import Session

from core.config import settings
from core.database import get_session
from models.user import Identity, Role
from services.identity import IdentityStore

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    identity: Identity
    session_id: uuid.UUID
    roles: FrozenSet[Role]

    @property
    def id(self) -> uuid.UUID:
        return self.identity.id

    def has_role(self, role: Role) -> bool:
        return role in self.roles


def create_access_token(identity_id: uuid.UUID, session_id: uuid.UUID, expires_delta: Optional[timedelta] = None) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"sub": str(identity_id), "sid": str(session_id), "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def resolve_token(token: str, session: Session) -> Optional[Principal]:
    """Principal for a bearer token, or None when the token or its session is no longer valid."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        identity_id = uuid.UUID(payload["sub"])
        session_id = uuid.UUID(payload["sid"])
    except (JWTError, KeyError, ValueError):
        return None

    store = IdentityStore(session)
    if store.active_session(session_id) is None:
        return None
    identity = store.get(identity_id)
    if identity is None:
        return None
    return Principal(identity=identity, session_id=session_id, roles=store.roles_for(identity_id))


def get_optional_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Optional[Principal]:
    if credentials is None:
        return None
    return resolve_token(credentials.credentials, session)


def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> Principal:
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    principal = resolve_token(credentials.credentials, session)
    if principal is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return principal


def role_required(role: Role):
    def _checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_role(role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"{role.value.capitalize()} role required",
            )
        return principal
    return _checker


admin_required = role_required(Role.admin)
driver_required = role_required(Role.driver)
