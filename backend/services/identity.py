"""
Identity and role store.

Identities, sessions and role assignments live in their own tables and every
write here commits on its own, so callers that chain further writes must undo
an identity explicitly (see ``delete_identity``) when a later step fails.
"""
import uuid
import logging
from datetime import datetime, timedelta
from typing import FrozenSet, Optional
from sqlmodel import Session, select

from core.config import settings
from models.user import Identity, Role, UserRoleAssignment
from models.auth_session import AuthSession
from utils.hashing import hash_password, verify_password
from utils.validators import validate_email, validate_password, ensure_valid

logger = logging.getLogger(__name__)


class IdentityError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class IdentityStore:
    def __init__(self, session: Session):
        self.session = session

    # ---- identities ----

    def get(self, identity_id: uuid.UUID) -> Optional[Identity]:
        return self.session.get(Identity, identity_id)

    def get_by_email(self, email: str) -> Optional[Identity]:
        return self.session.exec(
            select(Identity).where(Identity.email == email.strip().lower())
        ).first()

    def create_identity(
        self,
        email: str,
        password: str,
        full_name: Optional[str] = None,
        auto_confirm: bool = False,
    ) -> Identity:
        ensure_valid({
            field: msg for field, msg in {
                "email": validate_email(email),
                "password": validate_password(password),
            }.items() if msg
        })

        if self.get_by_email(email):
            raise IdentityError("A user with this email address has already been registered")

        identity = Identity(
            email=email.strip().lower(),
            password_hash=hash_password(password),
            full_name=full_name,
            email_confirmed=auto_confirm,
        )
        self.session.add(identity)
        self.session.commit()
        self.session.refresh(identity)
        logger.info("Created identity %s (%s)", identity.id, identity.email)
        return identity

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None) -> Identity:
        # Citizens are confirmed on sign-up; there is no mail delivery step
        return self.create_identity(email, password, full_name=full_name, auto_confirm=True)

    def delete_identity(self, identity_id: uuid.UUID) -> None:
        for assignment in self.session.exec(
            select(UserRoleAssignment).where(UserRoleAssignment.user_id == identity_id)
        ).all():
            self.session.delete(assignment)
        for auth_session in self.session.exec(
            select(AuthSession).where(AuthSession.identity_id == identity_id)
        ).all():
            self.session.delete(auth_session)

        identity = self.session.get(Identity, identity_id)
        if identity:
            self.session.delete(identity)
        self.session.commit()
        logger.info("Deleted identity %s", identity_id)

    def authenticate(self, email: str, password: str) -> Identity:
        identity = self.get_by_email(email)
        if not identity or not verify_password(password, identity.password_hash):
            raise IdentityError("Invalid login credentials", status_code=401)
        if not identity.email_confirmed:
            raise IdentityError("Email not confirmed", status_code=401)
        return identity

    # ---- sessions ----

    def open_session(self, identity: Identity) -> AuthSession:
        auth_session = AuthSession(
            identity_id=identity.id,
            expires_at=datetime.utcnow() + timedelta(hours=settings.SESSION_EXPIRE_HOURS),
        )
        self.session.add(auth_session)
        self.session.commit()
        self.session.refresh(auth_session)
        return auth_session

    def active_session(self, session_id: uuid.UUID) -> Optional[AuthSession]:
        auth_session = self.session.get(AuthSession, session_id)
        if not auth_session or auth_session.revoked or auth_session.expires_at < datetime.utcnow():
            return None
        return auth_session

    def revoke_session(self, session_id: uuid.UUID) -> None:
        auth_session = self.session.get(AuthSession, session_id)
        if auth_session and not auth_session.revoked:
            auth_session.revoked = True
            self.session.add(auth_session)
            self.session.commit()

    def has_active_session(self, identity_id: uuid.UUID) -> bool:
        now = datetime.utcnow()
        return self.session.exec(
            select(AuthSession).where(
                AuthSession.identity_id == identity_id,
                AuthSession.revoked == False,  # noqa: E712
                AuthSession.expires_at > now,
            )
        ).first() is not None

    # ---- roles ----

    def roles_for(self, identity_id: uuid.UUID) -> FrozenSet[Role]:
        rows = self.session.exec(
            select(UserRoleAssignment.role).where(UserRoleAssignment.user_id == identity_id)
        ).all()
        return frozenset(Role(r) for r in rows)

    def grant_role(self, identity_id: uuid.UUID, role: Role, commit: bool = True) -> UserRoleAssignment:
        existing = self.session.exec(
            select(UserRoleAssignment).where(
                UserRoleAssignment.user_id == identity_id,
                UserRoleAssignment.role == role,
            )
        ).first()
        if existing:
            return existing

        assignment = UserRoleAssignment(user_id=identity_id, role=role)
        self.session.add(assignment)
        if commit:
            self.session.commit()
            self.session.refresh(assignment)
        else:
            self.session.flush()
        return assignment

    def revoke_role(self, identity_id: uuid.UUID, role: Role, commit: bool = True) -> None:
        for assignment in self.session.exec(
            select(UserRoleAssignment).where(
                UserRoleAssignment.user_id == identity_id,
                UserRoleAssignment.role == role,
            )
        ).all():
            self.session.delete(assignment)
        if commit:
            self.session.commit()
