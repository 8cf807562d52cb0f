from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session

from core.database import get_session
from core.session_context import operating_role
from models.user import Role
from models.audit_log import AuditAction
from schemas.auth import SignUpRequest, LoginRequest, Token, MeResponse, IdentityRead, Portal
from services.identity import IdentityStore, IdentityError
from utils.audit import log_action
from utils.errors import validation_error
from utils.security import Principal, create_access_token, get_current_principal
from utils.validators import ValidationFailed

router = APIRouter(tags=["Auth"])

PORTAL_ROLES = {
    Portal.admin: Role.admin,
    Portal.driver: Role.driver,
}


# Citizen self-service sign-up
@router.post("/signup", response_model=IdentityRead, status_code=201)
def sign_up(payload: SignUpRequest, session: Session = Depends(get_session)):
    store = IdentityStore(session)
    try:
        identity = store.sign_up(payload.email, payload.password, full_name=payload.full_name)
    except ValidationFailed as e:
        raise validation_error(e.errors)
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    log_action(session, performed_by=identity.id, action=AuditAction.SIGNED_UP, details=identity.email)
    return identity


@router.post("/login", response_model=Token)
def login(payload: LoginRequest, session: Session = Depends(get_session)):
    store = IdentityStore(session)
    try:
        identity = store.authenticate(payload.email, payload.password)
    except IdentityError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    auth_session = store.open_session(identity)
    roles = store.roles_for(identity.id)

    # Admin and driver portals only admit identities holding that role
    required = PORTAL_ROLES.get(payload.portal)
    if required is not None and required not in roles:
        store.revoke_session(auth_session.id)
        log_action(
            session,
            performed_by=identity.id,
            action=AuditAction.FORCED_SIGN_OUT,
            details=f"Signed in to the {payload.portal.value} portal without the {required.value} role",
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You do not have {required.value} privileges.",
        )

    log_action(session, performed_by=identity.id, action=AuditAction.SIGNED_IN, details=payload.portal.value)
    return Token(
        access_token=create_access_token(identity.id, auth_session.id),
        roles=sorted(roles, key=lambda r: r.value),
    )


@router.post("/logout")
def logout(principal: Principal = Depends(get_current_principal), session: Session = Depends(get_session)):
    IdentityStore(session).revoke_session(principal.session_id)
    log_action(session, performed_by=principal.id, action=AuditAction.SIGNED_OUT)
    return {"detail": "Signed out"}


@router.get("/me", response_model=MeResponse)
def me(principal: Principal = Depends(get_current_principal)):
    return MeResponse(
        identity=IdentityRead.model_validate(principal.identity),
        roles=sorted(principal.roles, key=lambda r: r.value),
        operating_role=operating_role(principal.roles),
    )
