"""
Role-gated dashboard views.

Each view runs its ``AccessGate`` against a fresh ``SessionContext``. No
identity sends the caller to the portal login page; a signed-in identity
without the role is signed out and sent home with an access-denied notice.
"""
import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Query
from fastapi.responses import RedirectResponse
from sqlmodel import Session, select, col

from core.database import get_session
from core.session_context import SessionContext, AccessGate, GateDecision
from models.audit_log import AuditAction
from models.bin import Bin
from models.driver import Driver
from models.user import Role
from schemas.bins import BinRead
from schemas.complaints import ComplaintRead
from schemas.drivers import DriverRead
from services.identity import IdentityStore
from services.lifecycle import ComplaintLifecycle
from utils.audit import log_action
from utils.security import Principal, get_optional_principal

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Dashboards"])


def open_gate(required_role: Optional[Role], principal: Optional[Principal], session: Session) -> AccessGate:
    store = IdentityStore(session)

    def sign_out(context: SessionContext):
        if context.session_id is not None:
            store.revoke_session(context.session_id)
            log_action(
                session,
                performed_by=context.identity.id,
                action=AuditAction.FORCED_SIGN_OUT,
                details=f"Denied access to the {required_role.value} dashboard",
            )
        context.clear()

    context = SessionContext()
    gate = AccessGate(context, required_role, sign_out)
    if principal is not None:
        context.update(principal.identity, principal.roles, principal.session_id)
    return gate


def redirect_for(decision: GateDecision) -> RedirectResponse:
    url = decision.redirect_to
    if decision.notice:
        url = f"{url}?{urlencode({'notice': decision.notice})}"
    return RedirectResponse(url=url, status_code=303)


def _complaints(items):
    return [ComplaintRead.model_validate(c) for c in items]


@router.get("/admin/dashboard")
def admin_dashboard(
    q: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: Session = Depends(get_session),
):
    gate = open_gate(Role.admin, principal, session)
    if not gate.decision.allowed:
        return redirect_for(gate.decision)

    lifecycle = ComplaintLifecycle(session)
    drivers = session.exec(select(Driver).order_by(col(Driver.created_at).desc())).all()
    bins = session.exec(select(Bin).order_by(col(Bin.created_at).desc())).all()
    return {
        "stats": lifecycle.status_counts(),
        "complaints": _complaints(lifecycle.list_for_admin(q=q)),
        "drivers": [DriverRead.model_validate(d) for d in drivers],
        "bins": [BinRead.model_validate(b) for b in bins],
    }


@router.get("/driver/dashboard")
def driver_dashboard(
    active_only: bool = Query(False),
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: Session = Depends(get_session),
):
    gate = open_gate(Role.driver, principal, session)
    if not gate.decision.allowed:
        return redirect_for(gate.decision)

    driver = session.exec(select(Driver).where(Driver.user_id == principal.id)).first()
    if driver is None:
        logger.warning("Identity %s holds the driver role but has no driver record", principal.id)
        return {"driver": None, "stats": {}, "complaints": []}

    lifecycle = ComplaintLifecycle(session)
    return {
        "driver": DriverRead.model_validate(driver),
        "stats": lifecycle.status_counts(assigned_driver_id=driver.id),
        "complaints": _complaints(lifecycle.list_for_driver(driver.id, active_only=active_only)),
    }


@router.get("/user/dashboard")
def user_dashboard(
    q: Optional[str] = Query(None),
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: Session = Depends(get_session),
):
    gate = open_gate(None, principal, session)
    if not gate.decision.allowed:
        return redirect_for(gate.decision)

    lifecycle = ComplaintLifecycle(session)
    return {
        "stats": lifecycle.status_counts(user_id=principal.id),
        "complaints": _complaints(lifecycle.list_for_citizen(principal.id, q=q)),
    }
