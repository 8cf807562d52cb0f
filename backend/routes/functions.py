"""
Server-side functions with plain ``{"error": ...}`` bodies, kept separate from
the REST routes for clients that call them directly.
"""
import uuid
import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials
from sqlmodel import Session

from core.database import get_session
from models.user import Role
from schemas.drivers import DriverRead
from services.notifications import AssignmentNotice, NotificationError, notify_driver
from services.provisioning import DriverSignup, ProvisioningError, provision_driver
from utils.security import Principal, bearer_scheme, resolve_token

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Functions"])

REQUIRED_DRIVER_FIELDS = ("email", "password", "full_name", "phone")
OPTIONAL_DRIVER_FIELDS = ("license_number", "vehicle_number")
NOTICE_FIELDS = ("driver_id", "complaint_id", "complaint_number", "area", "address")


def _error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _authorize_admin(credentials: Optional[HTTPAuthorizationCredentials], session: Session, forbidden: str):
    """Returns (principal, None) for an admin caller, or (None, error response)."""
    if credentials is None:
        return None, _error("No authorization header", 401)
    principal: Optional[Principal] = resolve_token(credentials.credentials, session)
    if principal is None:
        return None, _error("Invalid token", 401)
    if not principal.has_role(Role.admin):
        return None, _error(forbidden, 403)
    return principal, None


@router.post("/create-driver")
def create_driver(
    payload: dict = Body(default={}),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
):
    principal, denied = _authorize_admin(credentials, session, "Only admins can create drivers")
    if denied is not None:
        return denied

    if any(not payload.get(field) for field in REQUIRED_DRIVER_FIELDS):
        return _error("Missing required fields: " + ", ".join(REQUIRED_DRIVER_FIELDS), 400)
    not_text = [
        field for field in REQUIRED_DRIVER_FIELDS + OPTIONAL_DRIVER_FIELDS
        if payload.get(field) is not None and not isinstance(payload[field], str)
    ]
    if not_text:
        return _error("Fields must be strings: " + ", ".join(not_text), 400)

    signup = DriverSignup(
        email=payload["email"],
        password=payload["password"],
        full_name=payload["full_name"],
        phone=payload["phone"],
        license_number=payload.get("license_number") or None,
        vehicle_number=payload.get("vehicle_number") or None,
    )
    try:
        driver = provision_driver(session, signup, admin_id=principal.id)
    except ProvisioningError as e:
        logger.error("Error creating driver: %s %s", e.message, e.errors)
        message = "; ".join(f"{k}: {v}" for k, v in e.errors.items()) if e.errors else e.message
        return _error(message, 400)

    return {"success": True, "driver": DriverRead.model_validate(driver).model_dump(mode="json")}


@router.post("/notify-driver")
def notify_driver_endpoint(
    payload: dict = Body(default={}),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: Session = Depends(get_session),
):
    _, denied = _authorize_admin(credentials, session, "Only admins can notify drivers")
    if denied is not None:
        return denied

    missing = [field for field in NOTICE_FIELDS if not payload.get(field)]
    if missing:
        return _error("Missing required fields: " + ", ".join(missing), 400)
    try:
        notice = AssignmentNotice(
            driver_id=uuid.UUID(str(payload["driver_id"])),
            complaint_id=uuid.UUID(str(payload["complaint_id"])),
            complaint_number=payload["complaint_number"],
            area=payload["area"],
            address=payload["address"],
        )
    except ValueError:
        return _error("driver_id and complaint_id must be UUIDs", 400)

    try:
        return notify_driver(session, notice)
    except NotificationError as e:
        logger.error("Error in notify-driver function: %s", e)
        return _error(str(e), 500)
