import uuid
import logging
from dataclasses import dataclass
from typing import Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from models.driver import Driver, DriverStatus
from models.complaints import Complaint, DRIVER_BOUND_STATUSES
from models.user import Role
from models.audit_log import AuditAction
from services.identity import IdentityStore, IdentityError
from utils.audit import log_action
from utils.validators import driver_errors, normalize_vehicle_number, ValidationFailed

logger = logging.getLogger(__name__)


class ProvisioningError(Exception):
    def __init__(self, message: str, status_code: int = 400, errors: Optional[Dict[str, str]] = None):
        self.message = message
        self.status_code = status_code
        self.errors = errors or {}
        super().__init__(message)


@dataclass
class DriverSignup:
    email: str
    password: str
    full_name: str
    phone: str
    license_number: Optional[str] = None
    vehicle_number: Optional[str] = None


def provision_driver(session: Session, data: DriverSignup, admin_id: Optional[uuid.UUID] = None) -> Driver:
    """
    Create the login identity, the driver record and the driver role as one unit.
    If the record or the role cannot be written, the identity is deleted again.
    """
    errors = driver_errors(
        full_name=data.full_name,
        phone=data.phone,
        email=data.email,
        license_number=data.license_number,
        vehicle_number=data.vehicle_number,
        password=data.password,
        creating_login=True,
    )
    if errors:
        raise ProvisioningError("Validation failed", errors=errors)

    store = IdentityStore(session)
    try:
        identity = store.create_identity(
            data.email, data.password, full_name=data.full_name, auto_confirm=True,
        )
    except IdentityError as e:
        raise ProvisioningError(e.message, status_code=e.status_code)
    identity_id = identity.id

    try:
        driver = Driver(
            full_name=data.full_name.strip(),
            phone=data.phone,
            email=identity.email,
            license_number=data.license_number or None,
            vehicle_number=normalize_vehicle_number(data.vehicle_number),
            user_id=identity_id,
            status=DriverStatus.active,
        )
        session.add(driver)
        session.flush()
        store.grant_role(identity_id, Role.driver, commit=False)
        session.commit()
    except (SQLAlchemyError, ValidationFailed) as e:
        session.rollback()
        logger.error("Driver provisioning failed for %s, removing identity: %s", data.email, e)
        store.delete_identity(identity_id)
        raise ProvisioningError(_describe(e))

    session.refresh(driver)
    log_action(
        session,
        performed_by=admin_id,
        action=AuditAction.ADDED_DRIVER,
        details=f"Driver {driver.full_name} ({driver.email}) provisioned",
    )
    logger.info("Driver created successfully: %s", driver.id)
    return driver


def update_driver(session: Session, driver: Driver, changes: dict, admin_id: uuid.UUID) -> Driver:
    merged = {
        "full_name": driver.full_name,
        "phone": driver.phone,
        "email": driver.email,
        "license_number": driver.license_number,
        "vehicle_number": driver.vehicle_number,
    }
    merged.update({k: v for k, v in changes.items() if k in merged})
    errors = driver_errors(**merged)
    if errors:
        raise ProvisioningError("Validation failed", errors=errors)

    for field, value in changes.items():
        if field in ("email", "license_number", "vehicle_number"):
            value = value or None
        setattr(driver, field, value)

    session.add(driver)
    try:
        session.commit()
    except (SQLAlchemyError, ValidationFailed) as e:
        session.rollback()
        raise ProvisioningError(_describe(e))
    session.refresh(driver)

    log_action(
        session,
        performed_by=admin_id,
        action=AuditAction.UPDATED_DRIVER,
        details=f"Driver {driver.full_name} updated ({', '.join(sorted(changes)) or 'no changes'})",
    )
    return driver


def remove_driver(session: Session, driver: Driver, admin_id: uuid.UUID) -> None:
    """Delete a driver and, when it has a login, its driver role."""
    bound = session.exec(
        select(Complaint).where(
            Complaint.assigned_driver_id == driver.id,
            Complaint.status.in_(list(DRIVER_BOUND_STATUSES)),
        )
    ).first()
    if bound:
        raise ProvisioningError(
            f"Driver still holds complaint {bound.complaint_number}; mark the driver inactive instead",
            status_code=409,
        )

    # Rejected or pending complaints may still point at the driver
    for complaint in session.exec(
        select(Complaint).where(Complaint.assigned_driver_id == driver.id)
    ).all():
        complaint.assigned_driver_id = None
        session.add(complaint)
    session.flush()

    name, user_id = driver.full_name, driver.user_id
    session.delete(driver)
    if user_id:
        IdentityStore(session).revoke_role(user_id, Role.driver, commit=False)
    session.commit()

    log_action(
        session,
        performed_by=admin_id,
        action=AuditAction.REMOVED_DRIVER,
        details=f"Driver '{name}' removed",
    )


def _describe(error: Exception) -> str:
    if isinstance(error, ValidationFailed):
        return str(error)
    orig = getattr(error, "orig", None)
    return str(orig or error)
