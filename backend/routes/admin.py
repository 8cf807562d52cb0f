import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select, col

from core.database import get_session
from models.audit_log import AuditLog, AuditAction
from models.bin import Bin
from models.complaints import Complaint, ComplaintStatus
from models.driver import Driver
from schemas.bins import BinCreate, BinUpdate, BinRead
from schemas.complaints import ComplaintManage, ComplaintRead, ComplaintStats
from schemas.drivers import DriverCreate, DriverUpdate, DriverRead
from services.lifecycle import ComplaintLifecycle, TransitionError
from services.provisioning import DriverSignup, ProvisioningError, provision_driver, update_driver, remove_driver
from utils.audit import log_action
from utils.errors import validation_error, not_found
from utils.inflight import action_latch
from utils.security import Principal, admin_required
from utils.validators import ValidationFailed, bin_errors

router = APIRouter(tags=["Admin"])


def _provisioning_http_error(e: ProvisioningError) -> HTTPException:
    if e.errors:
        return validation_error(e.errors, e.message)
    return HTTPException(status_code=e.status_code, detail=e.message)


def _get_or_404(session: Session, model, item_id: uuid.UUID, label: str):
    item = session.get(model, item_id)
    if not item:
        raise not_found(label)
    return item


# ---------------- complaints ----------------

@router.get("/complaints/", response_model=List[ComplaintRead])
def list_complaints(
    q: Optional[str] = Query(None, description="Search complaint number or area"),
    status: Optional[ComplaintStatus] = Query(None),
    session: Session = Depends(get_session),
    admin: Principal = Depends(admin_required),
):
    return ComplaintLifecycle(session).list_for_admin(q=q, status=status)


@router.get("/complaints/stats", response_model=ComplaintStats)
def complaint_stats(session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    return ComplaintStats(counts=ComplaintLifecycle(session).status_counts())


@router.get("/complaints/{complaint_id}", response_model=ComplaintRead)
def view_complaint(complaint_id: uuid.UUID, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    return _get_or_404(session, Complaint, complaint_id, "Complaint")


@router.patch("/complaints/{complaint_id}/manage", response_model=ComplaintRead)
def manage_complaint(
    complaint_id: uuid.UUID,
    payload: ComplaintManage,
    session: Session = Depends(get_session),
    admin: Principal = Depends(admin_required),
):
    complaint = _get_or_404(session, Complaint, complaint_id, "Complaint")
    driver = None
    if payload.driver_id is not None:
        driver = _get_or_404(session, Driver, payload.driver_id, "Driver")

    with action_latch.hold("manage_complaint", complaint_id):
        try:
            return ComplaintLifecycle(session).manage(
                complaint, payload.status, admin.id, driver=driver, remarks=payload.remarks,
            )
        except TransitionError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except ValidationFailed as e:
            raise validation_error(e.errors)


# ---------------- drivers ----------------

@router.get("/drivers/", response_model=List[DriverRead])
def list_drivers(session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    return session.exec(select(Driver).order_by(col(Driver.created_at).desc())).all()


@router.post("/drivers/", response_model=DriverRead, status_code=201)
def add_driver(payload: DriverCreate, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    with action_latch.hold("add_driver", admin.id):
        try:
            return provision_driver(
                session,
                DriverSignup(**payload.model_dump()),
                admin_id=admin.id,
            )
        except ProvisioningError as e:
            raise _provisioning_http_error(e)


@router.get("/drivers/{driver_id}", response_model=DriverRead)
def view_driver(driver_id: uuid.UUID, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    return _get_or_404(session, Driver, driver_id, "Driver")


@router.patch("/drivers/{driver_id}", response_model=DriverRead)
def edit_driver(
    driver_id: uuid.UUID,
    payload: DriverUpdate,
    session: Session = Depends(get_session),
    admin: Principal = Depends(admin_required),
):
    driver = _get_or_404(session, Driver, driver_id, "Driver")
    with action_latch.hold("edit_driver", driver_id):
        try:
            return update_driver(session, driver, payload.model_dump(exclude_unset=True), admin.id)
        except ProvisioningError as e:
            raise _provisioning_http_error(e)


@router.delete("/drivers/{driver_id}")
def delete_driver(driver_id: uuid.UUID, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    driver = _get_or_404(session, Driver, driver_id, "Driver")
    name = driver.full_name
    with action_latch.hold("delete_driver", driver_id):
        try:
            remove_driver(session, driver, admin.id)
        except ProvisioningError as e:
            raise _provisioning_http_error(e)
    return {"detail": f"Driver '{name}' removed"}


# ---------------- bins ----------------

@router.get("/bins/", response_model=List[BinRead])
def list_bins(session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    return session.exec(select(Bin).order_by(col(Bin.created_at).desc())).all()


@router.post("/bins/", response_model=BinRead, status_code=201)
def add_bin(payload: BinCreate, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    errors = bin_errors(payload.location, payload.area)
    if errors:
        raise validation_error(errors)

    bin_ = Bin(**payload.model_dump())
    with action_latch.hold("add_bin", admin.id):
        try:
            session.add(bin_)
            session.commit()
            session.refresh(bin_)
        except (SQLAlchemyError, ValidationFailed) as e:
            session.rollback()
            raise HTTPException(status_code=400, detail=f"Database error: {e}")

    log_action(session, performed_by=admin.id, action=AuditAction.ADDED_BIN, details=f"Bin at {bin_.location}, {bin_.area}")
    return bin_


@router.patch("/bins/{bin_id}", response_model=BinRead)
def edit_bin(
    bin_id: uuid.UUID,
    payload: BinUpdate,
    session: Session = Depends(get_session),
    admin: Principal = Depends(admin_required),
):
    bin_ = _get_or_404(session, Bin, bin_id, "Bin")
    changes = payload.model_dump(exclude_unset=True)
    errors = bin_errors(changes.get("location", bin_.location), changes.get("area", bin_.area))
    if errors:
        raise validation_error(errors)

    for field, value in changes.items():
        setattr(bin_, field, value)
    with action_latch.hold("edit_bin", bin_id):
        try:
            session.add(bin_)
            session.commit()
            session.refresh(bin_)
        except (SQLAlchemyError, ValidationFailed) as e:
            session.rollback()
            raise HTTPException(status_code=400, detail=f"Database error: {e}")

    log_action(session, performed_by=admin.id, action=AuditAction.UPDATED_BIN, details=f"Bin {bin_.id} updated")
    return bin_


@router.delete("/bins/{bin_id}")
def delete_bin(bin_id: uuid.UUID, session: Session = Depends(get_session), admin: Principal = Depends(admin_required)):
    bin_ = _get_or_404(session, Bin, bin_id, "Bin")
    with action_latch.hold("delete_bin", bin_id):
        try:
            session.delete(bin_)
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            raise HTTPException(status_code=500, detail=f"Database error: {e}")

    log_action(session, performed_by=admin.id, action=AuditAction.REMOVED_BIN, details=f"Bin {bin_id} removed")
    return {"detail": f"Bin {bin_id} removed"}


# ---------------- audit ----------------

@router.get("/audit-logs/", response_model=List[AuditLog])
def view_audit_logs(
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    session: Session = Depends(get_session),
    admin: Principal = Depends(admin_required),
):
    statement = select(AuditLog)
    if action:
        statement = statement.where(AuditLog.action == action)
    return session.exec(statement.order_by(col(AuditLog.created_at).desc()).limit(limit)).all()
