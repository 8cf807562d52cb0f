import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session, select

from core.database import get_session
from models.complaints import Complaint
from models.driver import Driver
from schemas.complaints import ComplaintRead, ComplaintStatusUpdate, ComplaintStats
from schemas.drivers import DriverRead
from services.lifecycle import ComplaintLifecycle, TransitionError
from utils.errors import validation_error, not_found
from utils.inflight import action_latch
from utils.security import Principal, driver_required
from utils.validators import ValidationFailed

router = APIRouter(tags=["Driver"])


def current_driver(
    principal: Principal = Depends(driver_required),
    session: Session = Depends(get_session),
) -> Driver:
    driver = session.exec(select(Driver).where(Driver.user_id == principal.id)).first()
    if not driver:
        raise not_found("Driver profile")
    return driver


@router.get("/profile", response_model=DriverRead)
def get_profile(driver: Driver = Depends(current_driver)):
    return driver


@router.get("/complaints", response_model=List[ComplaintRead])
def get_assigned_complaints(
    active_only: bool = Query(False, description="Hide completed and rejected complaints"),
    driver: Driver = Depends(current_driver),
    session: Session = Depends(get_session),
):
    return ComplaintLifecycle(session).list_for_driver(driver.id, active_only=active_only)


@router.get("/complaints/stats", response_model=ComplaintStats)
def get_stats(driver: Driver = Depends(current_driver), session: Session = Depends(get_session)):
    counts = ComplaintLifecycle(session).status_counts(assigned_driver_id=driver.id)
    return ComplaintStats(counts=counts)


@router.patch("/complaints/{complaint_id}/status", response_model=ComplaintRead)
def update_status(
    complaint_id: uuid.UUID,
    payload: ComplaintStatusUpdate,
    driver: Driver = Depends(current_driver),
    session: Session = Depends(get_session),
):
    complaint = session.get(Complaint, complaint_id)
    # Complaints of other drivers are reported as missing
    if not complaint or complaint.assigned_driver_id != driver.id:
        raise not_found("Complaint")

    with action_latch.hold("update_status", complaint_id):
        try:
            return ComplaintLifecycle(session).advance(complaint, driver, payload.status)
        except TransitionError as e:
            raise HTTPException(status_code=e.status_code, detail=e.message)
        except ValidationFailed as e:
            raise validation_error(e.errors)
