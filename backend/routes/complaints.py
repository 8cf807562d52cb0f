import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from core.database import get_session
from models.complaints import Complaint, ComplaintStatus
from schemas.complaints import ComplaintCreate, ComplaintRead, ComplaintStats
from services.lifecycle import ComplaintLifecycle
from utils.errors import validation_error, not_found
from utils.inflight import action_latch
from utils.security import Principal, get_current_principal
from utils.validators import ValidationFailed, complaint_errors

router = APIRouter(tags=["Complaints"])

OPEN_STATUSES = (ComplaintStatus.pending, ComplaintStatus.assigned, ComplaintStatus.in_progress)


@router.post("/", response_model=ComplaintRead, status_code=201)
def create_complaint(
    payload: ComplaintCreate,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_session),
):
    errors = complaint_errors(payload.area, payload.address)
    if errors:
        raise validation_error(errors, "Please fill in area and address.")

    with action_latch.hold("create_complaint", principal.id):
        try:
            return ComplaintLifecycle(session).create(principal.id, **payload.model_dump())
        except ValidationFailed as e:
            raise validation_error(e.errors)
        except SQLAlchemyError as e:
            raise HTTPException(status_code=500, detail=f"Database error: {e}")


@router.get("/", response_model=List[ComplaintRead])
def list_my_complaints(
    q: Optional[str] = Query(None, description="Search complaint number or area"),
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_session),
):
    """
    Complaints filed by the caller, newest first.
    """
    return ComplaintLifecycle(session).list_for_citizen(principal.id, q=q)


@router.get("/stats", response_model=ComplaintStats)
def my_stats(principal: Principal = Depends(get_current_principal), session: Session = Depends(get_session)):
    counts = ComplaintLifecycle(session).status_counts(user_id=principal.id)
    return ComplaintStats(counts={
        "total": counts["total"],
        "open": sum(counts[s.value] for s in OPEN_STATUSES),
        "completed": counts[ComplaintStatus.completed.value],
    })


@router.get("/{complaint_id}", response_model=ComplaintRead)
def get_complaint_by_id(
    complaint_id: uuid.UUID,
    principal: Principal = Depends(get_current_principal),
    session: Session = Depends(get_session),
):
    """
    Retrieve one of the caller's complaints by its ID.
    """
    complaint = session.get(Complaint, complaint_id)
    if not complaint or complaint.user_id != principal.id:
        raise not_found("Complaint")
    return complaint
