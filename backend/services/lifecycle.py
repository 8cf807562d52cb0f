"""
Complaint lifecycle.

Complaints start ``pending`` and end ``completed`` or ``rejected``. Admins
assign or reject pending complaints; the assigned driver moves them through
``in_progress`` to ``completed``. Anything else an admin asks for goes through
``admin_override``, the one permissive path, which still keeps the stored row
consistent (driver-bearing statuses need a driver, completed needs
``resolved_at``).
"""
import uuid
import enum
import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select, col

from models.complaints import Complaint, ComplaintStatus, DRIVER_BOUND_STATUSES, TERMINAL_STATUSES
from models.driver import Driver, DriverStatus
from models.audit_log import AuditAction
from services.notifications import AssignmentNotice, NotificationHook, notify_driver, fire_and_forget
from utils.audit import log_action

logger = logging.getLogger(__name__)


class Actor(str, enum.Enum):
    admin = "admin"
    driver = "driver"


S = ComplaintStatus

TRANSITIONS: Dict[tuple, Actor] = {
    (S.pending, S.assigned): Actor.admin,
    (S.pending, S.rejected): Actor.admin,
    (S.assigned, S.in_progress): Actor.driver,
    (S.assigned, S.completed): Actor.driver,
    (S.in_progress, S.completed): Actor.driver,
}


class TransitionError(Exception):
    def __init__(self, message: str, status_code: int = 400):
        self.message = message
        self.status_code = status_code
        super().__init__(message)


def allowed_transitions(current: ComplaintStatus, actor: Actor) -> List[ComplaintStatus]:
    return [to for (frm, to), who in TRANSITIONS.items() if frm == current and who == actor]


class ComplaintLifecycle:
    def __init__(self, session: Session, notify: Optional[NotificationHook] = None):
        self.session = session
        self.notify = notify or notify_driver

    # ---- creation ----

    def create(
        self,
        owner_id: uuid.UUID,
        area: str,
        address: str,
        locality: Optional[str] = None,
        landmark: Optional[str] = None,
        description: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Complaint:
        complaint = Complaint(
            user_id=owner_id,
            area=area.strip(),
            address=address.strip(),
            locality=locality or None,
            landmark=landmark or None,
            description=description or None,
            notes=notes or None,
            status=ComplaintStatus.pending,
        )
        self._save(complaint)
        log_action(
            self.session,
            performed_by=owner_id,
            action=AuditAction.CREATED_COMPLAINT,
            details=f"Complaint {complaint.complaint_number} filed for {complaint.area}",
        )
        return complaint

    # ---- admin ----

    def assign(self, complaint: Complaint, driver: Driver, admin_id: uuid.UUID, remarks: Optional[str] = None) -> Complaint:
        self._require_transition(complaint, S.assigned, Actor.admin)
        self._attach_driver(complaint, driver)
        complaint.status = S.assigned
        complaint.admin_remarks = remarks
        self._save(complaint)

        log_action(
            self.session,
            performed_by=admin_id,
            action=AuditAction.ASSIGNED_COMPLAINT,
            details=f"Complaint {complaint.complaint_number} assigned to driver {driver.full_name}",
        )
        self._notify_assignment(complaint, admin_id)
        return complaint

    def reject(self, complaint: Complaint, admin_id: uuid.UUID, remarks: Optional[str] = None) -> Complaint:
        self._require_transition(complaint, S.rejected, Actor.admin)
        complaint.status = S.rejected
        complaint.admin_remarks = remarks
        self._save(complaint)

        log_action(
            self.session,
            performed_by=admin_id,
            action=AuditAction.REJECTED_COMPLAINT,
            details=f"Complaint {complaint.complaint_number} rejected",
        )
        return complaint

    def admin_override(
        self,
        complaint: Complaint,
        status: ComplaintStatus,
        admin_id: uuid.UUID,
        driver: Optional[Driver] = None,
        remarks: Optional[str] = None,
    ) -> Complaint:
        """Set any status, including backward moves. The only unrestricted path."""
        previous = ComplaintStatus(complaint.status)
        if driver is not None:
            self._attach_driver(complaint, driver)
        if status in DRIVER_BOUND_STATUSES and complaint.assigned_driver_id is None:
            raise TransitionError(f"Select a driver before setting status '{status.value}'")

        complaint.status = status
        if remarks is not None:
            complaint.admin_remarks = remarks
        if status == S.completed:
            complaint.resolved_at = complaint.resolved_at or datetime.utcnow()
        else:
            complaint.resolved_at = None
        self._save(complaint)

        log_action(
            self.session,
            performed_by=admin_id,
            action=AuditAction.OVERRODE_COMPLAINT_STATUS,
            details=f"Complaint {complaint.complaint_number}: {previous.value} -> {status.value}",
        )
        if status == S.assigned:
            self._notify_assignment(complaint, admin_id)
        return complaint

    def manage(
        self,
        complaint: Complaint,
        status: ComplaintStatus,
        admin_id: uuid.UUID,
        driver: Optional[Driver] = None,
        remarks: Optional[str] = None,
    ) -> Complaint:
        """The admin "Manage" action: regular transitions first, the override otherwise."""
        current = ComplaintStatus(complaint.status)
        if current == S.pending and status == S.assigned and driver is not None:
            return self.assign(complaint, driver, admin_id, remarks)
        if current == S.pending and status == S.rejected and driver is None:
            return self.reject(complaint, admin_id, remarks)
        return self.admin_override(complaint, status, admin_id, driver=driver, remarks=remarks)

    # ---- driver ----

    def advance(self, complaint: Complaint, driver: Driver, status: ComplaintStatus) -> Complaint:
        if complaint.assigned_driver_id != driver.id:
            raise TransitionError("This complaint is not assigned to you", status_code=403)
        self._require_transition(complaint, status, Actor.driver)

        previous = ComplaintStatus(complaint.status)
        complaint.status = status
        if status == S.completed:
            complaint.resolved_at = datetime.utcnow()
        self._save(complaint)

        log_action(
            self.session,
            performed_by=driver.user_id,
            action=AuditAction.UPDATED_COMPLAINT_STATUS,
            details=f"Complaint {complaint.complaint_number}: {previous.value} -> {status.value}",
        )
        return complaint

    # ---- queries ----

    def list_for_admin(self, q: Optional[str] = None, status: Optional[ComplaintStatus] = None) -> List[Complaint]:
        statement = select(Complaint)
        if status:
            statement = statement.where(Complaint.status == status)
        statement = self._search(statement, q)
        return self.session.exec(statement.order_by(col(Complaint.created_at).desc())).all()

    def list_for_driver(self, driver_id: uuid.UUID, active_only: bool = False) -> List[Complaint]:
        statement = select(Complaint).where(Complaint.assigned_driver_id == driver_id)
        if active_only:
            statement = statement.where(col(Complaint.status).not_in(list(TERMINAL_STATUSES)))
        return self.session.exec(statement.order_by(col(Complaint.assigned_at).desc())).all()

    def list_for_citizen(self, owner_id: uuid.UUID, q: Optional[str] = None) -> List[Complaint]:
        statement = self._search(select(Complaint).where(Complaint.user_id == owner_id), q)
        return self.session.exec(statement.order_by(col(Complaint.created_at).desc())).all()

    def status_counts(self, **filters) -> Dict[str, int]:
        statement = select(Complaint.status, func.count()).group_by(Complaint.status)
        for field, value in filters.items():
            statement = statement.where(getattr(Complaint, field) == value)
        counts = {s.value: 0 for s in ComplaintStatus}
        for status, count in self.session.exec(statement).all():
            counts[ComplaintStatus(status).value] = count
        counts["total"] = sum(counts.values())
        return counts

    # ---- helpers ----

    @staticmethod
    def _search(statement, q: Optional[str]):
        if q and q.strip():
            # Literal substring match; % and _ in the query are not wildcards
            needle = q.strip().lower()
            statement = statement.where(
                or_(
                    func.lower(col(Complaint.complaint_number)).contains(needle, autoescape=True),
                    func.lower(col(Complaint.area)).contains(needle, autoescape=True),
                )
            )
        return statement

    @staticmethod
    def _require_transition(complaint: Complaint, target: ComplaintStatus, actor: Actor):
        current = ComplaintStatus(complaint.status)
        if TRANSITIONS.get((current, target)) != actor:
            raise TransitionError(
                f"Cannot move complaint from '{current.value}' to '{target.value}' as {actor.value}"
            )

    @staticmethod
    def _attach_driver(complaint: Complaint, driver: Driver):
        if DriverStatus(driver.status) != DriverStatus.active:
            raise TransitionError(f"Driver {driver.full_name} is inactive")
        if complaint.assigned_driver_id != driver.id or complaint.assigned_at is None:
            complaint.assigned_driver_id = driver.id
            complaint.assigned_at = datetime.utcnow()

    def _save(self, complaint: Complaint):
        complaint.updated_at = datetime.utcnow()
        self.session.add(complaint)
        try:
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise
        self.session.refresh(complaint)

    def _notify_assignment(self, complaint: Complaint, admin_id: uuid.UUID):
        notice = AssignmentNotice(
            driver_id=complaint.assigned_driver_id,
            complaint_id=complaint.id,
            complaint_number=complaint.complaint_number,
            area=complaint.area,
            address=complaint.address,
        )
        fire_and_forget(self.session, self.notify, notice, performed_by=admin_id)
