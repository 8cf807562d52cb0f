"""
Driver notification hook, fired when a complaint is assigned.

``notify_driver`` is the hook itself and reports failure by raising
``NotificationError``. ``fire_and_forget`` is what the lifecycle engine calls:
it never raises, it only logs and records the outcome.
"""
import uuid
import logging
from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Callable, Optional

import httpx
import requests
from sqlmodel import Session

from core.config import settings
from models.driver import Driver
from models.audit_log import AuditAction
from services.sms import send_sms
from utils.audit import log_action

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    pass


@dataclass
class AssignmentNotice:
    driver_id: uuid.UUID
    complaint_id: uuid.UUID
    complaint_number: str
    area: str
    address: str


NotificationHook = Callable[[Session, AssignmentNotice], dict]


def notify_driver(session: Session, notice: AssignmentNotice) -> dict:
    logger.info("Notifying driver: %s", asdict(notice))

    driver = session.get(Driver, notice.driver_id)
    if not driver:
        raise NotificationError("Driver not found")

    notification = {
        "driver_name": driver.full_name,
        "driver_email": driver.email,
        "driver_phone": driver.phone,
        "complaint_number": notice.complaint_number,
        "area": notice.area,
        "address": notice.address,
        "assigned_at": datetime.utcnow().isoformat(),
    }

    if settings.SMS_ENABLED:
        message = (
            f"New complaint {notice.complaint_number} assigned to you: "
            f"{notice.address}, {notice.area}"
        )
        try:
            result = send_sms(driver.phone, message)
        except requests.RequestException as e:
            raise NotificationError(f"SMS delivery failed: {e}") from e
        if result.get("status") == "failed":
            raise NotificationError(f"SMS delivery failed: {result.get('error')}")

    if settings.NOTIFY_WEBHOOK_URL:
        try:
            with httpx.Client(timeout=settings.NOTIFY_TIMEOUT_SECONDS) as client:
                response = client.post(settings.NOTIFY_WEBHOOK_URL, json=notification)
                response.raise_for_status()
        except httpx.HTTPError as e:
            raise NotificationError(f"Webhook delivery failed: {e}") from e

    logger.info(
        "Assignment notification for %s (%s): complaint %s at %s, %s",
        driver.full_name, driver.email, notice.complaint_number, notice.area, notice.address,
    )
    return {
        "success": True,
        "message": f"Driver {driver.full_name} has been notified",
        "notification": notification,
    }


def fire_and_forget(
    session: Session,
    hook: NotificationHook,
    notice: AssignmentNotice,
    performed_by: Optional[uuid.UUID] = None,
) -> bool:
    """Run the hook once. Returns whether it succeeded; failures are only logged."""
    try:
        hook(session, notice)
    except Exception as e:  # any hook failure is non-blocking
        logger.warning("Failed to notify driver %s for %s: %s", notice.driver_id, notice.complaint_number, e)
        session.rollback()
        log_action(
            session,
            performed_by=performed_by,
            action=AuditAction.NOTIFICATION_FAILED,
            details=f"Complaint {notice.complaint_number} -> driver {notice.driver_id} | Error: {e}",
        )
        return False

    log_action(
        session,
        performed_by=performed_by,
        action=AuditAction.NOTIFICATION_SENT,
        details=f"Complaint {notice.complaint_number} -> driver {notice.driver_id}",
    )
    return True
