import pytest
from sqlmodel import select

from models.audit_log import AuditLog, AuditAction
from models.complaints import Complaint, ComplaintStatus
from models.driver import DriverStatus
from services.lifecycle import Actor, ComplaintLifecycle, TransitionError, allowed_transitions
from utils.validators import ValidationFailed

S = ComplaintStatus


@pytest.fixture
def lifecycle(session, notifications):
    return ComplaintLifecycle(session)


@pytest.fixture
def complaint(lifecycle, citizen):
    return lifecycle.create(citizen.id, area="Sector 5", address="12 Park Rd")


def test_transition_table():
    assert allowed_transitions(S.pending, Actor.admin) == [S.assigned, S.rejected]
    assert allowed_transitions(S.assigned, Actor.driver) == [S.in_progress, S.completed]
    assert allowed_transitions(S.in_progress, Actor.driver) == [S.completed]
    assert allowed_transitions(S.completed, Actor.driver) == []
    assert allowed_transitions(S.rejected, Actor.admin) == []


def test_create_forces_pending(complaint, citizen):
    assert complaint.status == S.pending
    assert complaint.user_id == citizen.id
    assert complaint.assigned_driver_id is None
    assert complaint.assigned_at is None and complaint.resolved_at is None
    assert complaint.complaint_number.startswith("WC-")


def test_complaint_numbers_are_unique(lifecycle, citizen):
    numbers = {lifecycle.create(citizen.id, area="A", address="B").complaint_number for _ in range(5)}
    assert len(numbers) == 5


def test_assign_sets_driver_and_notifies(lifecycle, complaint, driver, admin, notifications):
    lifecycle.assign(complaint, driver, admin.id, remarks="Urgent")

    assert complaint.status == S.assigned
    assert complaint.assigned_driver_id == driver.id
    assert complaint.assigned_at is not None
    assert complaint.admin_remarks == "Urgent"
    assert len(notifications) == 1
    assert notifications[0].complaint_number == complaint.complaint_number
    assert notifications[0].driver_id == driver.id
    assert notifications[0].area == "Sector 5"
    assert notifications[0].address == "12 Park Rd"


def test_driver_progression(lifecycle, complaint, driver, admin):
    lifecycle.assign(complaint, driver, admin.id)
    lifecycle.advance(complaint, driver, S.in_progress)
    assert complaint.resolved_at is None

    lifecycle.advance(complaint, driver, S.completed)
    assert complaint.status == S.completed
    assert complaint.resolved_at is not None


def test_driver_can_complete_straight_from_assigned(lifecycle, complaint, driver, admin):
    lifecycle.assign(complaint, driver, admin.id)
    lifecycle.advance(complaint, driver, S.completed)
    assert complaint.resolved_at is not None


def test_driver_cannot_leave_terminal_state(lifecycle, complaint, driver, admin):
    lifecycle.assign(complaint, driver, admin.id)
    lifecycle.advance(complaint, driver, S.completed)
    with pytest.raises(TransitionError):
        lifecycle.advance(complaint, driver, S.in_progress)


def test_driver_cannot_assign_or_skip_backwards(lifecycle, complaint, driver, admin):
    lifecycle.assign(complaint, driver, admin.id)
    lifecycle.advance(complaint, driver, S.in_progress)
    with pytest.raises(TransitionError):
        lifecycle.advance(complaint, driver, S.assigned)


def test_only_assigned_driver_may_advance(lifecycle, complaint, driver, admin, session):
    from services.provisioning import DriverSignup, provision_driver

    other = provision_driver(session, DriverSignup(
        email="other@example.com", password="secret123", full_name="Other", phone="8123456789",
    ))
    lifecycle.assign(complaint, driver, admin.id)
    with pytest.raises(TransitionError) as exc:
        lifecycle.advance(complaint, other, S.in_progress)
    assert exc.value.status_code == 403


def test_reject_needs_no_driver(lifecycle, complaint, admin, notifications):
    lifecycle.reject(complaint, admin.id, remarks="Duplicate")
    assert complaint.status == S.rejected
    assert complaint.assigned_driver_id is None
    assert notifications == []


def test_inactive_driver_cannot_be_assigned(lifecycle, complaint, driver, admin, session):
    driver.status = DriverStatus.inactive
    session.add(driver)
    session.commit()
    with pytest.raises(TransitionError):
        lifecycle.assign(complaint, driver, admin.id)


def test_override_allows_backward_moves(lifecycle, complaint, driver, admin):
    lifecycle.assign(complaint, driver, admin.id)
    lifecycle.advance(complaint, driver, S.completed)

    lifecycle.admin_override(complaint, S.pending, admin.id)
    assert complaint.status == S.pending
    assert complaint.resolved_at is None


def test_override_to_completed_stamps_resolved_at(lifecycle, complaint, driver, admin):
    lifecycle.admin_override(complaint, S.completed, admin.id, driver=driver)
    assert complaint.resolved_at is not None
    assert complaint.assigned_at is not None


def test_override_refuses_driver_status_without_driver(lifecycle, complaint, admin):
    with pytest.raises(TransitionError):
        lifecycle.admin_override(complaint, S.in_progress, admin.id)


def test_manage_reassignment_notifies_again(lifecycle, complaint, driver, admin, notifications):
    lifecycle.manage(complaint, S.assigned, admin.id, driver=driver)
    lifecycle.manage(complaint, S.assigned, admin.id, driver=driver, remarks="Please hurry")
    assert len(notifications) == 2
    assert complaint.admin_remarks == "Please hurry"


def test_hook_failure_keeps_assignment(session, complaint, driver, admin):
    def broken_hook(session, notice):
        raise RuntimeError("gateway down")

    ComplaintLifecycle(session, notify=broken_hook).assign(complaint, driver, admin.id)

    session.expire_all()
    stored = session.get(Complaint, complaint.id)
    assert stored.status == S.assigned
    failures = session.exec(
        select(AuditLog).where(AuditLog.action == AuditAction.NOTIFICATION_FAILED.value)
    ).all()
    assert len(failures) == 1


def test_storage_refuses_inconsistent_rows(session, complaint):
    complaint.status = S.completed
    session.add(complaint)
    with pytest.raises(ValidationFailed) as exc:
        session.commit()
    session.rollback()
    assert "assigned_driver_id" in exc.value.errors
    assert "resolved_at" in exc.value.errors


def test_listings(lifecycle, citizen, driver, admin, session):
    first = lifecycle.create(citizen.id, area="Sector 5", address="1 A St")
    second = lifecycle.create(citizen.id, area="Old Town", address="2 B St")
    third = lifecycle.create(citizen.id, area="sector 9", address="3 C St")

    assert [c.id for c in lifecycle.list_for_admin()] == [third.id, second.id, first.id]
    assert {c.id for c in lifecycle.list_for_admin(q="SECTOR")} == {first.id, third.id}
    assert [c.id for c in lifecycle.list_for_admin(q=second.complaint_number.lower())] == [second.id]

    lifecycle.assign(second, driver, admin.id)
    lifecycle.assign(first, driver, admin.id)
    assert [c.id for c in lifecycle.list_for_driver(driver.id)] == [first.id, second.id]

    lifecycle.advance(first, driver, S.completed)
    assert [c.id for c in lifecycle.list_for_driver(driver.id, active_only=True)] == [second.id]

    counts = lifecycle.status_counts()
    assert counts == {"pending": 1, "assigned": 1, "in_progress": 0, "completed": 1, "rejected": 0, "total": 3}


def test_search_treats_wildcards_literally(lifecycle, citizen):
    plain = lifecycle.create(citizen.id, area="Sector 5", address="1 A St")
    underscored = lifecycle.create(citizen.id, area="Ward_12", address="2 B St")
    percent = lifecycle.create(citizen.id, area="100% Recycling Yard", address="3 C St")

    assert [c.id for c in lifecycle.list_for_citizen(citizen.id, q="_")] == [underscored.id]
    assert [c.id for c in lifecycle.list_for_citizen(citizen.id, q="%")] == [percent.id]
    assert [c.id for c in lifecycle.list_for_admin(q="ward_")] == [underscored.id]
    assert plain.id in {c.id for c in lifecycle.list_for_admin(q="sector")}
