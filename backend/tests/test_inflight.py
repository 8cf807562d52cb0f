import pytest
from fastapi import HTTPException

from utils.inflight import ActionLatch


def test_second_acquire_is_refused_until_release():
    latch = ActionLatch()
    assert latch.acquire("save")
    assert not latch.acquire("save")
    assert latch.acquire("other")

    latch.release("save")
    assert not latch.is_busy("save")
    assert latch.acquire("save")


def test_hold_refuses_duplicate_with_conflict():
    latch = ActionLatch()
    with latch.hold("manage", 1):
        with pytest.raises(HTTPException) as exc:
            with latch.hold("manage", 1):
                pass
        assert exc.value.status_code == 409
        assert latch.is_busy(("manage", 1))
    assert not latch.is_busy(("manage", 1))


def test_hold_clears_after_failure():
    latch = ActionLatch()
    with pytest.raises(RuntimeError):
        with latch.hold("provision"):
            raise RuntimeError("boom")
    assert not latch.is_busy(("provision",))


def test_busy_action_returns_conflict(client, citizen_headers, citizen):
    from utils.inflight import action_latch

    assert action_latch.acquire(("create_complaint", citizen.id))
    try:
        response = client.post(
            "/complaints/", json={"area": "Sector 5", "address": "12 Park Rd"}, headers=citizen_headers,
        )
    finally:
        action_latch.release(("create_complaint", citizen.id))
    assert response.status_code == 409
