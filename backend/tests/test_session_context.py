import uuid

from core.session_context import (
    AccessGate,
    GateOutcome,
    SessionContext,
    operating_role,
)
from models.user import Identity, Role


def _identity():
    return Identity(id=uuid.uuid4(), email="someone@example.com", password_hash="x")


class TestSessionContext:
    def test_notifies_subscribers_on_change(self):
        context = SessionContext()
        seen = []
        context.subscribe(lambda ctx: seen.append(ctx.roles))

        context.update(_identity(), [Role.driver])
        context.clear()

        assert seen == [frozenset({Role.driver}), frozenset()]

    def test_unsubscribe_stops_notifications(self):
        context = SessionContext()
        seen = []
        unsubscribe = context.subscribe(lambda ctx: seen.append(ctx))
        unsubscribe()
        context.update(_identity())
        assert seen == []

    def test_operating_role_prefers_admin(self):
        assert operating_role([Role.driver, Role.admin]) == Role.admin
        assert operating_role([Role.driver]) == Role.driver
        assert operating_role([]) is None


class TestAccessGate:
    def test_anonymous_goes_to_role_login(self):
        gate = AccessGate(SessionContext(), Role.admin, sign_out=lambda ctx: None)
        assert gate.decision.outcome == GateOutcome.login
        assert gate.decision.redirect_to == "/admin/login"

        citizen_gate = AccessGate(SessionContext(), None, sign_out=lambda ctx: None)
        assert citizen_gate.decision.redirect_to == "/user/login"

    def test_rechecks_after_sign_in(self):
        signed_out = []
        context = SessionContext()
        gate = AccessGate(context, Role.admin, sign_out=lambda ctx: signed_out.append(ctx.identity))

        context.update(_identity(), [Role.admin], session_id=uuid.uuid4())

        assert gate.decision.allowed
        assert signed_out == []

    def test_missing_role_forces_sign_out(self):
        signed_out = []

        def sign_out(ctx):
            signed_out.append(ctx.session_id)
            ctx.clear()

        context = SessionContext()
        gate = AccessGate(context, Role.admin, sign_out=sign_out)
        session_id = uuid.uuid4()
        context.update(_identity(), [Role.driver], session_id=session_id)

        assert gate.decision.outcome == GateOutcome.denied
        assert gate.decision.redirect_to == "/"
        assert gate.decision.notice == "access_denied"
        assert signed_out == [session_id]
        assert not context.authenticated

    def test_denied_at_construction_signs_out_too(self):
        signed_out = []
        context = SessionContext(_identity(), [], session_id=uuid.uuid4())
        gate = AccessGate(context, Role.driver, sign_out=lambda ctx: signed_out.append(True))
        assert gate.decision.outcome == GateOutcome.denied
        assert signed_out == [True]

    def test_role_revoked_later_is_caught(self):
        signed_out = []
        identity = _identity()
        context = SessionContext()
        gate = AccessGate(context, Role.driver, sign_out=lambda ctx: signed_out.append(True))

        context.update(identity, [Role.driver])
        assert gate.decision.allowed

        context.update(identity, [])
        assert gate.decision.outcome == GateOutcome.denied
        assert signed_out == [True]

    def test_closed_gate_ignores_changes(self):
        context = SessionContext()
        gate = AccessGate(context, Role.admin, sign_out=lambda ctx: None)
        gate.close()
        context.update(_identity(), [Role.admin])
        assert gate.decision.outcome == GateOutcome.login
