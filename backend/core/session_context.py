"""
Explicit session state for role-gated views.

A ``SessionContext`` holds who is signed in and which roles they hold. Views
receive it as an argument; nothing reads session state from module globals.
Listeners subscribe to it and are called whenever the identity or roles
change, which is how an ``AccessGate`` re-checks access after an
asynchronous sign-in or a role change.
"""
import enum
import logging
from dataclasses import dataclass
from typing import Callable, FrozenSet, Iterable, List, Optional

from models.user import Identity, Role

logger = logging.getLogger(__name__)

HOME_PATH = "/"
ACCESS_DENIED_NOTICE = "access_denied"

LOGIN_PATHS = {
    Role.admin: "/admin/login",
    Role.driver: "/driver/login",
    None: "/user/login",
}


def operating_role(roles: Iterable[Role]) -> Optional[Role]:
    """Admin and driver are exclusive operating contexts; admin wins."""
    roles = set(roles)
    if Role.admin in roles:
        return Role.admin
    if Role.driver in roles:
        return Role.driver
    return None


Listener = Callable[["SessionContext"], None]


class SessionContext:
    def __init__(self, identity: Optional[Identity] = None, roles: Iterable[Role] = (), session_id=None):
        self._identity = identity
        self._roles: FrozenSet[Role] = frozenset(roles)
        self.session_id = session_id
        self._listeners: List[Listener] = []

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def roles(self) -> FrozenSet[Role]:
        return self._roles

    @property
    def authenticated(self) -> bool:
        return self._identity is not None

    def has_role(self, role: Role) -> bool:
        return role in self._roles

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, identity: Optional[Identity], roles: Iterable[Role] = (), session_id=None):
        self._identity = identity
        self._roles = frozenset(roles)
        self.session_id = session_id
        self._notify()

    def clear(self):
        self.update(None, (), None)

    def _notify(self):
        for listener in list(self._listeners):
            listener(self)


class GateOutcome(str, enum.Enum):
    allow = "allow"
    login = "login"
    denied = "denied"


@dataclass(frozen=True)
class GateDecision:
    outcome: GateOutcome
    redirect_to: Optional[str] = None
    notice: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.outcome == GateOutcome.allow


class AccessGate:
    """
    Guards a view that needs ``required_role`` (``None`` means any signed-in
    identity). A signed-in identity without the role is signed out through
    ``sign_out`` before being sent home, so it cannot linger on the view.
    """

    def __init__(
        self,
        context: SessionContext,
        required_role: Optional[Role],
        sign_out: Callable[[SessionContext], None],
    ):
        self.context = context
        self.required_role = required_role
        self.sign_out = sign_out
        self._signing_out = False
        self.decision = self.evaluate()
        self._unsubscribe = context.subscribe(self._on_change)
        if self.decision.outcome == GateOutcome.denied:
            self._on_change(context)

    def evaluate(self) -> GateDecision:
        if not self.context.authenticated:
            return GateDecision(GateOutcome.login, redirect_to=LOGIN_PATHS[self.required_role])
        if self.required_role is not None and not self.context.has_role(self.required_role):
            return GateDecision(GateOutcome.denied, redirect_to=HOME_PATH, notice=ACCESS_DENIED_NOTICE)
        return GateDecision(GateOutcome.allow)

    def _on_change(self, context: SessionContext):
        # sign_out usually clears the context; that change must not replace the denial
        if self._signing_out:
            return
        decision = self.evaluate()
        self.decision = decision
        if decision.outcome == GateOutcome.denied:
            logger.warning(
                "Identity %s lacks role %s; forcing sign-out",
                context.identity.id, self.required_role.value,
            )
            self._signing_out = True
            try:
                self.sign_out(context)
            finally:
                self._signing_out = False

    def close(self):
        self._unsubscribe()
