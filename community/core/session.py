"""
Request-scoped application session.

Handlers receive an AppSession through ``Depends`` instead of reaching for
global auth state. It carries the signed-in user (if any), the identity used
to scope likes, and whether the user is an admin. Listeners registered with
``subscribe`` are told about sign-in and sign-out.
"""
import logging
from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from community.modules.identity.services.identity import Identity, resolve_identity
from community.modules.roles.services.role import is_admin as user_is_admin

logger = logging.getLogger("app")

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

SessionListener = Callable[[str, "AppSession"], None]


class AppSession:
    def __init__(self, db: Session, token_store, user=None, auth_session_id: Optional[str] = None):
        self.db = db
        self.token_store = token_store
        self.user = user
        self.auth_session_id = auth_session_id
        self.is_admin = False
        self._listeners: List[SessionListener] = []
        self._identity: Optional[Identity] = None
        self._refresh_admin()

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def identity(self) -> Identity:
        """Resolved lazily so anonymous cookies are only issued when needed"""
        if self._identity is None:
            self._identity = resolve_identity(self.user, self.token_store)
        return self._identity

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register ``listener(event, session)``; returns the unsubscribe function"""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def set_user(self, user, auth_session_id: Optional[str] = None) -> None:
        """Switch the signed-in user and notify listeners"""
        self.user = user
        self.auth_session_id = auth_session_id if user is not None else None
        self._identity = None
        self._refresh_admin()
        event = SIGNED_IN if user is not None else SIGNED_OUT
        logger.debug(f"Session change: {event}")
        for listener in list(self._listeners):
            listener(event, self)

    def refresh_admin(self) -> bool:
        self._refresh_admin()
        return self.is_admin

    def _refresh_admin(self) -> None:
        self.is_admin = self.user is not None and user_is_admin(self.db, self.user.id)
