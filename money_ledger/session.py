"""
Session Tracker

Follows the backend's auth session and exposes the current identity.

Redundant notifications (token refreshes, duplicate events carrying the same
user) do not reach listeners: the tracker compares identities before
reacting so downstream loads are not re-triggered.
"""

from typing import Awaitable, Callable, Optional

import structlog

from money_ledger.audit.logger import AuditLogger
from money_ledger.models.audit import AuditEventBuilder
from money_ledger.models.ledger import AuthUser, Session
from money_ledger.services.storage.interface import SessionProvider, Unsubscribe


logger = structlog.get_logger(__name__)

UserListener = Callable[[Optional[AuthUser]], Awaitable[None]]


class SessionTracker:
    """
    Tracks the current authenticated user.

    A missing user is a valid state meaning "unauthenticated", not an error.
    """

    def __init__(
        self,
        provider: SessionProvider,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._provider = provider
        self._audit_logger = audit_logger or AuditLogger()
        self._current_user: Optional[AuthUser] = None
        self._listeners: list[UserListener] = []
        self._unsubscribe: Optional[Unsubscribe] = None
        self._started = False

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._current_user

    @property
    def started(self) -> bool:
        return self._started

    def add_listener(self, listener: UserListener) -> Callable[[], None]:
        """Register `listener` for identity changes."""
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def start(self) -> Optional[AuthUser]:
        """
        Read the current session once, then follow session changes.

        Returns the user found at start (or None). Calling start twice
        is a no-op.
        """
        if self._started:
            return self._current_user
        self._started = True
        self._unsubscribe = self._provider.on_session_change(self._handle_session)
        session = await self._provider.get_current_session()
        await self._handle_session(session)
        return self._current_user

    def stop(self) -> None:
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
        self._started = False

    async def _handle_session(self, session: Session) -> None:
        user = session.user
        previous = self._current_user
        previous_id = previous.id if previous else None
        new_id = user.id if user else None

        if previous_id == new_id:
            # Same identity; keep profile fields (e.g. email) fresh quietly
            self._current_user = user
            logger.debug("session_unchanged", user_id=new_id)
            return

        self._current_user = user
        self._audit_logger.log(
            AuditEventBuilder.session_changed(new_id, previous_id)
        )
        for listener in list(self._listeners):
            await listener(user)
