"""
Route guard for protected views.

While the session is loading no decision is made and a pending
indicator is shown. Once settled, access is granted only to an
authenticated session; anything else is sent to the login entry point.
The guard re-evaluates on every session transition, so a session that
expires while a view is open still triggers the redirect.
"""

import logging
from enum import Enum
from functools import wraps
from typing import Callable, Optional

import config
from client.session import Session, SessionSnapshot

logger = logging.getLogger(__name__)

PENDING_INDICATOR = "Loading..."


class GuardDecision(Enum):
    PENDING = "pending"
    GRANTED = "granted"
    REDIRECT = "redirect"


def decide(snapshot: SessionSnapshot) -> GuardDecision:
    if snapshot.loading:
        return GuardDecision.PENDING
    if snapshot.is_authenticated:
        return GuardDecision.GRANTED
    return GuardDecision.REDIRECT


class RouteGuard:
    """Watches a Session and navigates away when access is denied."""

    def __init__(self, session: Session, navigate: Callable[[str], None],
                 login_path: str = config.LOGIN_PATH):
        self.session = session
        self.navigate = navigate
        self.login_path = login_path
        self.decision = decide(session.snapshot())
        # One navigation per signed-out spell; reset when access is granted
        self._redirected = False
        self._unsubscribe = session.subscribe(self._on_change)

    def _redirect(self) -> None:
        if self._redirected:
            return
        self._redirected = True
        logger.info(f"Session not authenticated, redirecting to {self.login_path}")
        self.navigate(self.login_path)

    def _settle(self, decision: GuardDecision) -> None:
        self.decision = decision
        if decision is GuardDecision.REDIRECT:
            self._redirect()
        elif decision is GuardDecision.GRANTED:
            self._redirected = False

    def _on_change(self, snapshot: SessionSnapshot) -> None:
        self._settle(decide(snapshot))

    def render(self, view: Callable[[], object], pending: str = PENDING_INDICATOR):
        """
        Run `view` if access is granted.

        Returns the pending indicator while loading, the view's result when
        granted, or None after redirecting.
        """
        self._settle(decide(self.session.snapshot()))
        if self.decision is GuardDecision.PENDING:
            return pending
        if self.decision is GuardDecision.REDIRECT:
            return None
        return view()

    def close(self) -> None:
        self._unsubscribe()


def protected(guard: RouteGuard, pending: Optional[str] = PENDING_INDICATOR):
    """Decorator form of RouteGuard.render for view functions."""
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            return guard.render(lambda: view(*args, **kwargs), pending=pending)
        return wrapper
    return decorator
