"""
Session — the client's authentication state machine.

States are explicit variants:

    Unauthenticated ──login/register──▶ Loading(previous) ──ok──▶ Authenticated
          ▲                                   │
          └───────────── failure ◀────────────┘ (back to `previous`)

    any state ──logout / rejected token──▶ Unauthenticated

The Session is the only writer of its state and (together with the API
client's 401 handler) the only writer of the token store. Collaborators
are injected so each test can build an isolated instance.

Every operation takes a sequence number. A login/register/initialize
whose result arrives after a newer operation started (e.g. the user
logged out meanwhile) is dropped: no token write, no state write.
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Union

from client.api_client import ApiError
from client.token_store import TokenStore

logger = logging.getLogger(__name__)

NETWORK_ERROR = "Network error"
SUPERSEDED = "Superseded by a newer session operation"
SAVE_FAILED = "Could not save session"


@dataclass(frozen=True)
class Unauthenticated:
    pass


@dataclass(frozen=True)
class Authenticated:
    user: Dict
    token: str


@dataclass(frozen=True)
class Loading:
    previous: Union[Unauthenticated, Authenticated] = field(default_factory=Unauthenticated)


SessionState = Union[Unauthenticated, Loading, Authenticated]


@dataclass(frozen=True)
class SessionSnapshot:
    """What views see: {user, token, is_authenticated, loading}."""
    user: Optional[Dict]
    token: Optional[str]
    is_authenticated: bool
    loading: bool


@dataclass(frozen=True)
class AuthResult:
    success: bool
    error: Optional[str] = None


def snapshot_of(state: SessionState) -> SessionSnapshot:
    if isinstance(state, Authenticated):
        return SessionSnapshot(user=dict(state.user), token=state.token,
                               is_authenticated=True, loading=False)
    if isinstance(state, Loading):
        settled = snapshot_of(state.previous)
        return SessionSnapshot(user=settled.user, token=settled.token,
                               is_authenticated=settled.is_authenticated, loading=True)
    if isinstance(state, Unauthenticated):
        return SessionSnapshot(user=None, token=None, is_authenticated=False, loading=False)
    raise TypeError(f"Unknown session state: {state!r}")


def settled_state(state: SessionState) -> Union[Unauthenticated, Authenticated]:
    return state.previous if isinstance(state, Loading) else state


def split_auth_response(data: Dict):
    """Login/register responses are the user fields plus `token`."""
    user = {k: v for k, v in data.items() if k != "token"}
    return user, data.get("token")


class Session:
    """
    Process-wide auth session.

    `gateway` needs login(email, password), register(name, email, password)
    and fetch_profile(token); ApiClient provides all three.
    """

    def __init__(self, gateway, token_store: TokenStore):
        self.gateway = gateway
        self.token_store = token_store
        self._lock = threading.RLock()
        self._seq = 0
        self._listeners: List[Callable[[SessionSnapshot], None]] = []
        self._state: SessionState = (
            Loading() if token_store.get() else Unauthenticated()
        )

    # ── Read side ──

    @property
    def state(self) -> SessionState:
        return self._state

    def snapshot(self) -> SessionSnapshot:
        with self._lock:
            return snapshot_of(self._state)

    @property
    def user(self) -> Optional[Dict]:
        return self.snapshot().user

    @property
    def token(self) -> Optional[str]:
        return self.snapshot().token

    @property
    def is_authenticated(self) -> bool:
        return self.snapshot().is_authenticated

    @property
    def loading(self) -> bool:
        return self.snapshot().loading

    def subscribe(self, listener: Callable[[SessionSnapshot], None]) -> Callable[[], None]:
        """Call `listener` after every transition. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    # ── Transitions ──

    def _transition(self, state: SessionState) -> None:
        self._state = state
        snap = snapshot_of(state)
        for listener in list(self._listeners):
            listener(snap)

    def _begin(self) -> int:
        with self._lock:
            self._seq += 1
            return self._seq

    def _is_current(self, seq: int) -> bool:
        return seq == self._seq

    # ── Operations ──

    def initialize(self) -> None:
        """Validate a persisted token against the profile endpoint."""
        token = self.token_store.get()
        if not token:
            with self._lock:
                self._seq += 1
                self._transition(Unauthenticated())
            return

        seq = self._begin()
        with self._lock:
            self._transition(Loading(previous=settled_state(self._state)))

        try:
            profile = self.gateway.fetch_profile(token)
        except Exception as e:
            logger.info(f"Stored token rejected: {e}")
            with self._lock:
                if not self._is_current(seq):
                    return
                self._forget_token()
                self._transition(Unauthenticated())
            return

        with self._lock:
            if not self._is_current(seq):
                logger.debug("Discarding superseded startup check")
                return
            self._transition(Authenticated(user=dict(profile), token=token))

    def login(self, email: str, password: str) -> AuthResult:
        return self._authenticate(
            lambda: self.gateway.login(email, password), "Login failed"
        )

    def register(self, name: str, email: str, password: str) -> AuthResult:
        return self._authenticate(
            lambda: self.gateway.register(name, email, password), "Registration failed"
        )

    def _authenticate(self, call: Callable[[], Dict], default_error: str) -> AuthResult:
        seq = self._begin()
        with self._lock:
            previous = settled_state(self._state)
            self._transition(Loading(previous=previous))

        try:
            data = call()
            user, token = split_auth_response(data)
            if not token:
                raise ApiError(default_error)
        except ApiError as e:
            error = e.message or default_error
            return self._fail(seq, previous, error)
        except Exception as e:
            logger.error(f"{default_error}: {e}")
            return self._fail(seq, previous, NETWORK_ERROR)

        with self._lock:
            if not self._is_current(seq):
                logger.info("Discarding superseded authentication result")
                return AuthResult(success=False, error=SUPERSEDED)
            # Persist first, then expose the token to the rest of the client
            try:
                self.token_store.set(token)
            except OSError as e:
                logger.error(f"Could not persist token: {e}")
                self._transition(previous)
                return AuthResult(success=False, error=SAVE_FAILED)
            self._transition(Authenticated(user=user, token=token))
        return AuthResult(success=True)

    def _fail(self, seq: int, previous, error: str) -> AuthResult:
        with self._lock:
            if not self._is_current(seq):
                return AuthResult(success=False, error=SUPERSEDED)
            self._transition(previous)
        return AuthResult(success=False, error=error)

    def logout(self) -> None:
        """Forget the token and drop to Unauthenticated. No network call."""
        with self._lock:
            self._seq += 1
            self._forget_token()
            self._transition(Unauthenticated())

    def _forget_token(self) -> None:
        # An unwritable store must not keep the session signed in
        try:
            self.token_store.clear()
        except OSError as e:
            logger.error(f"Could not clear persisted token: {e}")

    def update_user(self, partial: Dict) -> None:
        """Shallow-merge `partial` into the current user; no-op without one."""
        with self._lock:
            state = self._state
            if isinstance(state, Authenticated):
                self._transition(Authenticated(user={**state.user, **partial}, token=state.token))
            elif isinstance(state, Loading) and isinstance(state.previous, Authenticated):
                prev = state.previous
                merged = Authenticated(user={**prev.user, **partial}, token=prev.token)
                self._transition(Loading(previous=merged))
