"""
Session state machine and route guard tests.

The gateway (login/register/fetch_profile) is a MagicMock; the token
store is a real file-backed TokenStore in a temp directory.

Run with: python -m pytest test_session.py -q
"""

import os
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

os.chdir(Path(__file__).parent)
sys.path.insert(0, str(Path(__file__).parent))

from client import create_client
from client.api_client import ApiError, NetworkError
from client.route_guard import GuardDecision, RouteGuard, decide, protected
from client.session import (
    SAVE_FAILED, Authenticated, Loading, Session, SessionSnapshot, Unauthenticated,
)
from client.token_store import TokenStore

USER = {"name": "A", "email": "a@x.com", "createdAt": "2025-01-01T00:00:00+00:00",
        "youtubeConnected": False, "instagramConnected": False}


def auth_response(token="tok-1", **overrides):
    return {**USER, **overrides, "token": token}


class SessionTestCase(unittest.TestCase):

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.store = TokenStore(Path(self.tmpdir.name) / "state.json")
        self.gateway = MagicMock()

    def tearDown(self):
        self.tmpdir.cleanup()

    def new_session(self):
        return Session(gateway=self.gateway, token_store=self.store)

    def assertInvariant(self, session):
        snap = session.snapshot()
        self.assertEqual(snap.is_authenticated,
                         snap.user is not None and snap.token is not None)


class TestInitialize(SessionTestCase):

    def test_initial_state_without_token(self):
        session = self.new_session()
        self.assertIsInstance(session.state, Unauthenticated)
        self.assertFalse(session.loading)

    def test_initial_state_with_token_is_loading(self):
        self.store.set("persisted")
        session = self.new_session()
        self.assertIsInstance(session.state, Loading)
        self.assertTrue(session.loading)
        self.assertFalse(session.is_authenticated)

    def test_no_token_makes_no_network_call(self):
        session = self.new_session()
        session.initialize()
        self.gateway.fetch_profile.assert_not_called()
        self.assertIsInstance(session.state, Unauthenticated)
        self.assertFalse(session.loading)

    def test_valid_token_authenticates(self):
        self.store.set("persisted")
        self.gateway.fetch_profile.return_value = dict(USER)
        session = self.new_session()
        session.initialize()

        self.gateway.fetch_profile.assert_called_once_with("persisted")
        self.assertTrue(session.is_authenticated)
        self.assertEqual(session.token, "persisted")
        self.assertEqual(session.user["email"], "a@x.com")
        self.assertFalse(session.loading)
        self.assertInvariant(session)

    def test_invalid_token_is_cleared(self):
        self.store.set("stale")
        self.gateway.fetch_profile.side_effect = ApiError("Token expired", status_code=401)
        session = self.new_session()
        session.initialize()

        self.assertIsInstance(session.state, Unauthenticated)
        self.assertFalse(session.loading)
        self.assertIsNone(self.store.get())

    def test_transport_error_clears_token(self):
        self.store.set("persisted")
        self.gateway.fetch_profile.side_effect = requests.ConnectionError("down")
        session = self.new_session()
        session.initialize()

        self.assertFalse(session.is_authenticated)
        self.assertFalse(session.loading)
        self.assertIsNone(self.store.get())


class TestLoginRegister(SessionTestCase):

    def test_login_success(self):
        self.gateway.login.return_value = auth_response("tok-1")
        session = self.new_session()
        result = session.login("a@x.com", "pw")

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertIsInstance(session.state, Authenticated)
        self.assertTrue(session.is_authenticated)
        self.assertEqual(session.token, "tok-1")
        self.assertEqual(self.store.get(), "tok-1")
        self.assertNotIn("token", session.user)
        self.assertFalse(session.loading)
        self.assertInvariant(session)

    def test_login_is_loading_while_in_flight(self):
        session = self.new_session()
        seen = []

        def login(email, password):
            seen.append(session.snapshot())
            return auth_response()

        self.gateway.login.side_effect = login
        session.login("a@x.com", "pw")
        self.assertTrue(seen[0].loading)
        self.assertFalse(seen[0].is_authenticated)

    def test_login_failure_carries_server_message(self):
        self.gateway.login.side_effect = ApiError("Invalid email or password", status_code=401)
        session = self.new_session()
        result = session.login("a@x.com", "bad")

        self.assertFalse(result.success)
        self.assertEqual(result.error, "Invalid email or password")
        self.assertIsInstance(session.state, Unauthenticated)
        self.assertFalse(session.loading)
        self.assertIsNone(self.store.get())

    def test_login_network_error(self):
        self.gateway.login.side_effect = NetworkError()
        result = self.new_session().login("a@x.com", "pw")
        self.assertEqual(result.error, "Network error")

    def test_login_unexpected_exception_is_normalized(self):
        self.gateway.login.side_effect = requests.Timeout()
        session = self.new_session()
        result = session.login("a@x.com", "pw")
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Network error")
        self.assertFalse(session.loading)

    def test_login_response_without_token_fails(self):
        self.gateway.login.return_value = dict(USER)
        session = self.new_session()
        result = session.login("a@x.com", "pw")
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Login failed")
        self.assertFalse(session.is_authenticated)

    def test_failed_login_keeps_existing_session(self):
        self.gateway.login.side_effect = [auth_response("tok-1"), ApiError("Invalid email or password")]
        session = self.new_session()
        session.login("a@x.com", "pw")
        session.login("b@x.com", "bad")

        self.assertTrue(session.is_authenticated)
        self.assertEqual(session.token, "tok-1")
        self.assertEqual(self.store.get(), "tok-1")
        self.assertFalse(session.loading)

    def test_register_success(self):
        self.gateway.register.return_value = auth_response("tok-r", name="New")
        session = self.new_session()
        result = session.register("New", "n@x.com", "pw")

        self.gateway.register.assert_called_once_with("New", "n@x.com", "pw")
        self.assertTrue(result.success)
        self.assertEqual(session.user["name"], "New")
        self.assertEqual(self.store.get(), "tok-r")

    def test_register_failure_default_message(self):
        self.gateway.register.side_effect = ApiError("")
        result = self.new_session().register("N", "n@x.com", "pw")
        self.assertEqual(result.error, "Registration failed")

    def test_token_persisted_before_listeners_see_it(self):
        self.gateway.login.return_value = auth_response("tok-1")
        session = self.new_session()
        stored_at_transition = []

        def listener(snap):
            if snap.is_authenticated:
                stored_at_transition.append(self.store.get())

        session.subscribe(listener)
        session.login("a@x.com", "pw")
        self.assertEqual(stored_at_transition, ["tok-1"])


class TestLogoutAndUpdate(SessionTestCase):

    def signed_in(self):
        self.gateway.login.return_value = auth_response("tok-1")
        session = self.new_session()
        session.login("a@x.com", "pw")
        return session

    def test_logout(self):
        session = self.signed_in()
        session.logout()

        self.assertFalse(session.is_authenticated)
        self.assertIsNone(session.user)
        self.assertIsNone(session.token)
        self.assertIsNone(self.store.get())

    def test_logout_is_idempotent(self):
        session = self.signed_in()
        session.logout()
        once = session.snapshot()
        session.logout()
        self.assertEqual(session.snapshot(), once)
        self.assertIsNone(self.store.get())

    def test_update_user_merges(self):
        session = self.signed_in()
        session.update_user({"name": "X"})

        self.assertEqual(session.user["name"], "X")
        self.assertEqual(session.user["email"], "a@x.com")
        self.assertEqual(session.token, "tok-1")
        self.assertTrue(session.is_authenticated)

    def test_update_user_when_signed_out_is_noop(self):
        session = self.new_session()
        session.update_user({"name": "X"})
        self.assertIsNone(session.user)
        self.assertFalse(session.is_authenticated)

    def test_snapshot_is_a_copy(self):
        session = self.signed_in()
        session.user["name"] = "mutated"
        self.assertEqual(session.user["name"], "A")

    def test_logout_with_unwritable_store(self):
        session = self.signed_in()
        with patch.object(self.store, "clear", side_effect=OSError("read-only")):
            session.logout()
        self.assertIsInstance(session.state, Unauthenticated)


class TestTokenStoreFailures(SessionTestCase):
    """A token store that cannot be written never leaves the session loading."""

    def test_login_when_token_cannot_be_saved(self):
        self.gateway.login.return_value = auth_response("tok-1")
        session = self.new_session()

        with patch.object(self.store, "set", side_effect=OSError("disk full")):
            result = session.login("a@x.com", "pw")

        self.assertFalse(result.success)
        self.assertEqual(result.error, SAVE_FAILED)
        self.assertFalse(session.loading)
        self.assertFalse(session.is_authenticated)
        self.assertIsInstance(session.state, Unauthenticated)
        self.assertInvariant(session)

    def test_register_failure_restores_existing_session(self):
        self.gateway.login.return_value = auth_response("tok-1")
        self.gateway.register.return_value = auth_response("tok-2")
        session = self.new_session()
        session.login("a@x.com", "pw")

        with patch.object(self.store, "set", side_effect=OSError("disk full")):
            result = session.register("B", "b@x.com", "pw")

        self.assertFalse(result.success)
        self.assertFalse(session.loading)
        self.assertEqual(session.token, "tok-1")
        self.assertEqual(self.store.get(), "tok-1")

    def test_rejected_token_when_store_cannot_be_cleared(self):
        self.store.set("stale")
        self.gateway.fetch_profile.side_effect = ApiError("Token expired", status_code=401)
        session = self.new_session()

        with patch.object(self.store, "clear", side_effect=OSError("read-only")):
            session.initialize()

        self.assertIsInstance(session.state, Unauthenticated)
        self.assertFalse(session.loading)


class TestOperationOrdering(SessionTestCase):

    def test_logout_during_login_wins(self):
        """A login that completes after logout must not resurrect the session."""
        session = self.new_session()

        def slow_login(email, password):
            session.logout()
            return auth_response("late-token")

        self.gateway.login.side_effect = slow_login
        result = session.login("a@x.com", "pw")

        self.assertFalse(result.success)
        self.assertFalse(session.is_authenticated)
        self.assertFalse(session.loading)
        self.assertIsNone(self.store.get())

    def test_newer_login_wins_over_older(self):
        session = self.new_session()
        results = {}

        def first_login(email, password):
            self.gateway.login.side_effect = None
            self.gateway.login.return_value = auth_response("second")
            results["second"] = session.login("b@x.com", "pw")
            return auth_response("first")

        self.gateway.login.side_effect = first_login
        results["first"] = session.login("a@x.com", "pw")

        self.assertTrue(results["second"].success)
        self.assertFalse(results["first"].success)
        self.assertEqual(session.token, "second")
        self.assertEqual(self.store.get(), "second")
        self.assertFalse(session.loading)

    def test_logout_during_startup_check(self):
        self.store.set("persisted")
        session = self.new_session()

        def fetch_profile(token):
            session.logout()
            return dict(USER)

        self.gateway.fetch_profile.side_effect = fetch_profile
        session.initialize()
        self.assertFalse(session.is_authenticated)
        self.assertFalse(session.loading)


class TestRouteGuard(SessionTestCase):

    def test_decide(self):
        self.assertEqual(decide(SessionSnapshot(None, None, False, True)), GuardDecision.PENDING)
        self.assertEqual(decide(SessionSnapshot(USER, "t", True, False)), GuardDecision.GRANTED)
        self.assertEqual(decide(SessionSnapshot(None, None, False, False)), GuardDecision.REDIRECT)

    def test_pending_while_loading(self):
        self.store.set("persisted")
        session = self.new_session()
        navigate = MagicMock()
        guard = RouteGuard(session, navigate)
        view = MagicMock(return_value="page")

        self.assertEqual(guard.render(view), "Loading...")
        view.assert_not_called()
        navigate.assert_not_called()

    def test_grants_authenticated(self):
        self.gateway.login.return_value = auth_response()
        session = self.new_session()
        navigate = MagicMock()
        guard = RouteGuard(session, navigate)
        session.login("a@x.com", "pw")

        self.assertEqual(guard.render(lambda: "page"), "page")
        self.assertEqual(guard.decision, GuardDecision.GRANTED)
        navigate.assert_not_called()

    def test_redirects_unauthenticated(self):
        session = self.new_session()
        session.initialize()
        navigate = MagicMock()
        guard = RouteGuard(session, navigate, login_path="/login")

        self.assertIsNone(guard.render(lambda: "page"))
        navigate.assert_called_once_with("/login")

    def test_reevaluates_on_logout(self):
        self.gateway.login.return_value = auth_response()
        session = self.new_session()
        session.login("a@x.com", "pw")
        navigate = MagicMock()
        guard = RouteGuard(session, navigate)

        session.logout()
        self.assertEqual(guard.decision, GuardDecision.REDIRECT)
        navigate.assert_called_once_with("/login")

    def test_settles_after_startup_check(self):
        self.store.set("persisted")
        self.gateway.fetch_profile.return_value = dict(USER)
        session = self.new_session()
        guard = RouteGuard(session, MagicMock())
        self.assertEqual(guard.decision, GuardDecision.PENDING)

        session.initialize()
        self.assertEqual(guard.decision, GuardDecision.GRANTED)

    def test_protected_decorator(self):
        session = self.new_session()
        navigate = MagicMock()
        guard = RouteGuard(session, navigate)

        @protected(guard)
        def dashboard():
            """Dashboard page."""
            return "dashboard"

        self.assertEqual(dashboard.__name__, "dashboard")
        self.assertIsNone(dashboard())
        navigate.assert_called_with("/login")

    def test_close_unsubscribes(self):
        self.gateway.login.return_value = auth_response()
        session = self.new_session()
        session.login("a@x.com", "pw")
        navigate = MagicMock()
        guard = RouteGuard(session, navigate)
        guard.close()

        session.logout()
        navigate.assert_not_called()


class TestClientWiring(unittest.TestCase):
    """create_client: a 401 on any authenticated call logs out and redirects."""

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.state_path = Path(self.tmpdir.name) / "state.json"
        TokenStore(self.state_path).set("tok")
        self.navigate = MagicMock()
        self.ctx = create_client(self.navigate, base_url="http://api.test",
                                 state_path=self.state_path)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_expired_token_during_protected_call(self):
        from test_api_client import StubAdapter
        adapter = StubAdapter([
            (200, dict(USER)),                          # startup profile check
            (401, {"message": "Not authorized, token failed"}),
        ])
        self.ctx.api.http.mount("http://", adapter)

        self.ctx.session.initialize()
        self.assertTrue(self.ctx.session.is_authenticated)

        with self.assertRaises(ApiError) as ctx:
            self.ctx.api.youtube_stats("UC123")

        self.assertEqual(ctx.exception.status_code, 401)
        self.assertFalse(self.ctx.session.is_authenticated)
        self.assertIsNone(self.ctx.token_store.get())
        self.assertEqual(self.ctx.guard.decision, GuardDecision.REDIRECT)
        self.navigate.assert_called_once_with("/login")

    def test_stale_token_at_startup(self):
        from test_api_client import StubAdapter
        self.ctx.api.http.mount("http://", StubAdapter([(401, {"message": "Token expired"})]))

        self.ctx.session.initialize()

        self.assertIsInstance(self.ctx.session.state, Unauthenticated)
        self.assertFalse(self.ctx.session.loading)
        self.assertIsNone(self.ctx.token_store.get())

    def test_stale_token_redirects_once(self):
        from test_api_client import StubAdapter
        self.ctx.api.http.mount("http://", StubAdapter([(401, {"message": "Token expired"})]))

        self.ctx.session.initialize()
        self.assertIsNone(self.ctx.guard.render(lambda: "page"))

        self.navigate.assert_called_once_with("/login")

    def test_401_after_token_removed_elsewhere(self):
        from test_api_client import StubAdapter
        adapter = StubAdapter([
            (200, dict(USER)),
            (401, {"message": "Not authorized, no token"}),
        ])
        self.ctx.api.http.mount("http://", adapter)
        self.ctx.session.initialize()
        self.assertTrue(self.ctx.session.is_authenticated)

        # e.g. `main.py logout` ran in another terminal
        TokenStore(self.state_path).clear()
        with self.assertRaises(ApiError):
            self.ctx.api.youtube_stats("UC123")

        self.assertNotIn("Authorization", adapter.sent[1].headers)
        self.assertFalse(self.ctx.session.is_authenticated)
        self.assertEqual(self.ctx.guard.decision, GuardDecision.REDIRECT)
        self.navigate.assert_called_once_with("/login")


if __name__ == "__main__":
    unittest.main()
