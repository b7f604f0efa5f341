"""
Client — session lifecycle, token persistence and API access for the
Social Pulse dashboard.

Use create_client() to get one wired set of collaborators per process.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from client.api_client import ApiClient
from client.route_guard import RouteGuard
from client.session import Session
from client.token_store import TokenStore


@dataclass
class ClientContext:
    token_store: TokenStore
    api: ApiClient
    session: Session
    guard: RouteGuard


def create_client(navigate: Callable[[str], None],
                  base_url: Optional[str] = None,
                  state_path=None) -> ClientContext:
    """
    Wire token store → API client → session → route guard.

    A 401 from any authenticated call logs the session out, which in turn
    makes the guard navigate to the login entry point.
    """
    token_store = TokenStore(state_path)
    api = ApiClient(base_url=base_url, token_store=token_store)
    session = Session(gateway=api, token_store=token_store)
    api.on_unauthorized = session.logout
    guard = RouteGuard(session, navigate)
    return ClientContext(token_store=token_store, api=api, session=session, guard=guard)
