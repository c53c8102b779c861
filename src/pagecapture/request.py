"""Subrequest wrapper over a starlette request.

A page capture runs as a subrequest of the request that asked for it. The
wrapper forwards everything read-only to the wrapped request, keeps its own
attributes, and supports ``logout()`` by hiding the identity of the wrapped
request. Authentication on a subrequest is unsupported and fails loudly.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pagecapture.errors import UnsupportedOperationError

if TYPE_CHECKING:
    from collections.abc import Iterator

    from starlette.authentication import AuthCredentials
    from starlette.datastructures import URL, Headers, QueryParams
    from starlette.requests import Request

# Cleared and restored around each capture
CURRENT_NODE_ATTRIBUTE = "current_node"


@dataclass
class SubRequestState:
    logged_out: bool = False
    # A value of None hides the wrapped request's attribute of the same name
    attributes: dict[str, Any] = field(default_factory=dict)


class SubRequest:
    def __init__(self, request: Request) -> None:
        self._request = request
        self._state = SubRequestState()

    @property
    def request(self) -> Request:
        return self._request

    @property
    def method(self) -> str:
        return self._request.method

    @property
    def url(self) -> URL:
        return self._request.url

    @property
    def headers(self) -> Headers:
        return self._request.headers

    @property
    def cookies(self) -> dict[str, str]:
        return self._request.cookies

    @property
    def query_params(self) -> QueryParams:
        return self._request.query_params

    @property
    def path_params(self) -> dict[str, Any]:
        return self._request.path_params

    # ------------------------------------------------------------------
    # Identity
    # ------------------------------------------------------------------

    @property
    def logged_out(self) -> bool:
        return self._state.logged_out

    @property
    def user(self) -> Any:
        """The wrapped request's user, or ``None`` when logged out or anonymous."""
        if self._state.logged_out or "user" not in self._request.scope:
            return None
        return self._request.user

    @property
    def auth(self) -> AuthCredentials | None:
        if self._state.logged_out or "auth" not in self._request.scope:
            return None
        return self._request.auth

    def has_scope(self, scope: str) -> bool:
        auth = self.auth
        return auth is not None and scope in auth.scopes

    def logout(self) -> None:
        self._state.logged_out = True

    def login(self, username: str, password: str) -> None:
        raise UnsupportedOperationError("login")

    def authenticate(self) -> bool:
        raise UnsupportedOperationError("authenticate")

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def get_attribute(self, name: str) -> Any:
        if name in self._state.attributes:
            return self._state.attributes[name]
        return getattr(self._request.state, name, None)

    def set_attribute(self, name: str, value: Any) -> None:
        self._state.attributes[name] = value

    def remove_attribute(self, name: str) -> None:
        self._state.attributes[name] = None


def get_current_node(request: SubRequest) -> Any:
    return request.get_attribute(CURRENT_NODE_ATTRIBUTE)


def set_current_node(request: SubRequest, node: Any) -> None:
    request.set_attribute(CURRENT_NODE_ATTRIBUTE, node)


@contextmanager
def current_node(request: SubRequest, node: Any) -> Iterator[Any]:
    """Make *node* the current node for the duration of the block."""
    previous = get_current_node(request)
    set_current_node(request, node)
    try:
        yield node
    finally:
        set_current_node(request, previous)
