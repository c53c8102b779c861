"""Unit tests for pagecapture.request."""

from __future__ import annotations

from typing import Any

import pytest
from starlette.authentication import AuthCredentials, SimpleUser
from starlette.requests import Request

from pagecapture.errors import ErrorCode, UnsupportedOperationError
from pagecapture.request import (
    SubRequest,
    current_node,
    get_current_node,
    set_current_node,
)


def _request(**extra: Any) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "scheme": "https",
        "server": ("docs.example.com", 443),
        "path": "/manual/intro",
        "root_path": "",
        "query_string": b"lang=en",
        "headers": [
            (b"host", b"docs.example.com"),
            (b"cookie", b"theme=dark"),
        ],
        "path_params": {"page": "intro"},
        **extra,
    }
    return Request(scope)


class TestForwarding:
    def test_request_data_forwarded(self) -> None:
        sub = SubRequest(_request())
        assert sub.method == "GET"
        assert sub.url.path == "/manual/intro"
        assert sub.headers["host"] == "docs.example.com"
        assert sub.cookies == {"theme": "dark"}
        assert sub.query_params["lang"] == "en"
        assert sub.path_params == {"page": "intro"}


class TestIdentity:
    def test_anonymous(self) -> None:
        sub = SubRequest(_request())
        assert sub.user is None
        assert sub.auth is None
        assert sub.has_scope("admin") is False

    def test_authenticated(self) -> None:
        sub = SubRequest(_request(user=SimpleUser("alice"), auth=AuthCredentials(["admin"])))
        assert sub.user.display_name == "alice"
        assert sub.has_scope("admin") is True
        assert sub.has_scope("editor") is False

    def test_logout_hides_identity(self) -> None:
        request = _request(user=SimpleUser("alice"), auth=AuthCredentials(["admin"]))
        sub = SubRequest(request)
        sub.logout()
        assert sub.logged_out is True
        assert sub.user is None
        assert sub.auth is None
        assert sub.has_scope("admin") is False
        # The wrapped request keeps its identity
        assert request.user.display_name == "alice"

    def test_login_unsupported(self) -> None:
        sub = SubRequest(_request())
        with pytest.raises(UnsupportedOperationError) as exc_info:
            sub.login("alice", "secret")
        assert exc_info.value.code == ErrorCode.UNSUPPORTED_OPERATION
        assert isinstance(exc_info.value, NotImplementedError)

    def test_authenticate_unsupported(self) -> None:
        with pytest.raises(UnsupportedOperationError, match="authenticate"):
            SubRequest(_request()).authenticate()


class TestAttributes:
    def test_falls_back_to_request_state(self) -> None:
        request = _request()
        request.state.theme = "dark"
        assert SubRequest(request).get_attribute("theme") == "dark"

    def test_writes_stay_local(self) -> None:
        request = _request()
        sub = SubRequest(request)
        sub.set_attribute("theme", "light")
        assert sub.get_attribute("theme") == "light"
        assert getattr(request.state, "theme", None) is None

    def test_remove_hides_request_value(self) -> None:
        request = _request()
        request.state.theme = "dark"
        sub = SubRequest(request)
        sub.remove_attribute("theme")
        assert sub.get_attribute("theme") is None


class TestCurrentNode:
    def test_set_and_get(self) -> None:
        sub = SubRequest(_request())
        assert get_current_node(sub) is None
        set_current_node(sub, "node")
        assert get_current_node(sub) == "node"

    def test_context_restores_previous(self) -> None:
        sub = SubRequest(_request())
        set_current_node(sub, "outer")
        with current_node(sub, "inner") as node:
            assert node == "inner"
            assert get_current_node(sub) == "inner"
        assert get_current_node(sub) == "outer"

    def test_context_restores_on_error(self) -> None:
        sub = SubRequest(_request())
        with pytest.raises(RuntimeError):
            with current_node(sub, "inner"):
                raise RuntimeError("capture failed")
        assert get_current_node(sub) is None
