"""
Shared fixtures: a scripted Formaloo API served through httpx.MockTransport.
"""

import json
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest

from formaloo_flow.formaloo.auth import TOKEN_PATH

Payload = Union[Dict[str, Any], List[Any], Callable[[httpx.Request], httpx.Response], None]


class FakeFormaloo:
    """
    Answers requests by (method, path) and records every request it sees.

    Unknown routes answer 404. The token endpoint is pre-registered.
    """

    TOKEN = "jwt-token-123"

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Tuple[int, Payload]] = {}
        self.requests: List[httpx.Request] = []
        self.add("POST", TOKEN_PATH, {"authorization_token": self.TOKEN})

    def add(self, method: str, path: str, payload: Payload = None, status: int = 200) -> None:
        self.routes[(method.upper(), path)] = (status, payload)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={"detail": "Not found."})

        status, payload = route
        if callable(payload):
            return payload(request)
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(status, json=payload)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: Optional[str] = None, path: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if (method is None or r.method == method.upper())
            and (path is None or r.url.path == path)
        ]

    def api_calls(self) -> List[httpx.Request]:
        """Requests other than the token exchange."""
        return [r for r in self.requests if r.url.path != TOKEN_PATH]

    @staticmethod
    def body(request: httpx.Request) -> Any:
        return json.loads(request.content) if request.content else None


@pytest.fixture
def fake_api() -> FakeFormaloo:
    return FakeFormaloo()


@pytest.fixture
def self_issued() -> Dict[str, str]:
    return {"api_key": "key-123", "secret_api": "secret-456"}


@pytest.fixture
def pre_issued() -> Dict[str, str]:
    return {"authToken": "pre-token-789", "apiKey": "key-123", "workspace": "ws-1"}


@pytest.fixture
def color_field(fake_api) -> List[Dict[str, str]]:
    """A dropdown-style field 'color1' with options Red and Blue."""
    options = [{"title": "Red", "slug": "r"}, {"title": "Blue", "slug": "b"}]
    fake_api.add("GET", "/v3.0/fields/color1/", {"data": {"field": {"slug": "color1", "choice_items": options}}})
    return options
