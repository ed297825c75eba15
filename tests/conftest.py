"""Shared fixtures: a scripted orchestrator behind ``httpx.MockTransport``."""

import asyncio
import itertools
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import httpx
import pytest
import pytest_asyncio

from vco.rpc.client import VcoClient
from vco.rpc.config import Config
from vco.rpc.session import SESSION_COOKIE, Credentials

FQDN = "vco.example.net"
USERNAME = "super@example.net"
PASSWORD = "correct horse"

START = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

JsonRpcHandler = Callable[[Dict[str, Any]], Any]
RestHandler = Callable[[httpx.Request], httpx.Response]


class FakeClock:
    """A controllable replacement for ``datetime.now(timezone.utc)``."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeOrchestrator:
    """Answers login, JSONRPC and REST requests like an orchestrator would.

    JSONRPC methods and REST routes are scripted per test. Every request is
    recorded; session cookies are only honored while they are in
    ``valid_tokens``.
    """

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.valid_tokens: set = set()
        self.logins = 0
        self.login_delay = 0.0
        self.login_status = 200
        self.methods: Dict[str, Union[JsonRpcHandler, Any]] = {}
        self.routes: Dict[Tuple[str, str], RestHandler] = {}
        self.errors: Dict[str, Tuple[int, str]] = {}
        self._tokens = itertools.count(1)

    # Scripting

    def on_jsonrpc(self, method: str, result: Union[JsonRpcHandler, Any]) -> None:
        self.methods[method] = result

    def fail_jsonrpc(self, method: str, code: int, message: str) -> None:
        self.errors[method] = (code, message)

    def on_rest(self, method: str, path: str, handler: Union[RestHandler, Any]) -> None:
        if not callable(handler):
            payload = handler
            handler = lambda request: httpx.Response(200, json=payload)  # noqa: E731
        self.routes[(method, path)] = handler

    def expire_sessions(self) -> None:
        self.valid_tokens.clear()

    # Introspection

    def calls(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def jsonrpc_calls(self, method: str) -> List[Dict[str, Any]]:
        bodies = [json.loads(r.content) for r in self.calls("/portal/")]
        return [b for b in bodies if b["method"] == method]

    # Transport

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/portal/rest/login/"):
            return await self._login(request)
        if path == "/portal/rest/logout":
            self.valid_tokens.discard(self._session_token(request))
            return httpx.Response(200, json={})
        if path == "/portal/":
            return self._jsonrpc(request)
        if path.startswith("/api/sdwan/v2/"):
            return self._rest(request, path[len("/api/sdwan/v2/"):])
        return httpx.Response(404, json={"code": 404, "message": f"No route for {path}"})

    async def _login(self, request: httpx.Request) -> httpx.Response:
        self.logins += 1
        if self.login_delay:
            await asyncio.sleep(self.login_delay)
        body = json.loads(request.content)
        if self.login_status != 200 or body != {"username": USERNAME, "password": PASSWORD}:
            return httpx.Response(self.login_status if self.login_status != 200 else 403, json={})
        token = f"session-{next(self._tokens)}"
        self.valid_tokens.add(token)
        return httpx.Response(
            200,
            json={},
            headers={"Set-Cookie": f"{SESSION_COOKIE}={token}; Path=/; Secure; HttpOnly"},
        )

    def _session_token(self, request: httpx.Request) -> Optional[str]:
        cookie = request.headers.get("Cookie", "")
        prefix = f"{SESSION_COOKIE}="
        if cookie.startswith(prefix):
            return cookie[len(prefix):]
        authorization = request.headers.get("Authorization", "")
        if authorization.startswith("Token "):
            return authorization[len("Token "):]
        return None

    def _authorized(self, request: httpx.Request) -> bool:
        return self._session_token(request) in self.valid_tokens

    def _jsonrpc(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        call_id = body["id"]
        if not self._authorized(request):
            return httpx.Response(
                200,
                json={
                    "jsonrpc": "2.0",
                    "id": call_id,
                    "error": {"code": -32000, "message": "tokenError [expired session cookie]"},
                },
            )
        if body["method"] in self.errors:
            code, message = self.errors[body["method"]]
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": call_id, "error": {"code": code, "message": message}})
        if body["method"] not in self.methods:
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": call_id, "error": {"code": -32601, "message": "Method not found"}},
            )
        result = self.methods[body["method"]]
        if callable(result):
            result = result(body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": call_id, "result": result})

    def _rest(self, request: httpx.Request, path: str) -> httpx.Response:
        if not self._authorized(request):
            return httpx.Response(401, json={"code": "UNAUTHORIZED", "message": "Unauthorized"})
        handler = self.routes.get((request.method, path))
        if handler is None:
            return httpx.Response(404, json={"code": "NOT_FOUND", "message": f"{path} not found"})
        return handler(request)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def config() -> Config:
    return Config(fqdn=FQDN, server_version="4.5.1", request_timeout=5.0, login_timeout=5.0)


@pytest.fixture
def orchestrator() -> FakeOrchestrator:
    return FakeOrchestrator()


@pytest.fixture
def credentials() -> Credentials:
    return Credentials.password(USERNAME, PASSWORD)


@pytest_asyncio.fixture
async def client(config, credentials, orchestrator, clock):
    http_client = httpx.AsyncClient(transport=orchestrator.transport())
    vco = VcoClient(config, credentials, http_client=http_client, clock=clock)
    yield vco
    await vco.aclose()
