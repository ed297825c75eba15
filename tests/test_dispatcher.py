"""Tests for the dispatcher: auth retry, error propagation and deadlines."""

import asyncio
import json

import httpx
import pytest

from vco.core.errors import ApiError, ClientTimeout, IdMismatch, SessionRejected
from vco.core.models import Enterprise, RowsResult
from vco.rpc.config import HTTPMethod
from vco.rpc.envelope import OperationDescriptor

GET_PROPERTIES = OperationDescriptor.jsonrpc("properties.list", "systemProperty/getSystemProperties")
DELETE_PROPERTY = OperationDescriptor.jsonrpc(
    "properties.delete", "systemProperty/deleteSystemProperty", {"name": "x"}, shape=RowsResult
)


class TestAuthRetry:
    @pytest.mark.asyncio
    async def test_expired_session_is_refreshed_once(self, client, orchestrator):
        orchestrator.on_jsonrpc("systemProperty/getSystemProperties", [])
        await client.login()
        orchestrator.expire_sessions()

        assert await client.call(GET_PROPERTIES) == []
        assert orchestrator.logins == 2
        assert len(orchestrator.jsonrpc_calls("systemProperty/getSystemProperties")) == 2

    @pytest.mark.asyncio
    async def test_rest_401_is_refreshed_once(self, client, orchestrator):
        orchestrator.on_rest("GET", "enterprises/e1/edges/edge-1", {"logicalId": "edge-1"})
        await client.login()
        orchestrator.expire_sessions()

        result = await client.call(OperationDescriptor.rest("edges.get", HTTPMethod.GET, "enterprises/e1/edges/edge-1"))

        assert result == {"logicalId": "edge-1"}
        assert orchestrator.logins == 2

    @pytest.mark.asyncio
    async def test_second_auth_failure_raises_session_rejected(self, client, orchestrator):
        # Every login succeeds but the session is rejected on use.
        orchestrator.on_jsonrpc("systemProperty/getSystemProperties", [])
        original_login = orchestrator._login

        async def login_then_forget(request):
            response = await original_login(request)
            orchestrator.expire_sessions()
            return response

        orchestrator._login = login_then_forget

        with pytest.raises(SessionRejected):
            await client.call(GET_PROPERTIES)
        assert orchestrator.logins == 2
        assert client.sessions.session is None

    @pytest.mark.asyncio
    async def test_concurrent_auth_failures_share_one_refresh(self, client, orchestrator):
        orchestrator.on_jsonrpc("systemProperty/getSystemProperties", [])
        await client.login()
        orchestrator.expire_sessions()
        orchestrator.login_delay = 0.02

        results = await asyncio.gather(*(client.call(GET_PROPERTIES) for _ in range(8)))

        assert results == [[]] * 8
        assert orchestrator.logins == 2


class TestNoRetry:
    @pytest.mark.asyncio
    async def test_api_error_is_not_retried(self, client, orchestrator):
        await client.login()
        # No handler scripted: the orchestrator answers "Method not found".
        with pytest.raises(ApiError) as exc_info:
            await client.call(DELETE_PROPERTY)

        assert exc_info.value.code == -32601
        assert len(orchestrator.jsonrpc_calls("systemProperty/deleteSystemProperty")) == 1
        assert orchestrator.logins == 1

    @pytest.mark.asyncio
    async def test_id_mismatch_is_not_retried(self, client, orchestrator):
        await client.login()
        handle = orchestrator.handle

        async def wrong_id(request):
            if request.url.path == "/portal/":
                orchestrator.requests.append(request)
                body = json.loads(request.content)
                return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"] + 100, "result": []})
            return await handle(request)

        client.transport.client = httpx.AsyncClient(transport=httpx.MockTransport(wrong_id))

        with pytest.raises(IdMismatch):
            await client.call(GET_PROPERTIES)
        assert len(orchestrator.calls("/portal/")) == 1

    @pytest.mark.asyncio
    async def test_forbidden_delete_is_sent_once(self, client, orchestrator):
        orchestrator.on_rest(
            "DELETE",
            "enterprises/e1/edges/edge-1",
            lambda request: httpx.Response(403, json={"code": "FORBIDDEN", "message": "User is unauthorized to delete edges"}),
        )

        with pytest.raises(ApiError) as exc_info:
            await client.edges.delete("e1", "edge-1")

        assert exc_info.value.status_code == 403
        assert len(orchestrator.calls("/api/sdwan/v2/enterprises/e1/edges/edge-1")) == 1
        assert orchestrator.logins == 1

    @pytest.mark.asyncio
    async def test_validation_error_naming_a_token_is_sent_once(self, client, orchestrator):
        orchestrator.fail_jsonrpc("enterprise/insertEnterprise", -32602, "Invalid token in field 'domain'")

        with pytest.raises(ApiError) as exc_info:
            await client.enterprises.create(Enterprise(name="Initech", domain="init ech"))

        assert exc_info.value.code == -32602
        assert len(orchestrator.jsonrpc_calls("enterprise/insertEnterprise")) == 1
        assert orchestrator.logins == 1


class TestDeadline:
    @pytest.mark.asyncio
    async def test_call_deadline(self, client, orchestrator):
        await client.login()

        async def slow(request):
            await asyncio.sleep(1.0)
            return httpx.Response(200, json={})

        client.transport.client = httpx.AsyncClient(transport=httpx.MockTransport(slow))

        with pytest.raises(ClientTimeout) as exc_info:
            await client.call(GET_PROPERTIES, timeout=0.05)
        assert exc_info.value.timeout == 0.05

    @pytest.mark.asyncio
    async def test_deadline_covers_login(self, client, orchestrator):
        orchestrator.login_delay = 1.0
        with pytest.raises(ClientTimeout):
            await client.call(GET_PROPERTIES, timeout=0.05)
