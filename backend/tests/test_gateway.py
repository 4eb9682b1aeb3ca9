"""
网关测试
认证过滤、路由选择与身份请求头注入
"""

import json
from datetime import timedelta

import httpx
import pytest
from httpx import AsyncClient, ASGITransport

from core.errors import ErrorCode
from core.security import TokenData, create_token, create_token_pair
from gateway import get_http_client, resolve_target
from gateway.filter import is_anonymous
from gateway_main import create_gateway

ROUTES = {
    "/coder/user": "http://user-service",
    "/coder/user-role": "http://role-service",
    "/coder/file/": "http://file-service",
}


def access_token(user_id=5, username="alice"):
    access, _ = create_token_pair(TokenData(user_id=user_id, username=username, roles=["USER"]))
    return access


class Upstream:
    """记录网关转发出去的请求"""

    def __init__(self, response=None, error=None):
        self.requests = []
        self.response = response or httpx.Response(200, json={"code": 200, "message": "success", "data": "ok"})
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return self.response


@pytest.fixture
def upstream():
    return Upstream()


@pytest.fixture
def gateway(upstream):
    app = create_gateway()

    async def _client():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream.handler)) as client:
            yield client

    app.dependency_overrides[get_http_client] = _client
    return app


async def call(app, method, path, **kwargs):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://gateway") as ac:
        return await ac.request(method, path, **kwargs)


class TestRouting:

    def test_longest_prefix(self):
        assert resolve_target("/coder/user/get/1", ROUTES) == "http://user-service"
        assert resolve_target("/coder/user-role/assign", ROUTES) == "http://role-service"
        assert resolve_target("/coder/file/list", ROUTES) == "http://file-service"
        assert resolve_target("/coder/user", ROUTES) == "http://user-service"

    def test_prefix_must_end_at_segment(self):
        assert resolve_target("/coder/users", ROUTES) is None
        assert resolve_target("/other", ROUTES) is None

    def test_anonymous_paths(self):
        paths = ["/coder/auth/login", "/health"]
        assert is_anonymous("/coder/auth/login", paths)
        assert is_anonymous("/coder/auth/login/sms", paths)
        assert not is_anonymous("/coder/auth/logout", paths)
        assert not is_anonymous("/healthz", paths)


class TestAuthFilter:

    @pytest.mark.asyncio
    async def test_missing_token(self, gateway, upstream):
        response = await call(gateway, "GET", "/coder/file/list")
        assert response.status_code == 401
        body = response.json()
        assert body["code"] == 401
        assert body["message"] == "缺少认证Token"
        assert isinstance(body["timestamp"], int)
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_invalid_token(self, gateway, upstream):
        response = await call(gateway, "GET", "/coder/file/list", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401
        assert response.json()["message"] == "Token无效或已过期"

    @pytest.mark.asyncio
    async def test_refresh_token_rejected(self, gateway):
        _, refresh = create_token_pair(TokenData(user_id=5, username="alice"))
        response = await call(gateway, "GET", "/coder/file/list", headers={"Authorization": f"Bearer {refresh}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_expired_token(self, gateway):
        token = create_token(TokenData(user_id=5, username="alice"), expires_delta=timedelta(seconds=-5))
        response = await call(gateway, "GET", "/coder/file/list", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_internal_call_header_not_trusted(self, gateway, upstream):
        response = await call(gateway, "GET", "/coder/user/get/1", headers={"X-Internal-Call": "true"})
        assert response.status_code == 401
        assert upstream.requests == []

    @pytest.mark.asyncio
    async def test_anonymous_path_forwarded_without_identity(self, gateway, upstream):
        response = await call(
            gateway, "POST", "/coder/auth/login",
            json={"username": "alice", "password": "x"},
            headers={"X-User-Id": "1", "X-Username": "admin"},
        )
        assert response.status_code == 200
        forwarded = upstream.requests[0]
        assert str(forwarded.url) == "http://localhost:8081/coder/auth/login"
        assert "x-user-id" not in forwarded.headers
        assert "x-username" not in forwarded.headers
        assert json.loads(forwarded.content) == {"username": "alice", "password": "x"}

    @pytest.mark.asyncio
    async def test_health_is_local(self, gateway, upstream):
        response = await call(gateway, "GET", "/health")
        assert response.json()["service"] == "gateway"
        assert upstream.requests == []


class TestForwarding:

    @pytest.mark.asyncio
    async def test_injects_identity_headers(self, gateway, upstream):
        token = access_token()
        response = await call(
            gateway, "GET", "/coder/file/list",
            params=[("tag", "a"), ("tag", "b")],
            headers={
                "Authorization": f"Bearer {token}",
                "X-User-Id": "1",
                "X-Username": "admin",
                "X-Internal-Call": "true",
                "X-Trace": "abc",
            },
        )
        assert response.status_code == 200
        assert response.json()["data"] == "ok"

        forwarded = upstream.requests[0]
        assert forwarded.url.path == "/coder/file/list"
        assert forwarded.url.host == "localhost"
        assert forwarded.url.port == 8083
        assert forwarded.url.params.get_list("tag") == ["a", "b"]
        assert forwarded.headers["X-User-Id"] == "5"
        assert forwarded.headers["X-Username"] == "alice"
        assert forwarded.headers["X-Token"] == token
        assert forwarded.headers["X-Trace"] == "abc"
        assert "x-internal-call" not in forwarded.headers

    @pytest.mark.asyncio
    async def test_downstream_status_preserved(self, gateway, upstream):
        upstream.response = httpx.Response(
            403, json={"code": ErrorCode.PERMISSION_DENIED, "message": "权限不足"}, headers={"X-Custom": "1"}
        )
        response = await call(
            gateway, "DELETE", "/coder/file/delete/3", headers={"Authorization": f"Bearer {access_token()}"}
        )
        assert response.status_code == 403
        assert response.json()["code"] == ErrorCode.PERMISSION_DENIED
        assert response.headers["X-Custom"] == "1"
        assert upstream.requests[0].method == "DELETE"

    @pytest.mark.asyncio
    async def test_unreachable_service(self, gateway, upstream):
        upstream.error = httpx.ConnectError("connection refused")
        response = await call(gateway, "GET", "/coder/file/list", headers={"Authorization": f"Bearer {access_token()}"})
        assert response.status_code == 503
        assert response.json()["code"] == ErrorCode.SERVICE_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_unknown_route(self, gateway, upstream):
        response = await call(gateway, "GET", "/elsewhere/x", headers={"Authorization": f"Bearer {access_token()}"})
        assert response.status_code == 404
        assert upstream.requests == []
