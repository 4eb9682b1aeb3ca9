"""
服务入口测试
按服务名组装路由、中间件与健康检查
"""

import pytest
from httpx import AsyncClient, ASGITransport

from core.errors import ErrorCode
from main import SERVICE_ROUTERS, create_app
from tests.helpers import identity_headers


def paths_of(app):
    return {route.path for route in app.routes}


class TestCreateApp:

    def test_auth_service_routes(self):
        paths = paths_of(create_app("auth"))
        assert "/coder/auth/login" in paths
        assert "/health" in paths
        assert not any(p.startswith("/coder/file") for p in paths)
        assert not any(p.startswith("/coder/user/") for p in paths)

    def test_user_service_routes(self):
        paths = paths_of(create_app("user"))
        assert "/coder/user/validate-password" in paths
        assert "/coder/role/list" in paths
        assert "/coder/role-menu/assign" in paths
        assert "/coder/auth/login" not in paths

    def test_file_service_routes(self):
        paths = paths_of(create_app("file"))
        assert "/coder/file/upload" in paths
        assert "/coder/file/record/list" in paths
        assert "/coder/user/list" not in paths

    def test_all_combines_services(self):
        assert len(SERVICE_ROUTERS["all"]) == sum(len(SERVICE_ROUTERS[n]) for n in ("auth", "user", "file"))

    def test_unknown_service(self):
        with pytest.raises(ValueError):
            create_app("billing")


class TestServiceEndpoints:

    @pytest.mark.asyncio
    async def test_health(self):
        app = create_app("file")
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["components"]["database"]["status"] == "healthy"

    @pytest.mark.asyncio
    async def test_security_headers(self, client, normal_user):
        response = await client.get("/coder/role/list", headers=identity_headers(normal_user))
        assert "no-store" in response.headers["Cache-Control"]
        assert "X-Request-ID" in response.headers

    @pytest.mark.asyncio
    async def test_unknown_path_is_unified_404(self, client, normal_user):
        response = await client.get("/coder/nothing-here", headers=identity_headers(normal_user))
        assert response.status_code == 404
        assert response.json()["code"] == ErrorCode.RESOURCE_NOT_FOUND
