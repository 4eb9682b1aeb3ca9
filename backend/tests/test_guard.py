"""
访问控制测试
"""

import pytest
from fastapi import Depends, FastAPI
from httpx import AsyncClient, ASGITransport

from core.errors import AuthException, ErrorCode, PermissionException, register_exception_handlers
from core.guard import (
    AccessGrants, AccessRequirement, Logical, check_access, check_self_or,
    get_grants_provider, require_permissions, require_roles,
)
from core.identity import SYSTEM_IDENTITY, Identity, IdentityMiddleware

ALICE = Identity(user_id=1, username="alice")


class FakeProvider:
    """按用户 ID 返回固定授权"""

    def __init__(self, grants=None):
        self.grants = grants or {}
        self.calls = []

    async def get_grants(self, user_id: int) -> AccessGrants:
        self.calls.append(user_id)
        return self.grants.get(user_id, AccessGrants())


def grants(roles=(), permissions=()):
    return AccessGrants(roles=frozenset(roles), permissions=frozenset(permissions))


class TestCheckAccess:

    def test_missing_identity_is_unauthenticated(self):
        with pytest.raises(AuthException) as exc_info:
            check_access(AccessRequirement(roles=("ADMIN",)), None, None)
        assert exc_info.value.http_status == 401
        assert exc_info.value.message == "用户未登录"

    def test_system_identity_is_unauthenticated(self):
        with pytest.raises(AuthException):
            check_access(AccessRequirement(permissions=("file:delete",)), SYSTEM_IDENTITY, grants(roles=["ADMIN"]))

    def test_user_id_zero_is_unauthenticated(self):
        with pytest.raises(AuthException):
            check_access(AccessRequirement(roles=("ADMIN",)), Identity(user_id=0, username="x"), grants(["ADMIN"]))

    def test_empty_requirement_allows_any_user(self):
        check_access(AccessRequirement(), ALICE, None)

    def test_all_roles_required_by_default(self):
        requirement = AccessRequirement(roles=("ADMIN", "AUDITOR"))
        check_access(requirement, ALICE, grants(roles=["ADMIN", "AUDITOR", "USER"]))
        with pytest.raises(PermissionException) as exc_info:
            check_access(requirement, ALICE, grants(roles=["ADMIN"]))
        assert exc_info.value.http_status == 403
        assert exc_info.value.code == ErrorCode.PERMISSION_DENIED

    def test_any_role(self):
        requirement = AccessRequirement(roles=("ADMIN", "AUDITOR"), logical=Logical.ANY)
        check_access(requirement, ALICE, grants(roles=["AUDITOR"]))
        with pytest.raises(PermissionException):
            check_access(requirement, ALICE, grants(roles=["USER"]))

    def test_permissions(self):
        requirement = AccessRequirement(permissions=("file:upload", "file:delete"))
        check_access(requirement, ALICE, grants(permissions=["file:upload", "file:delete"]))
        with pytest.raises(PermissionException):
            check_access(requirement, ALICE, grants(permissions=["file:upload"]))

    def test_any_permission(self):
        requirement = AccessRequirement(permissions=("file:upload", "file:delete"), logical=Logical.ANY)
        check_access(requirement, ALICE, grants(permissions=["file:delete"]))

    def test_no_grants_is_denied(self):
        with pytest.raises(PermissionException):
            check_access(AccessRequirement(roles=("ADMIN",)), ALICE, None)

    def test_logical_values(self):
        assert Logical.ALL.value == "AND"
        assert Logical.ANY.value == "OR"


class TestCheckSelfOr:

    @pytest.mark.asyncio
    async def test_owner_skips_grants(self):
        provider = FakeProvider()
        await check_self_or(ALICE, 1, AccessRequirement(roles=("ADMIN",)), provider)
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_other_user_needs_role(self):
        provider = FakeProvider({1: grants(roles=["USER"])})
        with pytest.raises(PermissionException):
            await check_self_or(ALICE, 2, AccessRequirement(roles=("ADMIN",)), provider)

        provider = FakeProvider({1: grants(roles=["ADMIN"])})
        await check_self_or(ALICE, 2, AccessRequirement(roles=("ADMIN",)), provider)


def build_app(provider: FakeProvider) -> FastAPI:
    app = FastAPI()
    app.add_middleware(IdentityMiddleware, allow_list=["/open"])
    register_exception_handlers(app)
    app.dependency_overrides[get_grants_provider] = lambda: provider

    @app.get("/admin")
    async def admin_only(identity: Identity = Depends(require_roles("ADMIN"))):
        return {"user": identity.username}

    @app.get("/audit")
    async def audit(identity: Identity = Depends(require_roles("ADMIN", "AUDITOR", logical=Logical.ANY))):
        return {"user": identity.username}

    @app.delete("/file")
    async def delete_file(identity: Identity = Depends(require_permissions("file:delete"))):
        return {"user": identity.username}

    @app.get("/open")
    async def open_endpoint(identity: Identity = Depends(require_roles("ADMIN"))):
        return {"user": identity.username}

    return app


class TestGuardDependencies:

    @pytest.mark.asyncio
    async def test_admin_allowed(self):
        app = build_app(FakeProvider({1: grants(roles=["ADMIN"])}))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/admin", headers={"X-User-Id": "1", "X-Username": "alice"})
        assert response.status_code == 200
        assert response.json() == {"user": "alice"}

    @pytest.mark.asyncio
    async def test_missing_role_is_403(self):
        app = build_app(FakeProvider({1: grants(roles=["USER"])}))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/admin", headers={"X-User-Id": "1", "X-Username": "alice"})
        assert response.status_code == 403
        assert response.json()["code"] == ErrorCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_any_role_endpoint(self):
        app = build_app(FakeProvider({1: grants(roles=["AUDITOR"])}))
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/audit", headers={"X-User-Id": "1", "X-Username": "alice"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_permission_endpoint(self):
        provider = FakeProvider({1: grants(permissions=["file:upload"]), 2: grants(permissions=["file:delete"])})
        app = build_app(provider)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            denied = await ac.delete("/file", headers={"X-User-Id": "1", "X-Username": "alice"})
            allowed = await ac.delete("/file", headers={"X-User-Id": "2", "X-Username": "bob"})
        assert denied.status_code == 403
        assert allowed.status_code == 200

    @pytest.mark.asyncio
    async def test_system_identity_is_401(self):
        provider = FakeProvider()
        app = build_app(provider)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/admin", headers={"X-Internal-Call": "true"})
        assert response.status_code == 401
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_allow_listed_path_without_identity_is_401(self):
        app = build_app(FakeProvider())
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            response = await ac.get("/open")
        assert response.status_code == 401
        assert response.json()["code"] == ErrorCode.UNAUTHORIZED
