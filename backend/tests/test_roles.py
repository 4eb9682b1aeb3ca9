"""
角色、菜单及其分配测试
"""

import pytest
from sqlalchemy import select

from core.errors import BusinessException, ConflictException, ErrorCode, NotFoundException
from models import Menu, RoleMenu, DELETED, NOT_DELETED
from schemas.menu import MenuCreate
from schemas.role import RoleCreate, RoleUpdate
from services.menu_service import MenuService, build_menu_tree, split_permissions
from services.role_service import RoleService
from services.user_service import UserService
from tests.helpers import create_test_user, identity_headers


class TestMenuHelpers:

    def test_split_permissions(self):
        menus = [
            Menu(id=1, menu_name="a", permission="file:upload, file:update"),
            Menu(id=2, menu_name="b", permission="file:upload"),
            Menu(id=3, menu_name="c", permission=None),
        ]
        assert split_permissions(menus) == ["file:update", "file:upload"]

    def test_build_menu_tree(self):
        menus = [
            Menu(id=1, menu_name="root", parent_id=0, sort_order=2, menu_type=1, visible=1),
            Menu(id=2, menu_name="child-b", parent_id=1, sort_order=2, menu_type=2, visible=1),
            Menu(id=3, menu_name="child-a", parent_id=1, sort_order=1, menu_type=2, visible=1),
            Menu(id=4, menu_name="first", parent_id=0, sort_order=1, menu_type=1, visible=1),
        ]
        tree = build_menu_tree(menus)
        assert [node.menu_name for node in tree] == ["first", "root"]
        assert [node.menu_name for node in tree[1].children] == ["child-a", "child-b"]


class TestRoleService:

    @pytest.mark.asyncio
    async def test_create_duplicate_code(self, db_session, seeded):
        service = RoleService(db_session)
        role = await service.create_role(RoleCreate(role_code="EDITOR", role_name="编辑"), operator_id=1)
        assert role.id is not None
        with pytest.raises(ConflictException):
            await service.create_role(RoleCreate(role_code="EDITOR", role_name="编辑2"), operator_id=1)

    @pytest.mark.asyncio
    async def test_assign_replaces_roles(self, db_session, normal_user):
        service = RoleService(db_session)
        auditor = await service.get_by_code("AUDITOR")
        admin = await service.get_by_code("ADMIN")

        await service.assign_user_roles(normal_user.id, [auditor.id, admin.id], operator_id=1)
        codes = {r.role_code for r in await service.get_user_roles(normal_user.id)}
        assert codes == {"AUDITOR", "ADMIN"}

        await service.assign_user_roles(normal_user.id, [auditor.id], operator_id=1)
        codes = {r.role_code for r in await service.get_user_roles(normal_user.id)}
        assert codes == {"AUDITOR"}

    @pytest.mark.asyncio
    async def test_assign_unknown_role(self, db_session, normal_user):
        with pytest.raises(NotFoundException):
            await RoleService(db_session).assign_user_roles(normal_user.id, [999], operator_id=1)

    @pytest.mark.asyncio
    async def test_disabled_role_grants_nothing(self, db_session, normal_user):
        service = RoleService(db_session)
        user_role = await service.get_by_code("USER")
        await service.update_role(RoleUpdate(id=user_role.id, status=0), operator_id=1)

        grants = await UserService(db_session).get_grants(normal_user.id)
        assert grants.roles == frozenset()
        assert grants.permissions == frozenset()

    @pytest.mark.asyncio
    async def test_delete_role_removes_links(self, db_session, normal_user):
        service = RoleService(db_session)
        user_role = await service.get_by_code("USER")
        await service.delete_role(user_role.id, operator_id=1)

        assert await service.get_by_code("USER") is None
        links = (await db_session.execute(
            select(RoleMenu).where(RoleMenu.role_id == user_role.id)
        )).scalars().all()
        assert all(link.deleted == DELETED for link in links)
        assert (await UserService(db_session).get_grants(normal_user.id)).roles == frozenset()


class TestMenuService:

    @pytest.mark.asyncio
    async def test_delete_with_children_rejected(self, db_session, seeded):
        service = MenuService(db_session)
        parent = await service.create_menu(MenuCreate(menu_name="报表", menu_type=1), operator_id=1)
        child = await service.create_menu(
            MenuCreate(menu_name="导出", parent_id=parent.id, menu_type=3, permission="report:export"),
            operator_id=1,
        )
        with pytest.raises(BusinessException):
            await service.delete_menu(parent.id, operator_id=1)

        await service.delete_menu(child.id, operator_id=1)
        await service.delete_menu(parent.id, operator_id=1)
        assert await service.find_by_permission("report:export") is None

    @pytest.mark.asyncio
    async def test_create_with_missing_parent(self, db_session, seeded):
        with pytest.raises(NotFoundException):
            await MenuService(db_session).create_menu(MenuCreate(menu_name="x", parent_id=999), operator_id=1)

    @pytest.mark.asyncio
    async def test_role_menu_assignment_drives_permissions(self, db_session, normal_user):
        menus = MenuService(db_session)
        roles = RoleService(db_session)
        user_role = await roles.get_by_code("USER")
        delete_menu = await menus.find_by_permission("file:delete")

        await menus.assign_role_menus(user_role.id, [delete_menu.id], operator_id=1)
        assert await menus.get_role_menu_ids(user_role.id) == [delete_menu.id]

        info = await UserService(db_session).get_permission_info(normal_user.id)
        assert info.permissions == ["file:delete"]
        # 按钮不进入菜单树
        assert info.menu_tree == []


class TestRbacRouters:

    @pytest.mark.asyncio
    async def test_role_crud_requires_admin(self, client, admin, normal_user):
        payload = {"role_code": "EDITOR", "role_name": "编辑"}
        denied = await client.post("/coder/role/create", json=payload, headers=identity_headers(normal_user))
        assert denied.status_code == 403

        created = await client.post("/coder/role/create", json=payload, headers=identity_headers(admin))
        assert created.status_code == 200
        role_id = created.json()["data"]["id"]

        fetched = await client.get(f"/coder/role/get/{role_id}", headers=identity_headers(normal_user))
        assert fetched.json()["data"]["role_code"] == "EDITOR"

        listed = await client.get("/coder/role/list", headers=identity_headers(normal_user))
        assert listed.json()["data"]["total"] == 4

        duplicate = await client.post("/coder/role/create", json=payload, headers=identity_headers(admin))
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == ErrorCode.RESOURCE_EXISTS

    @pytest.mark.asyncio
    async def test_user_role_assign(self, client, db_session, admin):
        bob = await create_test_user(db_session, "bob")
        auditor = (await client.get("/coder/role/list", params={"keyword": "AUDITOR"}, headers=identity_headers(admin)))
        auditor_id = auditor.json()["data"]["items"][0]["id"]

        response = await client.post(
            "/coder/user-role/assign",
            json={"user_id": bob.id, "role_ids": [auditor_id]},
            headers=identity_headers(admin),
        )
        assert response.json()["data"]["role_ids"] == [auditor_id]

        roles = await client.get(f"/coder/user-role/user/{bob.id}", headers=identity_headers(admin))
        assert [r["role_code"] for r in roles.json()["data"]] == ["AUDITOR"]

    @pytest.mark.asyncio
    async def test_menu_tree_and_permissions(self, client, admin, normal_user):
        tree = await client.get("/coder/menu/tree", headers=identity_headers(normal_user))
        names = [node["menu_name"] for node in tree.json()["data"]]
        assert names == ["系统管理", "文件管理"]

        permissions = await client.get(
            f"/coder/menu/user/{normal_user.id}/permissions", headers=identity_headers(normal_user)
        )
        assert "file:upload" in permissions.json()["data"]

    @pytest.mark.asyncio
    async def test_role_menu_assign(self, client, db_session, admin):
        menu_ids = (await db_session.execute(
            select(Menu.id).where(Menu.deleted == NOT_DELETED, Menu.permission == "file:list")
        )).scalars().all()
        role = await client.post(
            "/coder/role/create", json={"role_code": "VIEWER", "role_name": "只读"}, headers=identity_headers(admin)
        )
        role_id = role.json()["data"]["id"]

        response = await client.post(
            "/coder/role-menu/assign",
            json={"role_id": role_id, "menu_ids": list(menu_ids)},
            headers=identity_headers(admin),
        )
        assert response.status_code == 200
        assigned = await client.get(f"/coder/role-menu/role/{role_id}", headers=identity_headers(admin))
        assert assigned.json()["data"] == list(menu_ids)
