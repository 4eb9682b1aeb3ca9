"""
菜单/权限服务
菜单树构建、角色-菜单分配
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import BusinessException, ErrorCode, NotFoundException
from models import Menu, Role, RoleMenu, NOT_DELETED, DELETED
from schemas.menu import MenuCreate, MenuUpdate, MenuTreeNode

logger = logging.getLogger(__name__)

BUTTON_MENU_TYPE = 3


def split_permissions(menus: Iterable[Menu]) -> List[str]:
    """提取权限标识，一个菜单可用逗号配置多个"""
    codes = set()
    for menu in menus:
        if not menu.permission:
            continue
        for code in menu.permission.split(","):
            code = code.strip()
            if code:
                codes.add(code)
    return sorted(codes)


def build_menu_tree(menus: Iterable[Menu], root_id: int = 0) -> List[MenuTreeNode]:
    """按 parent_id 组装菜单树，同级按 sort_order 排序"""
    nodes: Dict[int, MenuTreeNode] = {}
    ordered = sorted(menus, key=lambda m: (m.sort_order, m.id))
    for menu in ordered:
        nodes[menu.id] = MenuTreeNode(
            id=menu.id,
            menu_name=menu.menu_name,
            parent_id=menu.parent_id,
            menu_type=menu.menu_type,
            path=menu.path,
            component=menu.component,
            permission=menu.permission,
            icon=menu.icon,
            sort_order=menu.sort_order,
            visible=menu.visible,
        )

    roots: List[MenuTreeNode] = []
    for menu in ordered:
        node = nodes[menu.id]
        parent = nodes.get(menu.parent_id)
        if menu.parent_id == root_id or parent is None:
            roots.append(node)
        else:
            parent.children.append(node)
    return roots


class MenuService:
    """菜单服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_menu(self, menu_id: int) -> Menu:
        result = await self.db.execute(
            select(Menu).where(Menu.id == menu_id, Menu.deleted == NOT_DELETED)
        )
        menu = result.scalar_one_or_none()
        if menu is None:
            raise NotFoundException("菜单", menu_id)
        return menu

    async def create_menu(self, data: MenuCreate, operator_id: int) -> Menu:
        if data.parent_id:
            await self.get_menu(data.parent_id)
        menu = Menu(**data.model_dump(), create_by=operator_id, update_by=operator_id)
        self.db.add(menu)
        await self.db.commit()
        await self.db.refresh(menu)
        return menu

    async def update_menu(self, data: MenuUpdate, operator_id: int) -> Menu:
        menu = await self.get_menu(data.id)
        changes = data.model_dump(exclude_unset=True, exclude={"id"})
        if changes.get("parent_id") == menu.id:
            raise BusinessException(ErrorCode.OPERATION_FAILED, "上级菜单不能是自身")
        for key, value in changes.items():
            setattr(menu, key, value)
        menu.update_by = operator_id
        await self.db.commit()
        await self.db.refresh(menu)
        return menu

    async def delete_menu(self, menu_id: int, operator_id: int) -> None:
        """逻辑删除菜单，存在子菜单时拒绝"""
        await self.get_menu(menu_id)
        child = await self.db.execute(
            select(Menu.id).where(Menu.parent_id == menu_id, Menu.deleted == NOT_DELETED).limit(1)
        )
        if child.first() is not None:
            raise BusinessException(ErrorCode.OPERATION_FAILED, "存在子菜单，不允许删除")

        await self.db.execute(
            update(Menu).where(Menu.id == menu_id).values(deleted=DELETED, update_by=operator_id)
        )
        await self.db.execute(
            update(RoleMenu)
            .where(RoleMenu.menu_id == menu_id, RoleMenu.deleted == NOT_DELETED)
            .values(deleted=DELETED, update_by=operator_id)
        )
        await self.db.commit()

    async def get_menu_tree(self) -> List[MenuTreeNode]:
        result = await self.db.execute(select(Menu).where(Menu.deleted == NOT_DELETED))
        return build_menu_tree(result.scalars().all())

    async def get_menus_for_roles(self, role_ids: List[int]) -> List[Menu]:
        """角色可访问的启用菜单（去重）"""
        if not role_ids:
            return []
        result = await self.db.execute(
            select(Menu)
            .join(RoleMenu, RoleMenu.menu_id == Menu.id)
            .where(
                RoleMenu.role_id.in_(role_ids),
                RoleMenu.deleted == NOT_DELETED,
                Menu.deleted == NOT_DELETED,
                Menu.status == 1,
            )
            .distinct()
        )
        return list(result.scalars().all())

    async def get_role_menu_ids(self, role_id: int) -> List[int]:
        result = await self.db.execute(
            select(RoleMenu.menu_id).where(RoleMenu.role_id == role_id, RoleMenu.deleted == NOT_DELETED)
        )
        return sorted(set(result.scalars().all()))

    async def assign_role_menus(self, role_id: int, menu_ids: List[int], operator_id: int) -> List[int]:
        """
        覆盖角色的菜单：旧关联逻辑删除，再插入新关联
        """
        role = await self.db.execute(
            select(Role.id).where(Role.id == role_id, Role.deleted == NOT_DELETED)
        )
        if role.first() is None:
            raise NotFoundException("角色", role_id)

        menu_ids = sorted(set(menu_ids))
        if menu_ids:
            found = await self.db.execute(
                select(Menu.id).where(Menu.id.in_(menu_ids), Menu.deleted == NOT_DELETED)
            )
            missing = set(menu_ids) - set(found.scalars().all())
            if missing:
                raise NotFoundException("菜单", sorted(missing))

        await self.db.execute(
            update(RoleMenu)
            .where(RoleMenu.role_id == role_id, RoleMenu.deleted == NOT_DELETED)
            .values(deleted=DELETED, update_by=operator_id)
        )
        for menu_id in menu_ids:
            self.db.add(RoleMenu(role_id=role_id, menu_id=menu_id, create_by=operator_id, update_by=operator_id))
        await self.db.commit()
        logger.info(f"角色 {role_id} 菜单已更新: {menu_ids}")
        return menu_ids

    async def find_by_permission(self, permission: str) -> Optional[Menu]:
        result = await self.db.execute(
            select(Menu).where(Menu.permission == permission, Menu.deleted == NOT_DELETED).limit(1)
        )
        return result.scalar_one_or_none()
