"""
菜单路由
菜单/权限点管理与角色菜单分配
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.guard import ADMIN_ROLE, require_roles
from core.identity import Identity, get_current_identity
from schemas.menu import MenuCreate, MenuUpdate, MenuTreeNode, RoleMenuAssign
from schemas.response import success
from services.menu_service import MenuService
from services.user_service import UserService

router = APIRouter(prefix="/menu", tags=["菜单管理"])
role_menu_router = APIRouter(prefix="/role-menu", tags=["菜单管理"])


def get_menu_service(db: AsyncSession = Depends(get_db)) -> MenuService:
    return MenuService(db)


@router.post("/create")
async def create_menu(
    data: MenuCreate,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: MenuService = Depends(get_menu_service),
):
    menu = await service.create_menu(data, identity.user_id)
    return success(MenuTreeNode.model_validate(menu).model_dump(), "创建成功")


@router.put("/update")
async def update_menu(
    data: MenuUpdate,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: MenuService = Depends(get_menu_service),
):
    menu = await service.update_menu(data, identity.user_id)
    return success(MenuTreeNode.model_validate(menu).model_dump(), "更新成功")


@router.delete("/delete/{menu_id}")
async def delete_menu(
    menu_id: int,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: MenuService = Depends(get_menu_service),
):
    await service.delete_menu(menu_id, identity.user_id)
    return success(None, "删除成功")


@router.get("/tree")
async def get_menu_tree(
    identity: Identity = Depends(get_current_identity),
    service: MenuService = Depends(get_menu_service),
):
    tree = await service.get_menu_tree()
    return success([node.model_dump() for node in tree])


@router.get("/user/{user_id}/permissions")
async def get_user_permissions(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    db: AsyncSession = Depends(get_db),
):
    """用户持有的权限标识"""
    info = await UserService(db).get_permission_info(user_id)
    return success(info.permissions)


# ==================== 角色菜单 ====================

@role_menu_router.post("/assign")
async def assign_role_menus(
    data: RoleMenuAssign,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: MenuService = Depends(get_menu_service),
):
    """覆盖角色的菜单"""
    menu_ids = await service.assign_role_menus(data.role_id, data.menu_ids, identity.user_id)
    return success({"role_id": data.role_id, "menu_ids": menu_ids}, "分配成功")


@role_menu_router.get("/role/{role_id}")
async def get_role_menus(
    role_id: int,
    identity: Identity = Depends(get_current_identity),
    service: MenuService = Depends(get_menu_service),
):
    return success(await service.get_role_menu_ids(role_id))
