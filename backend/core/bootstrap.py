"""
系统引导初始化
首次启动时写入默认角色、菜单权限与管理员账户，重复执行不会产生重复数据
"""

import logging
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import async_session
from .security import hash_password
from models import User, Role, Menu, UserRole, RoleMenu, NOT_DELETED

logger = logging.getLogger(__name__)

# (角色编码, 名称, 描述, 排序)
DEFAULT_ROLES: List[Tuple[str, str, str, int]] = [
    ("ADMIN", "超级管理员", "拥有全部权限", 1),
    ("AUDITOR", "审计员", "查看文件操作记录", 2),
    ("USER", "普通用户", "注册用户默认角色", 3),
]

# (键, 上级键, 名称, 类型, 路径, 权限标识)
DEFAULT_MENUS: List[Tuple[str, Optional[str], str, int, Optional[str], Optional[str]]] = [
    ("system", None, "系统管理", 1, "/system", None),
    ("system:user", "system", "用户管理", 2, "/system/user", "system:user:list"),
    ("system:user:query", "system:user", "查询用户", 3, None, "system:user:query"),
    ("system:role", "system", "角色管理", 2, "/system/role", "system:role:list"),
    ("system:menu", "system", "菜单管理", 2, "/system/menu", "system:menu:list"),
    ("file", None, "文件管理", 1, "/file", None),
    ("file:list", "file", "文件列表", 2, "/file/list", "file:list"),
    ("file:upload", "file:list", "上传文件", 3, None, "file:upload"),
    ("file:update", "file:list", "修改文件", 3, None, "file:update"),
    ("file:delete", "file:list", "删除文件", 3, None, "file:delete"),
    ("file:record", "file", "操作记录", 2, "/file/record", "file:record:list"),
]

# 角色 -> 菜单键，None 表示全部
ROLE_MENUS: Dict[str, Optional[List[str]]] = {
    "ADMIN": None,
    "AUDITOR": ["file", "file:list", "file:record"],
    "USER": ["file", "file:list", "file:upload"],
}


async def _ensure_roles(db: AsyncSession) -> Dict[str, Role]:
    roles: Dict[str, Role] = {}
    for code, name, desc, order in DEFAULT_ROLES:
        result = await db.execute(select(Role).where(Role.role_code == code))
        role = result.scalar_one_or_none()
        if role is None:
            role = Role(role_code=code, role_name=name, role_desc=desc, sort_order=order)
            db.add(role)
            await db.flush()
            logger.info(f"创建默认角色: {code}")
        roles[code] = role
    return roles


async def _ensure_menus(db: AsyncSession) -> Dict[str, Menu]:
    menus: Dict[str, Menu] = {}
    for order, (key, parent_key, name, menu_type, path, permission) in enumerate(DEFAULT_MENUS):
        if permission:
            condition = Menu.permission == permission
        else:
            condition = Menu.path == path
        result = await db.execute(select(Menu).where(condition, Menu.deleted == NOT_DELETED).limit(1))
        menu = result.scalar_one_or_none()
        if menu is None:
            menu = Menu(
                menu_name=name,
                parent_id=menus[parent_key].id if parent_key else 0,
                menu_type=menu_type,
                path=path,
                permission=permission,
                sort_order=order,
            )
            db.add(menu)
            await db.flush()
        menus[key] = menu
    return menus


async def _ensure_role_menus(db: AsyncSession, roles: Dict[str, Role], menus: Dict[str, Menu]) -> None:
    for code, keys in ROLE_MENUS.items():
        role = roles[code]
        result = await db.execute(
            select(RoleMenu.menu_id).where(RoleMenu.role_id == role.id, RoleMenu.deleted == NOT_DELETED)
        )
        owned = set(result.scalars().all())
        for key in (keys if keys is not None else list(menus)):
            menu_id = menus[key].id
            if menu_id not in owned:
                db.add(RoleMenu(role_id=role.id, menu_id=menu_id))


async def _ensure_admin(db: AsyncSession, admin_role: Role) -> dict:
    settings = get_settings()
    admin_password = settings.admin_password.strip()
    if not admin_password:
        logger.error("管理员密码不能为空")
        return {"created": False, "message": "管理员密码不能为空"}

    result = await db.execute(select(User).where(User.username == settings.admin_username))
    if result.scalar_one_or_none() is not None:
        return {"created": False, "message": f"管理员账户已存在: {settings.admin_username}"}

    admin = User(
        username=settings.admin_username,
        password=hash_password(admin_password),
        nickname=settings.admin_nickname,
        source="SYSTEM",
    )
    db.add(admin)
    await db.flush()
    db.add(UserRole(user_id=admin.id, role_id=admin_role.id))
    logger.info(f"默认管理员账户创建成功: {settings.admin_username}")
    return {"created": True, "username": settings.admin_username}


async def seed_defaults(db: AsyncSession) -> dict:
    """写入默认数据并提交"""
    roles = await _ensure_roles(db)
    menus = await _ensure_menus(db)
    await _ensure_role_menus(db, roles, menus)
    admin_result = await _ensure_admin(db, roles["ADMIN"])
    await db.commit()
    return admin_result


async def init_system_data() -> dict:
    async with async_session() as db:
        try:
            return await seed_defaults(db)
        except Exception:
            await db.rollback()
            raise
