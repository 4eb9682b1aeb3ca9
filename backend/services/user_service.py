"""
用户服务
用户的增删改查、密码校验、登录计数以及权限信息汇总
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictException, ErrorCode, NotFoundException
from core.guard import AccessGrants
from core.pagination import PageResult, paginate
from core.security import hash_password, verify_password
from models import User, UserRole, NOT_DELETED, DELETED
from schemas.auth import RegisterRequest
from schemas.user import UserInfo, UserUpdate, PermissionInfo, RoleBrief
from .menu_service import MenuService, build_menu_tree, split_permissions, BUTTON_MENU_TYPE
from .role_service import RoleService

logger = logging.getLogger(__name__)

DEFAULT_ROLE_CODE = "USER"


class UserService:
    """用户服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== 查询 ====================

    async def find_user(self, user_id: int) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.id == user_id, User.deleted == NOT_DELETED)
        )
        return result.scalar_one_or_none()

    async def get_user(self, user_id: int) -> User:
        user = await self.find_user(user_id)
        if user is None:
            raise NotFoundException("用户", user_id)
        return user

    async def get_by_username(self, username: str) -> Optional[User]:
        result = await self.db.execute(
            select(User).where(User.username == username, User.deleted == NOT_DELETED)
        )
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> Optional[User]:
        result = await self.db.execute(
            select(User)
            .where(func.lower(User.email) == email.strip().lower(), User.deleted == NOT_DELETED)
            .order_by(User.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def email_exists(self, email: str) -> bool:
        """邮箱是否已被未删除用户占用"""
        return await self.get_by_email(email) is not None

    async def exists(self, user_id: int) -> bool:
        return await self.find_user(user_id) is not None

    async def username_exists(self, username: str) -> bool:
        """用户名是否被占用（含已删除用户，用户名唯一）"""
        result = await self.db.execute(select(User.id).where(User.username == username))
        return result.first() is not None

    async def list_users(
        self,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        status: Optional[int] = None,
    ) -> PageResult:
        query = select(User).where(User.deleted == NOT_DELETED)
        if keyword:
            query = query.where(or_(
                User.username.contains(keyword),
                User.nickname.contains(keyword),
                User.mobile.contains(keyword),
            ))
        if status is not None:
            query = query.where(User.status == status)
        query = query.order_by(User.id.desc())
        return await paginate(self.db, query, page, page_size, transformer=UserInfo.model_validate)

    # ==================== 认证相关 ====================

    async def authenticate(self, username: str, password: str) -> Optional[User]:
        """校验用户名密码，失败返回 None"""
        user = await self.get_by_username(username)
        if user is None or not verify_password(password, user.password):
            return None
        return user

    async def validate_password(self, username: str, password: str) -> Optional[UserInfo]:
        user = await self.authenticate(username, password)
        return UserInfo.model_validate(user) if user else None

    async def record_login(self, username: str, ip: Optional[str], success: bool) -> None:
        """更新登录计数（单条 UPDATE）"""
        if success:
            stmt = update(User).where(User.username == username, User.deleted == NOT_DELETED).values(
                login_count=User.login_count + 1,
                failed_login_count=0,
                last_login_time=datetime.now(),
                last_login_ip=ip,
            )
        else:
            stmt = update(User).where(User.username == username, User.deleted == NOT_DELETED).values(
                failed_login_count=User.failed_login_count + 1,
            )
        await self.db.execute(stmt)
        await self.db.commit()

    async def update_password_by_email(self, email: str, password: str) -> UserInfo:
        """按邮箱重置密码，同时清零登录失败计数"""
        user = await self.get_by_email(email)
        if user is None:
            raise NotFoundException("用户")
        user.password = hash_password(password)
        user.failed_login_count = 0
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"用户通过邮箱重置密码: {user.username}")
        return UserInfo.model_validate(user)

    # ==================== 写操作 ====================

    async def register(self, data: RegisterRequest, operator_id: Optional[int] = None) -> UserInfo:
        """注册用户并授予默认角色"""
        if await self.username_exists(data.username):
            raise ConflictException("用户名已存在", code=ErrorCode.ACCOUNT_EXISTS)

        user = User(
            username=data.username,
            password=hash_password(data.password),
            nickname=data.nickname or data.username,
            mobile=data.mobile,
            email=data.email,
            create_by=operator_id,
            update_by=operator_id,
        )
        self.db.add(user)
        await self.db.flush()

        default_role = await RoleService(self.db).get_by_code(DEFAULT_ROLE_CODE)
        if default_role is not None:
            self.db.add(UserRole(user_id=user.id, role_id=default_role.id, create_by=operator_id))
        await self.db.commit()
        await self.db.refresh(user)
        logger.info(f"用户注册成功: {user.username}")
        return UserInfo.model_validate(user)

    async def update_user(self, data: UserUpdate, operator_id: int) -> User:
        user = await self.get_user(data.id)
        for key, value in data.model_dump(exclude_unset=True, exclude={"id"}).items():
            setattr(user, key, value)
        user.update_by = operator_id
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def set_status(self, user_id: int, status: int, operator_id: int) -> User:
        user = await self.get_user(user_id)
        user.status = status
        user.update_by = operator_id
        await self.db.commit()
        await self.db.refresh(user)
        return user

    async def delete_user(self, user_id: int, operator_id: int) -> None:
        """逻辑删除用户及其角色关联"""
        await self.get_user(user_id)
        await self.db.execute(
            update(User).where(User.id == user_id).values(deleted=DELETED, update_by=operator_id)
        )
        await self.db.execute(
            update(UserRole)
            .where(UserRole.user_id == user_id, UserRole.deleted == NOT_DELETED)
            .values(deleted=DELETED, update_by=operator_id)
        )
        await self.db.commit()
        logger.info(f"删除用户: {user_id}")

    # ==================== 权限 ====================

    async def get_permission_info(self, user_id: int) -> PermissionInfo:
        """
        汇总用户权限信息

        角色取启用且未删除的角色；权限标识取这些角色关联菜单上的 permission 字段；
        菜单树不含按钮类型。
        """
        user = await self.get_user(user_id)
        roles = await RoleService(self.db).get_user_roles(user_id)
        menus = await MenuService(self.db).get_menus_for_roles([role.id for role in roles])

        return PermissionInfo(
            user_id=user.id,
            username=user.username,
            nickname=user.nickname,
            roles=[RoleBrief.model_validate(role) for role in roles],
            role_codes=[role.role_code for role in roles],
            permissions=split_permissions(menus),
            menu_tree=build_menu_tree(m for m in menus if m.menu_type != BUTTON_MENU_TYPE),
        )

    async def get_grants(self, user_id: int) -> AccessGrants:
        """访问控制使用的角色与权限集合，用户不存在时为空"""
        if not await self.exists(user_id):
            return AccessGrants()
        info = await self.get_permission_info(user_id)
        return AccessGrants(roles=frozenset(info.role_codes), permissions=frozenset(info.permissions))
