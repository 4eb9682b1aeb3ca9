"""
角色服务
"""

import logging
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ConflictException, ErrorCode, NotFoundException
from core.pagination import PageResult, paginate
from models import Role, RoleMenu, User, UserRole, NOT_DELETED, DELETED
from schemas.role import RoleCreate, RoleUpdate, RoleInfo

logger = logging.getLogger(__name__)


class RoleService:
    """角色服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_role(self, role_id: int) -> Role:
        result = await self.db.execute(
            select(Role).where(Role.id == role_id, Role.deleted == NOT_DELETED)
        )
        role = result.scalar_one_or_none()
        if role is None:
            raise NotFoundException("角色", role_id)
        return role

    async def get_by_code(self, role_code: str) -> Optional[Role]:
        result = await self.db.execute(
            select(Role).where(Role.role_code == role_code, Role.deleted == NOT_DELETED)
        )
        return result.scalar_one_or_none()

    async def create_role(self, data: RoleCreate, operator_id: int) -> Role:
        if await self.get_by_code(data.role_code):
            raise ConflictException(f"角色编码已存在: {data.role_code}", code=ErrorCode.RESOURCE_EXISTS)
        role = Role(**data.model_dump(), create_by=operator_id, update_by=operator_id)
        self.db.add(role)
        await self.db.commit()
        await self.db.refresh(role)
        logger.info(f"创建角色: {role.role_code}")
        return role

    async def update_role(self, data: RoleUpdate, operator_id: int) -> Role:
        role = await self.get_role(data.id)
        for key, value in data.model_dump(exclude_unset=True, exclude={"id"}).items():
            setattr(role, key, value)
        role.update_by = operator_id
        await self.db.commit()
        await self.db.refresh(role)
        return role

    async def delete_role(self, role_id: int, operator_id: int) -> None:
        """逻辑删除角色及其关联"""
        await self.get_role(role_id)
        await self.db.execute(
            update(Role).where(Role.id == role_id).values(deleted=DELETED, update_by=operator_id)
        )
        for join_model in (UserRole, RoleMenu):
            await self.db.execute(
                update(join_model)
                .where(join_model.role_id == role_id, join_model.deleted == NOT_DELETED)
                .values(deleted=DELETED, update_by=operator_id)
            )
        await self.db.commit()
        logger.info(f"删除角色: {role_id}")

    async def list_roles(
        self,
        page: int = 1,
        page_size: int = 20,
        keyword: Optional[str] = None,
        status: Optional[int] = None,
    ) -> PageResult:
        query = select(Role).where(Role.deleted == NOT_DELETED)
        if keyword:
            query = query.where(or_(Role.role_code.contains(keyword), Role.role_name.contains(keyword)))
        if status is not None:
            query = query.where(Role.status == status)
        query = query.order_by(Role.sort_order, Role.id)
        return await paginate(self.db, query, page, page_size, transformer=RoleInfo.model_validate)

    async def get_user_roles(self, user_id: int, active_only: bool = True) -> List[Role]:
        """用户持有的角色"""
        query = (
            select(Role)
            .join(UserRole, UserRole.role_id == Role.id)
            .where(
                UserRole.user_id == user_id,
                UserRole.deleted == NOT_DELETED,
                Role.deleted == NOT_DELETED,
            )
            .order_by(Role.sort_order, Role.id)
        )
        if active_only:
            query = query.where(Role.status == 1)
        result = await self.db.execute(query)
        return list(result.scalars().unique().all())

    async def assign_user_roles(self, user_id: int, role_ids: List[int], operator_id: int) -> List[int]:
        """
        覆盖用户的角色：旧关联逻辑删除，再插入新关联
        """
        user = await self.db.execute(
            select(User.id).where(User.id == user_id, User.deleted == NOT_DELETED)
        )
        if user.first() is None:
            raise NotFoundException("用户", user_id)

        role_ids = sorted(set(role_ids))
        if role_ids:
            found = await self.db.execute(
                select(Role.id).where(Role.id.in_(role_ids), Role.deleted == NOT_DELETED)
            )
            missing = set(role_ids) - set(found.scalars().all())
            if missing:
                raise NotFoundException("角色", sorted(missing))

        await self.db.execute(
            update(UserRole)
            .where(UserRole.user_id == user_id, UserRole.deleted == NOT_DELETED)
            .values(deleted=DELETED, update_by=operator_id)
        )
        for role_id in role_ids:
            self.db.add(UserRole(user_id=user_id, role_id=role_id, create_by=operator_id, update_by=operator_id))
        await self.db.commit()
        logger.info(f"用户 {user_id} 角色已更新: {role_ids}")
        return role_ids
