"""
角色路由
角色管理与用户角色分配
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.guard import ADMIN_ROLE, require_roles
from core.identity import Identity, get_current_identity
from schemas.response import success
from schemas.role import RoleCreate, RoleUpdate, RoleInfo, UserRoleAssign
from services.role_service import RoleService

router = APIRouter(prefix="/role", tags=["角色管理"])
user_role_router = APIRouter(prefix="/user-role", tags=["角色管理"])


def get_role_service(db: AsyncSession = Depends(get_db)) -> RoleService:
    return RoleService(db)


@router.post("/create")
async def create_role(
    data: RoleCreate,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: RoleService = Depends(get_role_service),
):
    role = await service.create_role(data, identity.user_id)
    return success(RoleInfo.model_validate(role).model_dump(), "创建成功")


@router.put("/update")
async def update_role(
    data: RoleUpdate,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: RoleService = Depends(get_role_service),
):
    role = await service.update_role(data, identity.user_id)
    return success(RoleInfo.model_validate(role).model_dump(), "更新成功")


@router.delete("/delete/{role_id}")
async def delete_role(
    role_id: int,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: RoleService = Depends(get_role_service),
):
    await service.delete_role(role_id, identity.user_id)
    return success(None, "删除成功")


@router.get("/get/{role_id}")
async def get_role(
    role_id: int,
    identity: Identity = Depends(get_current_identity),
    service: RoleService = Depends(get_role_service),
):
    role = await service.get_role(role_id)
    return success(RoleInfo.model_validate(role).model_dump())


@router.get("/list")
async def list_roles(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    keyword: Optional[str] = None,
    status: Optional[int] = Query(None, ge=0, le=1),
    identity: Identity = Depends(get_current_identity),
    service: RoleService = Depends(get_role_service),
):
    result = await service.list_roles(page, page_size, keyword, status)
    return success(result.to_dict())


# ==================== 用户角色 ====================

@user_role_router.post("/assign")
async def assign_user_roles(
    data: UserRoleAssign,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: RoleService = Depends(get_role_service),
):
    """覆盖用户的角色"""
    role_ids = await service.assign_user_roles(data.user_id, data.role_ids, identity.user_id)
    return success({"user_id": data.user_id, "role_ids": role_ids}, "分配成功")


@user_role_router.get("/user/{user_id}")
async def get_user_roles(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    service: RoleService = Depends(get_role_service),
):
    roles = await service.get_user_roles(user_id, active_only=False)
    return success([RoleInfo.model_validate(r).model_dump() for r in roles])
