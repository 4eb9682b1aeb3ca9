"""
用户路由
用户资料管理，以及供认证服务、文件服务调用的内部接口
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.guard import (
    ADMIN_ROLE, AccessRequirement, GrantsProvider, check_self_or, get_grants_provider, require_roles
)
from core.identity import Identity, get_current_identity, get_internal_identity, get_operator_id
from schemas.auth import RegisterRequest
from schemas.response import success
from schemas.user import (
    UserInfo, UserUpdate, UserStatusUpdate, PasswordValidateRequest, LoginInfoRequest, PasswordUpdateByEmail
)
from services.user_service import UserService

router = APIRouter(prefix="/user", tags=["用户管理"])

USER_QUERY_PERMISSION = "system:user:query"


def get_user_service(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


# ==================== 内部接口 ====================
# 除 validate-password 外只接受 X-Internal-Call 系统身份

@router.post("/validate-password")
async def validate_password(
    data: PasswordValidateRequest,
    service: UserService = Depends(get_user_service),
):
    """校验用户名密码，失败时 data 为空"""
    user = await service.validate_password(data.username, data.password)
    return success(user.model_dump() if user else None)


@router.post("/login-info")
async def update_login_info(
    data: LoginInfoRequest,
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    await service.record_login(data.username, data.ip, data.success)
    return success(None, "已更新")


@router.get("/get-by-username")
async def get_by_username(
    username: str = Query(..., min_length=1),
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_by_username(username)
    return success(UserInfo.model_validate(user).model_dump() if user else None)


@router.get("/get-by-email")
async def get_by_email(
    email: str = Query(..., min_length=3, max_length=100),
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    user = await service.get_by_email(email)
    return success(UserInfo.model_validate(user).model_dump() if user else None)


@router.post("/update-password-by-email")
async def update_password_by_email(
    data: PasswordUpdateByEmail,
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    """找回密码：认证服务校验邮箱验证码后调用"""
    user = await service.update_password_by_email(data.email, data.password)
    return success(user.model_dump(), "密码修改成功")


@router.get("/get/{user_id}")
async def get_user(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    provider: GrantsProvider = Depends(get_grants_provider),
    service: UserService = Depends(get_user_service),
):
    """内部调用、本人或拥有用户查询权限"""
    if not identity.is_system:
        await check_self_or(identity, user_id, AccessRequirement(permissions=(USER_QUERY_PERMISSION,)), provider)
    user = await service.get_user(user_id)
    return success(UserInfo.model_validate(user).model_dump())


@router.get("/exists")
async def user_exists(
    user_id: int = Query(...),
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    return success(await service.exists(user_id))


@router.get("/check-username")
async def check_username(
    username: str = Query(..., min_length=1),
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
):
    """用户名是否已被占用"""
    return success(await service.username_exists(username))


@router.get("/check-email")
async def check_email(
    email: str = Query(..., min_length=3, max_length=100),
    identity: Identity = Depends(get_current_identity),
    service: UserService = Depends(get_user_service),
):
    """邮箱是否已被占用"""
    return success(await service.email_exists(email))


@router.post("/register")
async def register_user(
    data: RegisterRequest,
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    user = await service.register(data, operator_id=get_operator_id(identity))
    return success(user.model_dump(), "注册成功")


@router.get("/{user_id}/permission-info")
async def get_permission_info(
    user_id: int,
    identity: Identity = Depends(get_internal_identity),
    service: UserService = Depends(get_user_service),
):
    info = await service.get_permission_info(user_id)
    return success(info.model_dump())


# ==================== 管理接口 ====================

@router.get("/list")
async def list_users(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    keyword: Optional[str] = None,
    status: Optional[int] = Query(None, ge=0, le=1),
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: UserService = Depends(get_user_service),
):
    result = await service.list_users(page, page_size, keyword, status)
    return success(result.to_dict())


@router.put("/update")
async def update_user(
    data: UserUpdate,
    identity: Identity = Depends(get_current_identity),
    provider: GrantsProvider = Depends(get_grants_provider),
    service: UserService = Depends(get_user_service),
):
    """修改用户资料：本人或管理员"""
    await check_self_or(identity, data.id, AccessRequirement(roles=(ADMIN_ROLE,)), provider)
    user = await service.update_user(data, get_operator_id(identity))
    return success(UserInfo.model_validate(user).model_dump(), "更新成功")


@router.put("/status/{user_id}")
async def update_user_status(
    user_id: int,
    data: UserStatusUpdate,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: UserService = Depends(get_user_service),
):
    user = await service.set_status(user_id, data.status, identity.user_id)
    return success(UserInfo.model_validate(user).model_dump(), "状态已更新")


@router.delete("/delete/{user_id}")
async def delete_user(
    user_id: int,
    identity: Identity = Depends(require_roles(ADMIN_ROLE)),
    service: UserService = Depends(get_user_service),
):
    await service.delete_user(user_id, identity.user_id)
    return success(None, "删除成功")
