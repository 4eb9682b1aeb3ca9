"""
认证路由
登录、注册、登出、刷新令牌、当前用户信息、邮箱找回密码
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.deps import get_user_directory
from core.identity import Identity, get_user_identity
from core.security import get_bearer_token
from schemas.auth import (
    EMAIL_PATTERN, LoginRequest, RegisterRequest, RefreshTokenRequest, LoginRecordInfo,
    ForgotPasswordRequest, ResetPasswordRequest,
)
from schemas.response import success
from services.auth_service import AuthService
from services.mail_service import MailSender, get_mail_sender
from services.privacy_service import PrivacyService
from services.verify_code_service import VerifyCodeService, get_verify_code_service

router = APIRouter(prefix="/auth", tags=["认证"])


def get_auth_service(
    db: AsyncSession = Depends(get_db),
    directory=Depends(get_user_directory),
    codes: VerifyCodeService = Depends(get_verify_code_service),
    mailer: MailSender = Depends(get_mail_sender),
) -> AuthService:
    return AuthService(db, directory, codes, mailer)


@router.post("/login")
async def login(
    data: LoginRequest,
    request: Request,
    service: AuthService = Depends(get_auth_service),
):
    """用户名密码登录，返回访问令牌与刷新令牌"""
    tokens = await service.login(data, request)
    return success(tokens.model_dump(), "登录成功")


@router.post("/register")
async def register(
    data: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
):
    user = await service.register(data)
    return success(user.model_dump(), "注册成功")


@router.post("/logout")
async def logout(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(get_auth_service),
):
    token_data = await service.logout(token)
    return success({"user_id": token_data.user_id}, "已登出")


@router.post("/refresh-token")
async def refresh_token(
    data: RefreshTokenRequest,
    service: AuthService = Depends(get_auth_service),
):
    tokens = await service.refresh_token(data.refresh_token)
    return success(tokens.model_dump(), "刷新成功")


@router.get("/user-info")
async def get_user_info(
    identity: Identity = Depends(get_user_identity),
    service: AuthService = Depends(get_auth_service),
):
    """当前用户的角色、权限与菜单树"""
    info = await service.get_user_info(identity.user_id)
    return success(info.model_dump())


@router.get("/login-records")
async def get_login_records(
    limit: int = Query(10, ge=1, le=100),
    identity: Identity = Depends(get_user_identity),
    db: AsyncSession = Depends(get_db),
):
    """当前用户最近的登录记录"""
    records = await PrivacyService(db).get_recent_logins(identity.user_id, limit)
    return success([LoginRecordInfo.model_validate(r).model_dump() for r in records])


@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    """向注册邮箱发送重置密码验证码"""
    await service.forgot_password(data.email)
    return success(None, "如果该邮箱已注册，验证码已发送到您的邮箱")


@router.post("/reset-password")
async def reset_password(
    data: ResetPasswordRequest,
    service: AuthService = Depends(get_auth_service),
):
    await service.reset_password(data)
    return success(None, "密码重置成功")


@router.post("/send-email-code")
async def send_email_code(
    email: str = Query(..., max_length=100, pattern=EMAIL_PATTERN),
    type: str = Query("reset"),
    service: AuthService = Depends(get_auth_service),
):
    await service.send_email_code(email, type)
    return success(None, "如果该邮箱已注册，验证码已发送到您的邮箱")
