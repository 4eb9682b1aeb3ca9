"""
认证服务
登录、注册、登出、刷新令牌、邮箱找回密码
"""

import logging
import time
from typing import Optional, Protocol

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import AppException, AuthException, ErrorCode, ValidationException
from core.security import TokenData, create_token_pair, decode_token
from schemas.auth import LoginRequest, RegisterRequest, ResetPasswordRequest, TokenResponse
from schemas.user import UserInfo, PermissionInfo
from utils.request import get_client_ip
from .mail_service import MailSender, render_code_email
from .privacy_service import PrivacyService
from .verify_code_service import PURPOSES, VerifyCodeService

logger = logging.getLogger(__name__)


class UserDirectory(Protocol):
    """用户数据来源：本地 UserService 或远程 UserServiceClient"""

    async def validate_password(self, username: str, password: str) -> Optional[UserInfo]: ...

    async def find_user(self, user_id: int) -> Optional[UserInfo]: ...

    async def register(self, data: RegisterRequest) -> UserInfo: ...

    async def record_login(self, username: str, ip: Optional[str], success: bool) -> None: ...

    async def get_permission_info(self, user_id: int) -> PermissionInfo: ...

    async def get_by_email(self, email: str) -> Optional[UserInfo]: ...

    async def update_password_by_email(self, email: str, password: str) -> UserInfo: ...


class AuthService:
    """认证服务"""

    def __init__(
        self,
        db: AsyncSession,
        directory: UserDirectory,
        codes: Optional[VerifyCodeService] = None,
        mailer: Optional[MailSender] = None,
    ):
        self.db = db
        self.directory = directory
        self.codes = codes
        self.mailer = mailer
        self.privacy = PrivacyService(db)

    def _issue_tokens(self, user_id: int, username: str, roles: list) -> TokenResponse:
        access_token, refresh_token = create_token_pair(
            TokenData(user_id=user_id, username=username, roles=roles)
        )
        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=get_settings().jwt_expire_minutes * 60,
            user_id=user_id,
            username=username,
            roles=roles,
        )

    async def login(self, data: LoginRequest, request: Request) -> TokenResponse:
        """
        用户登录

        无论成功与否都写入一条登录环境记录；失败时更新失败计数后返回 401。
        """
        started = time.perf_counter()
        ip = get_client_ip(request)

        def elapsed_ms() -> int:
            return int((time.perf_counter() - started) * 1000)

        user = await self.directory.validate_password(data.username, data.password)
        if user is None:
            await self.directory.record_login(data.username, ip, False)
            await self.privacy.record_login(
                request, None, data.username, False, "用户名或密码错误", elapsed_ms()
            )
            raise AuthException(ErrorCode.LOGIN_FAILED)

        if user.status != 1:
            await self.privacy.record_login(
                request, user.id, user.username, False, "账户已被禁用", elapsed_ms()
            )
            raise AuthException(ErrorCode.ACCOUNT_DISABLED)

        permission_info = await self.directory.get_permission_info(user.id)
        tokens = self._issue_tokens(user.id, user.username, permission_info.role_codes)

        await self.directory.record_login(user.username, ip, True)
        await self.privacy.record_login(request, user.id, user.username, True, None, elapsed_ms())
        return tokens

    async def register(self, data: RegisterRequest) -> UserInfo:
        return await self.directory.register(data)

    async def refresh_token(self, refresh_token: str) -> TokenResponse:
        """
        用刷新令牌换取新令牌对

        用户状态与角色按当前数据重新加载：用户已删除时令牌失效，已禁用时拒绝签发。
        """
        token_data = decode_token(refresh_token, expected_type="refresh")
        if token_data is None:
            raise AuthException(ErrorCode.REFRESH_TOKEN_INVALID)

        user = await self.directory.find_user(token_data.user_id)
        if user is None:
            raise AuthException(ErrorCode.REFRESH_TOKEN_INVALID)
        if user.status != 1:
            logger.warning(f"已禁用账户尝试刷新令牌: {user.username}")
            raise AuthException(ErrorCode.ACCOUNT_DISABLED)

        permission_info = await self.directory.get_permission_info(user.id)
        return self._issue_tokens(user.id, user.username, permission_info.role_codes)

    async def logout(self, token: str) -> TokenData:
        """
        登出

        令牌为无状态 JWT，服务端只校验并记录，客户端丢弃令牌即完成登出。
        """
        token_data = decode_token(token)
        if token_data is None:
            raise AuthException(ErrorCode.TOKEN_INVALID)
        logger.info(f"用户登出: {token_data.username}")
        return token_data

    async def get_user_info(self, user_id: int) -> PermissionInfo:
        return await self.directory.get_permission_info(user_id)

    # ==================== 找回密码 ====================

    async def send_email_code(self, email: str, purpose: str) -> None:
        """
        向邮箱发送验证码

        邮箱未注册时不发送也不报错，调用方无法据此判断邮箱是否注册。
        """
        if purpose not in PURPOSES:
            raise ValidationException(f"不支持的验证码类型: {purpose}")
        user = await self.directory.get_by_email(email)
        if user is None:
            logger.info(f"验证码请求的邮箱未注册: {email}")
            return

        code = await self.codes.issue(email, purpose)
        subject, html = render_code_email(PURPOSES[purpose], code, get_settings().email_code_expire_seconds)
        try:
            await self.mailer.send_html(email, subject, html)
        except AppException:
            await self.codes.discard(email, purpose, release_interval=True)
            raise
        logger.info(f"验证码已发送: {email} ({purpose})")

    async def forgot_password(self, email: str) -> None:
        await self.send_email_code(email, "reset")

    async def reset_password(self, data: ResetPasswordRequest) -> None:
        """校验邮箱验证码后重置密码，验证码一次有效"""
        if data.new_password != data.confirm_password:
            raise ValidationException("两次输入的密码不一致")
        if not await self.codes.verify(data.email, "reset", data.email_code):
            raise AppException(ErrorCode.EMAIL_CODE_INVALID)

        user = await self.directory.update_password_by_email(data.email, data.new_password)
        await self.codes.discard(data.email, "reset")
        logger.info(f"密码已重置: {user.username}")
