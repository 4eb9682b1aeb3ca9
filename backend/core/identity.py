"""
身份传递
信任网关注入的 X-User-Id / X-Username 请求头作为调用方身份，
内部服务调用（X-Internal-Call: true）视为系统身份。

身份只保存在当前请求的 request.state 上，请求结束（包括异常路径）即清除，
通过依赖注入显式传给业务处理函数。
"""

import logging
from typing import Iterable, List, Mapping, Optional

from fastapi import Depends, Request
from pydantic import BaseModel, ConfigDict
from starlette.middleware.base import BaseHTTPMiddleware

from .config import get_settings
from .errors import AppException, AuthException, ErrorCode, PermissionException

logger = logging.getLogger(__name__)

USER_ID_HEADER = "X-User-Id"
USERNAME_HEADER = "X-Username"
INTERNAL_CALL_HEADER = "X-Internal-Call"

SYSTEM_USER_ID = 0
SYSTEM_USERNAME = "SYSTEM"

# 认证服务与文件服务使用的白名单
COMMON_ALLOW_LIST: List[str] = [
    "/auth/login",
    "/auth/register",
    "/auth/logout",
    "/coder/auth/login",
    "/coder/auth/register",
    "/coder/auth/logout",
    "/coder/auth/refresh-token",
    "/coder/auth/forgot-password",
    "/coder/auth/reset-password",
    "/coder/auth/send-email-code",
    "/health",
    "/docs/**",
    "/redoc/**",
    "/openapi.json",
    "/favicon.ico",
]

# 用户服务使用的白名单（各项按前缀匹配）
USER_ALLOW_LIST: List[str] = [
    "/coder/auth/login/**",
    "/coder/auth/register/**",
    "/coder/auth/forgot-password/**",
    "/coder/auth/reset-password/**",
    "/coder/auth/send-email-code/**",
    "/coder/user/validate-password/**",
    "/health/**",
    "/docs/**",
    "/openapi.json",
]

ALLOW_LIST_PROFILES = {
    "common": COMMON_ALLOW_LIST,
    "user": USER_ALLOW_LIST,
}


class Identity(BaseModel):
    """请求身份"""
    model_config = ConfigDict(frozen=True)

    user_id: int
    username: str
    is_system: bool = False


SYSTEM_IDENTITY = Identity(user_id=SYSTEM_USER_ID, username=SYSTEM_USERNAME, is_system=True)


def get_allow_list() -> List[str]:
    """当前部署使用的白名单：显式配置优先，否则按 profile 选择"""
    settings = get_settings()
    if settings.identity_allow_list is not None:
        return list(settings.identity_allow_list)
    profile = settings.identity_allow_list_profile
    if profile not in ALLOW_LIST_PROFILES:
        raise ValueError(f"未知的白名单配置: {profile}")
    return ALLOW_LIST_PROFILES[profile]


def match_path(path: str, patterns: Iterable[str]) -> bool:
    """
    路径匹配

    - 普通模式：完全相等
    - 以 /** 结尾：前缀匹配（/docs/** 同时匹配 /docs 与 /docs/xxx）
    """
    for pattern in patterns:
        if pattern.endswith("/**"):
            prefix = pattern[:-3]
            if path == prefix or path.startswith(prefix + "/"):
                return True
        elif path == pattern:
            return True
    return False


def resolve_identity(
    path: str,
    headers: Mapping[str, str],
    allow_list: Iterable[str],
) -> Optional[Identity]:
    """
    根据请求路径和请求头解析身份

    Returns:
        白名单路径返回 None；内部调用返回 SYSTEM_IDENTITY；否则返回用户身份

    Raises:
        AuthException: 既无内部调用标记也缺少身份头
    """
    if match_path(path, allow_list):
        return None

    if (headers.get(INTERNAL_CALL_HEADER) or "").strip().lower() == "true":
        return SYSTEM_IDENTITY

    user_id = (headers.get(USER_ID_HEADER) or "").strip()
    username = (headers.get(USERNAME_HEADER) or "").strip()
    if not user_id or not username:
        raise AuthException(ErrorCode.UNAUTHORIZED, "未授权访问，缺少用户身份信息")

    try:
        return Identity(user_id=int(user_id), username=username)
    except ValueError:
        raise AuthException(ErrorCode.UNAUTHORIZED, "用户身份信息无效")


class IdentityMiddleware(BaseHTTPMiddleware):
    """
    身份传递中间件

    中间件内抛出的异常不会经过应用的异常处理器，因此拒绝时直接返回响应。
    """

    def __init__(self, app, allow_list: Optional[List[str]] = None):
        super().__init__(app)
        self.allow_list = allow_list

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        allow_list = self.allow_list if self.allow_list is not None else get_allow_list()
        try:
            identity = resolve_identity(request.url.path, request.headers, allow_list)
        except AppException as e:
            logger.warning(f"拒绝未认证请求: {request.method} {request.url.path}")
            return e.to_response()

        request.state.identity = identity
        try:
            return await call_next(request)
        finally:
            request.state.identity = None


def get_optional_identity(request: Request) -> Optional[Identity]:
    """获取当前身份，可能为空（依赖注入用）"""
    return getattr(request.state, "identity", None)


def get_current_identity(request: Request) -> Identity:
    """获取当前身份，不存在时返回 401（依赖注入用）"""
    identity = get_optional_identity(request)
    if identity is None:
        raise AuthException(ErrorCode.UNAUTHORIZED)
    return identity


def get_user_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    """获取当前终端用户身份，系统调用返回 401（依赖注入用）"""
    if identity.is_system:
        raise AuthException(ErrorCode.UNAUTHORIZED, "该接口需要用户身份")
    return identity


def get_internal_identity(identity: Identity = Depends(get_current_identity)) -> Identity:
    """仅允许服务间内部调用，终端用户返回 403（依赖注入用）"""
    if not identity.is_system:
        raise PermissionException("该接口仅供内部服务调用")
    return identity


def get_operator_id(identity: Optional[Identity]) -> int:
    """审计字段使用的操作人 ID"""
    return identity.user_id if identity is not None else SYSTEM_USER_ID
