"""
网关认证过滤
匿名路径直接放行，其余请求必须携带有效的访问令牌
"""

import logging
import time
from typing import List, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from core.config import get_settings
from core.identity import match_path
from core.security import decode_token

logger = logging.getLogger(__name__)


def unauthorized(message: str) -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content={"code": 401, "message": message, "timestamp": int(time.time() * 1000)},
    )


def is_anonymous(path: str, anonymous_paths: List[str]) -> bool:
    """匿名路径本身及其子路径都放行"""
    return match_path(path, [p.rstrip("/") + "/**" for p in anonymous_paths])


class GatewayAuthMiddleware(BaseHTTPMiddleware):
    """
    网关认证中间件

    校验通过后把令牌内容放到 request.state.token_data，由代理路由写入身份请求头。
    外部请求携带的 X-Internal-Call 不被信任，内部调用应直连服务。
    """

    def __init__(self, app, anonymous_paths: Optional[List[str]] = None):
        super().__init__(app)
        self.anonymous_paths = anonymous_paths

    async def dispatch(self, request: Request, call_next):
        request.state.token_data = None
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        anonymous_paths = self.anonymous_paths
        if anonymous_paths is None:
            anonymous_paths = get_settings().gateway_anonymous_paths
        if is_anonymous(path, anonymous_paths):
            return await call_next(request)

        auth_header = request.headers.get("Authorization") or ""
        scheme, _, token = auth_header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return unauthorized("缺少认证Token")

        token_data = decode_token(token.strip(), expected_type="access")
        if token_data is None:
            logger.info(f"令牌校验失败: {request.method} {path}")
            return unauthorized("Token无效或已过期")

        request.state.token_data = token_data
        try:
            return await call_next(request)
        finally:
            request.state.token_data = None
