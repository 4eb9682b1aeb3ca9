"""
API 网关
校验 Bearer 令牌并把身份以请求头形式转发给下游服务
"""

from .filter import GatewayAuthMiddleware
from .proxy import router, get_http_client, resolve_target

__all__ = ["GatewayAuthMiddleware", "router", "get_http_client", "resolve_target"]
