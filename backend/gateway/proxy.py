"""
网关转发
按最长路径前缀选择下游服务，原样转发请求与响应
"""

import logging
from typing import AsyncIterator, Dict, Optional

import httpx
from fastapi import APIRouter, Depends, Request, Response

from core.config import get_settings
from core.errors import ErrorCode, NotFoundException, ServiceUnavailableException
from core.identity import INTERNAL_CALL_HEADER, USER_ID_HEADER, USERNAME_HEADER

logger = logging.getLogger(__name__)

router = APIRouter(tags=["网关"])

TOKEN_HEADER = "X-Token"

# 不应逐跳转发的请求头
HOP_BY_HOP_HEADERS = {
    "connection", "keep-alive", "proxy-authenticate", "proxy-authorization",
    "te", "trailers", "transfer-encoding", "upgrade", "host", "content-length",
}

# 由网关写入，客户端传入的一律丢弃
IDENTITY_HEADERS = {
    USER_ID_HEADER.lower(), USERNAME_HEADER.lower(), INTERNAL_CALL_HEADER.lower(), TOKEN_HEADER.lower(),
}

PROXY_METHODS = ["GET", "POST", "PUT", "DELETE", "PATCH", "HEAD"]


async def get_http_client() -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=get_settings().service_timeout) as client:
        yield client


def resolve_target(path: str, routes: Dict[str, str]) -> Optional[str]:
    """最长前缀匹配，返回下游服务地址"""
    best = None
    for prefix, target in routes.items():
        prefix = prefix.rstrip("/")
        if path == prefix or path.startswith(prefix + "/"):
            if best is None or len(prefix) > len(best[0]):
                best = (prefix, target)
    return best[1] if best else None


def build_forward_headers(request: Request) -> Dict[str, str]:
    headers = {
        key: value
        for key, value in request.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS and key.lower() not in IDENTITY_HEADERS
    }
    token_data = getattr(request.state, "token_data", None)
    if token_data is not None:
        headers[USER_ID_HEADER] = str(token_data.user_id)
        headers[USERNAME_HEADER] = token_data.username
        _, _, token = request.headers.get("Authorization", "").partition(" ")
        headers[TOKEN_HEADER] = token.strip()
    return headers


@router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
async def proxy(
    path: str,
    request: Request,
    client: httpx.AsyncClient = Depends(get_http_client),
):
    request_path = request.url.path
    target = resolve_target(request_path, get_settings().gateway_routes)
    if target is None:
        raise NotFoundException("路由", request_path, code=ErrorCode.RESOURCE_NOT_FOUND)

    url = target.rstrip("/") + request_path
    try:
        upstream = await client.request(
            request.method,
            url,
            params=list(request.query_params.multi_items()),
            headers=build_forward_headers(request),
            content=await request.body(),
        )
    except httpx.RequestError as e:
        logger.error(f"转发失败: {request.method} {url} | {e}")
        raise ServiceUnavailableException(target, str(e))

    headers = {
        key: value
        for key, value in upstream.headers.items()
        if key.lower() not in HOP_BY_HOP_HEADERS and key.lower() != "content-encoding"
    }
    return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)
