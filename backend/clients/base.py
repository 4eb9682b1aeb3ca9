"""
服务间 HTTP 调用基类
所有请求携带 X-Internal-Call: true，由下游识别为系统调用；
响应按统一格式 {code, message, data} 解包。
"""

import logging
from typing import Any, Optional

import httpx

from core.config import get_settings
from core.errors import (
    AppException, ErrorCode, ERROR_HTTP_STATUS, ServiceUnavailableException
)
from core.identity import INTERNAL_CALL_HEADER

logger = logging.getLogger(__name__)

SUCCESS_CODES = (ErrorCode.SUCCESS, 200)


class ServiceClient:
    """下游服务客户端"""

    service_name = "service"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else get_settings().service_timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self.transport,
            headers={INTERNAL_CALL_HEADER: "true"},
        )

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        json: Any = None,
    ) -> Any:
        """
        发起调用并返回 data 字段

        Raises:
            ServiceUnavailableException: 网络不可达、超时或下游 5xx
            AppException: 下游返回业务错误（保留下游错误码）
        """
        async with self._client() as client:
            try:
                response = await client.request(method, path, params=params, json=json)
            except httpx.RequestError as e:
                logger.error(f"调用 {self.service_name} 失败: {method} {path} | {e!r}")
                raise ServiceUnavailableException(self.service_name, str(e))

        if response.status_code >= 500:
            logger.error(f"{self.service_name} 返回 {response.status_code}: {method} {path}")
            raise ServiceUnavailableException(self.service_name, f"HTTP {response.status_code}")

        try:
            body = response.json()
        except ValueError:
            raise AppException(ErrorCode.EXTERNAL_API_ERROR, f"{self.service_name} 返回了无法解析的响应")

        code = body.get("code") if isinstance(body, dict) else None
        if response.status_code < 400 and code in SUCCESS_CODES:
            return body.get("data")

        message = body.get("message") if isinstance(body, dict) else None
        if code not in ERROR_HTTP_STATUS:
            code = ErrorCode.EXTERNAL_API_ERROR
        logger.warning(f"{self.service_name} 业务错误: {method} {path} | {code} {message}")
        raise AppException(code, message)
