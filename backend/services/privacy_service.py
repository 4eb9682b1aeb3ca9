"""
登录环境记录服务
每次登录尝试写入一条 UserPrivacy
"""

import logging
from typing import List, Optional

from fastapi import Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from models import UserPrivacy
from utils.request import get_client_ip, get_header_snapshot, get_proxy_ip, get_user_agent
from utils.user_agent import parse_user_agent

logger = logging.getLogger(__name__)


def _clip(value: Optional[str], length: int) -> Optional[str]:
    return value[:length] if value else value


class PrivacyService:
    """登录环境记录"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def build_record(
        self,
        request: Request,
        user_id: Optional[int],
        username: Optional[str],
        success: bool,
        fail_reason: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> UserPrivacy:
        """从请求中提取登录环境"""
        user_agent = get_user_agent(request)
        ua = parse_user_agent(user_agent)
        headers = request.headers
        return UserPrivacy(
            user_id=user_id,
            username=_clip(username, 50),
            ip_address=get_client_ip(request),
            real_ip=_clip(headers.get("X-Real-IP"), 64),
            forwarded_for=_clip(headers.get("X-Forwarded-For"), 255),
            proxy_ip=get_proxy_ip(request),
            user_agent=_clip(user_agent, 500),
            browser_name=ua.browser_name,
            browser_version=ua.browser_version,
            browser_engine=ua.browser_engine,
            os_name=ua.os_name,
            os_version=ua.os_version,
            device_type=ua.device_type,
            accept_language=_clip(headers.get("Accept-Language"), 255),
            referer=_clip(headers.get("Referer"), 500),
            request_method=request.method,
            request_uri=_clip(request.url.path, 500),
            host=_clip(headers.get("Host"), 255),
            origin=_clip(headers.get("Origin"), 255),
            login_type="WEB",
            login_result=1 if success else 0,
            fail_reason=_clip(fail_reason, 255),
            login_duration=duration_ms,
            request_headers=get_header_snapshot(request),
        )

    async def record_login(
        self,
        request: Request,
        user_id: Optional[int],
        username: Optional[str],
        success: bool,
        fail_reason: Optional[str] = None,
        duration_ms: Optional[int] = None,
    ) -> UserPrivacy:
        record = self.build_record(request, user_id, username, success, fail_reason, duration_ms)
        self.db.add(record)
        await self.db.commit()
        logger.info(
            f"登录{'成功' if success else '失败'}: {username} | {record.ip_address} | "
            f"{record.browser_name}/{record.os_name}"
        )
        return record

    async def get_recent_logins(self, user_id: int, limit: int = 10) -> List[UserPrivacy]:
        result = await self.db.execute(
            select(UserPrivacy)
            .where(UserPrivacy.user_id == user_id)
            .order_by(UserPrivacy.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
