"""
健康检查路由
"""

import logging
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from core.config import get_settings
from core.database import engine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["健康检查"])

_start_time = datetime.now()


class ComponentHealth(BaseModel):
    """组件健康状态"""
    status: str
    message: Optional[str] = None
    latency_ms: Optional[float] = None


class HealthStatus(BaseModel):
    """健康状态响应"""
    status: str  # healthy, unhealthy
    service: str
    version: str
    timestamp: str
    uptime_seconds: float
    components: dict


async def check_database() -> ComponentHealth:
    start = time.perf_counter()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"数据库健康检查失败: {e}")
        return ComponentHealth(status="unhealthy", message=str(e))
    return ComponentHealth(
        status="healthy",
        message="数据库连接正常",
        latency_ms=round((time.perf_counter() - start) * 1000, 2),
    )


@router.get("/health")
async def health_check():
    settings = get_settings()
    database = await check_database()
    return HealthStatus(
        status=database.status,
        service=settings.service_name,
        version=settings.app_version,
        timestamp=datetime.now().isoformat(),
        uptime_seconds=round((datetime.now() - _start_time).total_seconds(), 2),
        components={"database": database.model_dump()},
    ).model_dump()
