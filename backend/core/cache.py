"""
Redis 连接
邮箱验证码、发送间隔与校验失败次数保存在 Redis 中
"""

import logging
from typing import Optional

import redis.asyncio as redis

from core.config import get_settings

logger = logging.getLogger(__name__)

_redis_client: Optional[redis.Redis] = None


def get_redis() -> redis.Redis:
    """获取 Redis 客户端（依赖注入用），首次使用时创建，连接按需建立"""
    global _redis_client
    if _redis_client is None:
        settings = get_settings()
        _redis_client = redis.Redis.from_url(
            settings.redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5,
        )
        logger.info(f"Redis 客户端已创建: {settings.redis_host}:{settings.redis_port}")
    return _redis_client


async def close_cache():
    """关闭 Redis 连接"""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis 连接已关闭")
