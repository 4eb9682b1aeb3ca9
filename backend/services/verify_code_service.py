"""
邮箱验证码服务

验证码、发送间隔、校验失败次数各占一个 Redis 键，均带过期时间。
连续校验失败达到上限后验证码作废。
"""

import logging
import secrets
from contextlib import contextmanager

from fastapi import Depends
from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.cache import get_redis
from core.config import get_settings
from core.errors import AppException, ErrorCode, ServiceUnavailableException

logger = logging.getLogger(__name__)

CODE_KEY = "coder:email:code:{purpose}:{email}"
INTERVAL_KEY = "coder:email:interval:{email}"
ATTEMPT_KEY = "coder:email:attempt:{purpose}:{email}"

# 验证码用途 -> 邮件中的描述
PURPOSES = {
    "reset": "重置密码",
}


def generate_code(length: int = 6) -> str:
    """生成数字验证码，首位不为 0"""
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


@contextmanager
def redis_errors():
    try:
        yield
    except RedisError as e:
        logger.error(f"Redis 操作失败: {e}")
        raise ServiceUnavailableException("redis", str(e))


class VerifyCodeService:
    """邮箱验证码"""

    def __init__(self, redis: Redis):
        self.redis = redis
        self.settings = get_settings()

    async def issue(self, email: str, purpose: str) -> str:
        """
        生成并保存验证码

        Raises:
            AppException: 距上次发送不足间隔时间
        """
        email = email.lower()
        with redis_errors():
            acquired = await self.redis.set(
                INTERVAL_KEY.format(email=email), "1",
                ex=self.settings.email_code_interval_seconds, nx=True,
            )
            if not acquired:
                raise AppException(ErrorCode.EMAIL_CODE_TOO_FREQUENT)

            code = generate_code()
            await self.redis.set(
                CODE_KEY.format(purpose=purpose, email=email), code,
                ex=self.settings.email_code_expire_seconds,
            )
            await self.redis.delete(ATTEMPT_KEY.format(purpose=purpose, email=email))
        return code

    async def verify(self, email: str, purpose: str, code: str) -> bool:
        email = email.lower()
        code_key = CODE_KEY.format(purpose=purpose, email=email)
        attempt_key = ATTEMPT_KEY.format(purpose=purpose, email=email)
        with redis_errors():
            stored = await self.redis.get(code_key)
            if stored is None:
                return False
            if secrets.compare_digest(stored, code):
                return True

            attempts = await self.redis.incr(attempt_key)
            if attempts == 1:
                await self.redis.expire(attempt_key, self.settings.email_code_expire_seconds)
            if attempts >= self.settings.email_code_max_attempts:
                await self.redis.delete(code_key, attempt_key)
                logger.warning(f"验证码校验失败次数过多，已作废: {email}")
        return False

    async def discard(self, email: str, purpose: str, release_interval: bool = False) -> None:
        """作废验证码；发送失败时同时解除发送间隔限制"""
        email = email.lower()
        keys = [CODE_KEY.format(purpose=purpose, email=email), ATTEMPT_KEY.format(purpose=purpose, email=email)]
        if release_interval:
            keys.append(INTERVAL_KEY.format(email=email))
        with redis_errors():
            await self.redis.delete(*keys)


def get_verify_code_service(redis: Redis = Depends(get_redis)) -> VerifyCodeService:
    return VerifyCodeService(redis)
