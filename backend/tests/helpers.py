"""
测试工具函数
"""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.identity import Identity, INTERNAL_CALL_HEADER, USER_ID_HEADER, USERNAME_HEADER
from core.security import hash_password
from models import Role, User, UserRole

INTERNAL_HEADERS = {INTERNAL_CALL_HEADER: "true"}


async def create_test_user(
    session: AsyncSession,
    username: str,
    password: str = "secret123",
    role_codes: Iterable[str] = (),
    status: int = 1,
    nickname: Optional[str] = None,
) -> User:
    """创建测试用户并绑定角色（角色须已存在）"""
    user = User(
        username=username,
        password=hash_password(password),
        nickname=nickname or username,
        status=status,
    )
    session.add(user)
    await session.flush()
    for code in role_codes:
        role = (await session.execute(select(Role).where(Role.role_code == code))).scalar_one()
        session.add(UserRole(user_id=user.id, role_id=role.id))
    await session.commit()
    await session.refresh(user)
    return user


def identity_headers(user: User) -> Dict[str, str]:
    """网关注入的身份请求头"""
    return {USER_ID_HEADER: str(user.id), USERNAME_HEADER: user.username}


def as_identity(user: User) -> Identity:
    return Identity(user_id=user.id, username=user.username)


class MemoryRedis:
    """验证码测试使用的内存 Redis，只实现用到的命令，过期时间只记录不生效"""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}

    async def set(self, name: str, value, ex: Optional[int] = None, nx: bool = False):
        if nx and name in self.values:
            return None
        self.values[name] = str(value)
        if ex is not None:
            self.ttls[name] = ex
        return True

    async def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    async def delete(self, *names: str) -> int:
        removed = [name for name in names if self.values.pop(name, None) is not None]
        for name in names:
            self.ttls.pop(name, None)
        return len(removed)

    async def incr(self, name: str) -> int:
        value = int(self.values.get(name, 0)) + 1
        self.values[name] = str(value)
        return value

    async def expire(self, name: str, seconds: int) -> bool:
        if name not in self.values:
            return False
        self.ttls[name] = seconds
        return True

    def keys_like(self, prefix: str) -> List[str]:
        return [key for key in self.values if key.startswith(prefix)]
