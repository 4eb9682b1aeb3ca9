"""
依赖注入
按部署方式（user_source）选择用户数据来源：本地数据库或远程用户服务
"""

from typing import Awaitable, Callable

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import get_db
from .guard import get_grants_provider


__all__ = [
    "get_db",
    "get_grants_provider",
    "get_user_directory",
    "get_user_checker",
]


async def get_user_directory(db: AsyncSession = Depends(get_db)):
    """认证服务使用的用户目录"""
    if get_settings().user_source == "remote":
        from clients.user_client import UserServiceClient
        return UserServiceClient()

    from services.user_service import UserService
    return UserService(db)


async def get_user_checker(
    directory=Depends(get_user_directory),
) -> Callable[[int], Awaitable[bool]]:
    """文件服务校验所有者是否存在"""
    return directory.exists
