"""
用户服务客户端
认证服务与文件服务通过它查询用户、校验密码、获取权限
"""

from typing import Optional

from core.config import get_settings
from core.errors import AppException, ErrorCode
from core.guard import AccessGrants
from schemas.auth import RegisterRequest
from schemas.user import UserInfo, PermissionInfo
from .base import ServiceClient


class UserServiceClient(ServiceClient):
    """用户服务客户端"""

    service_name = "user-service"

    def __init__(self, base_url: Optional[str] = None, **kwargs):
        settings = get_settings()
        super().__init__(base_url or settings.user_service_url, **kwargs)
        self.prefix = settings.api_prefix

    async def validate_password(self, username: str, password: str) -> Optional[UserInfo]:
        data = await self.request(
            "POST", f"{self.prefix}/user/validate-password",
            json={"username": username, "password": password},
        )
        return UserInfo.model_validate(data) if data else None

    async def get_by_username(self, username: str) -> Optional[UserInfo]:
        data = await self.request("GET", f"{self.prefix}/user/get-by-username", params={"username": username})
        return UserInfo.model_validate(data) if data else None

    async def get_by_email(self, email: str) -> Optional[UserInfo]:
        data = await self.request("GET", f"{self.prefix}/user/get-by-email", params={"email": email})
        return UserInfo.model_validate(data) if data else None

    async def update_password_by_email(self, email: str, password: str) -> UserInfo:
        data = await self.request(
            "POST", f"{self.prefix}/user/update-password-by-email",
            json={"email": email, "password": password},
        )
        return UserInfo.model_validate(data)

    async def get_user(self, user_id: int) -> UserInfo:
        return UserInfo.model_validate(await self.request("GET", f"{self.prefix}/user/get/{user_id}"))

    async def find_user(self, user_id: int) -> Optional[UserInfo]:
        """用户不存在或已删除时返回 None"""
        try:
            return await self.get_user(user_id)
        except AppException as e:
            if e.code == ErrorCode.RESOURCE_NOT_FOUND:
                return None
            raise

    async def exists(self, user_id: int) -> bool:
        return bool(await self.request("GET", f"{self.prefix}/user/exists", params={"user_id": user_id}))

    async def username_exists(self, username: str) -> bool:
        return bool(await self.request("GET", f"{self.prefix}/user/check-username", params={"username": username}))

    async def register(self, data: RegisterRequest) -> UserInfo:
        return UserInfo.model_validate(
            await self.request("POST", f"{self.prefix}/user/register", json=data.model_dump())
        )

    async def record_login(self, username: str, ip: Optional[str], success: bool) -> None:
        await self.request(
            "POST", f"{self.prefix}/user/login-info",
            json={"username": username, "ip": ip, "success": success},
        )

    async def get_permission_info(self, user_id: int) -> PermissionInfo:
        data = await self.request("GET", f"{self.prefix}/user/{user_id}/permission-info")
        return PermissionInfo.model_validate(data)

    async def get_grants(self, user_id: int) -> AccessGrants:
        info = await self.get_permission_info(user_id)
        return AccessGrants(roles=frozenset(info.role_codes), permissions=frozenset(info.permissions))
