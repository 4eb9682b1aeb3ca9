"""
访问控制
端点显式声明所需角色/权限及组合方式，由 check_access 根据当前身份判定。

Usage:
    @router.delete("/delete/{id}")
    async def delete(identity: Identity = Depends(require_permissions("file:delete"))):
        ...

    @router.get("/audit")
    async def audit(identity: Identity = Depends(require_roles("ADMIN", "AUDITOR", logical=Logical.ANY))):
        ...
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional, Protocol, Tuple

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from .config import get_settings
from .database import get_db
from .errors import AuthException, ErrorCode, PermissionException
from .identity import Identity, get_optional_identity

logger = logging.getLogger(__name__)

ADMIN_ROLE = "ADMIN"
AUDITOR_ROLE = "AUDITOR"


class Logical(str, Enum):
    """组合方式"""
    ALL = "AND"  # 必须全部满足
    ANY = "OR"   # 满足任意一个


@dataclass(frozen=True)
class AccessGrants:
    """用户持有的角色编码与权限标识"""
    roles: FrozenSet[str] = frozenset()
    permissions: FrozenSet[str] = frozenset()


@dataclass(frozen=True)
class AccessRequirement:
    """端点声明的访问要求"""
    roles: Tuple[str, ...] = ()
    permissions: Tuple[str, ...] = ()
    logical: Logical = Logical.ALL

    @property
    def is_empty(self) -> bool:
        return not self.roles and not self.permissions


class GrantsProvider(Protocol):
    async def get_grants(self, user_id: int) -> AccessGrants: ...


def _satisfied(required: Tuple[str, ...], owned: FrozenSet[str], logical: Logical) -> bool:
    if not required:
        return True
    if logical == Logical.ANY:
        return any(code in owned for code in required)
    return all(code in owned for code in required)


def check_access(
    requirement: AccessRequirement,
    identity: Optional[Identity],
    grants: Optional[AccessGrants],
) -> None:
    """
    判定访问要求

    Raises:
        AuthException: 没有解析出用户身份（含系统身份，不持有用户角色）
        PermissionException: 角色/权限不足
    """
    if requirement.is_empty:
        return
    if identity is None or identity.is_system or identity.user_id == 0:
        raise AuthException(ErrorCode.UNAUTHORIZED, "用户未登录")

    grants = grants or AccessGrants()
    if not _satisfied(requirement.roles, grants.roles, requirement.logical):
        raise PermissionException(
            f"角色权限不足，需要角色：{list(requirement.roles)}",
            data={"required_roles": list(requirement.roles), "logical": requirement.logical.value},
        )
    if not _satisfied(requirement.permissions, grants.permissions, requirement.logical):
        raise PermissionException(
            f"权限不足，需要权限：{list(requirement.permissions)}",
            data={"required_permissions": list(requirement.permissions), "logical": requirement.logical.value},
        )


async def get_grants_provider(db: AsyncSession = Depends(get_db)) -> GrantsProvider:
    """按配置选择权限数据来源（依赖注入用）"""
    if get_settings().user_source == "remote":
        from clients.user_client import UserServiceClient
        return UserServiceClient()

    from services.user_service import UserService
    return UserService(db)


def _guard(requirement: AccessRequirement):
    async def access_checker(
        identity: Optional[Identity] = Depends(get_optional_identity),
        provider: GrantsProvider = Depends(get_grants_provider),
    ) -> Identity:
        grants = None
        if identity is not None and not identity.is_system and not requirement.is_empty:
            grants = await provider.get_grants(identity.user_id)
        try:
            check_access(requirement, identity, grants)
        except PermissionException:
            logger.warning(f"访问被拒绝: user={identity.username if identity else None} requirement={requirement}")
            raise
        return identity
    return access_checker


def require_roles(*roles: str, logical: Logical = Logical.ALL):
    """角色检查依赖工厂"""
    return _guard(AccessRequirement(roles=tuple(roles), logical=logical))


def require_permissions(*permissions: str, logical: Logical = Logical.ALL):
    """权限检查依赖工厂"""
    return _guard(AccessRequirement(permissions=tuple(permissions), logical=logical))


async def check_self_or(
    identity: Optional[Identity],
    owner_id: int,
    requirement: AccessRequirement,
    provider: GrantsProvider,
) -> None:
    """本人直接放行，否则按访问要求判定"""
    if identity is not None and not identity.is_system and identity.user_id == owner_id:
        return
    grants = None
    if identity is not None and not identity.is_system:
        grants = await provider.get_grants(identity.user_id)
    check_access(requirement, identity, grants)
