"""
Coder Cloud 核心模块
提供各服务共用的基础设施

导出列表：
- 配置管理: get_settings, Settings
- 数据库: Base, get_db, async_session
- 身份传递: Identity, IdentityMiddleware, get_current_identity
- 访问控制: require_roles, require_permissions, Logical
- 分页工具: paginate, PageResult
- 错误处理: ErrorCode, AppException, register_exception_handlers
"""

# 配置管理
from .config import get_settings, Settings

# 数据库
from .database import Base, get_db, async_session, init_db, close_db

# 安全认证
from .security import (
    create_token,
    create_token_pair,
    decode_token,
    hash_password,
    verify_password,
    TokenData
)

# 身份传递
from .identity import (
    Identity,
    IdentityMiddleware,
    SYSTEM_IDENTITY,
    get_current_identity,
    get_internal_identity,
    get_optional_identity,
    get_user_identity
)

# 访问控制
from .guard import (
    Logical,
    AccessGrants,
    AccessRequirement,
    check_access,
    require_roles,
    require_permissions
)

# 分页工具
from .pagination import (
    paginate,
    PageResult
)

# 错误处理
from .errors import (
    ErrorCode,
    AppException,
    ValidationException,
    AuthException,
    NotFoundException,
    PermissionException,
    ConflictException,
    ServiceUnavailableException,
    BusinessException,
    register_exception_handlers
)

# 中间件
from .middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware


__all__ = [
    # 配置
    "get_settings",
    "Settings",

    # 数据库
    "Base",
    "get_db",
    "async_session",
    "init_db",
    "close_db",

    # 安全
    "create_token",
    "create_token_pair",
    "decode_token",
    "hash_password",
    "verify_password",
    "TokenData",

    # 身份
    "Identity",
    "IdentityMiddleware",
    "SYSTEM_IDENTITY",
    "get_current_identity",
    "get_internal_identity",
    "get_optional_identity",
    "get_user_identity",

    # 访问控制
    "Logical",
    "AccessGrants",
    "AccessRequirement",
    "check_access",
    "require_roles",
    "require_permissions",

    # 分页
    "paginate",
    "PageResult",

    # 错误
    "ErrorCode",
    "AppException",
    "ValidationException",
    "AuthException",
    "NotFoundException",
    "PermissionException",
    "ConflictException",
    "ServiceUnavailableException",
    "BusinessException",
    "register_exception_handlers",

    # 中间件
    "RequestLoggingMiddleware",
    "SecurityHeadersMiddleware",
]
