"""
标准错误码体系
提供统一的错误码定义和异常处理

错误分类与 HTTP 状态：
- 未认证 (AuthException)            -> 401
- 权限不足 (PermissionException)    -> 403
- 资源不存在 (NotFoundException)    -> 404
- 资源冲突 (ConflictException)      -> 409
- 下游服务不可用 (ServiceUnavailableException) -> 503
"""

import logging
from typing import Optional, Any, Dict
from enum import IntEnum
from fastapi import status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ErrorCode(IntEnum):
    """
    标准错误码

    错误码规范：
    - 0: 成功
    - 1xxx: 系统级错误
    - 2xxx: 认证/授权错误
    - 3xxx: 业务通用错误
    - 4xxx: 服务级错误（文件服务等）
    - 5xxx: 第三方/下游服务错误
    """

    SUCCESS = 0

    # ==================== 系统级错误 (1xxx) ====================
    INTERNAL_ERROR = 1000
    SERVICE_UNAVAILABLE = 1004      # 下游服务不可达

    # ==================== 认证/授权错误 (2xxx) ====================
    UNAUTHORIZED = 2001             # 未认证（缺少身份）
    TOKEN_INVALID = 2003
    PERMISSION_DENIED = 2004        # 角色/权限不足
    ACCOUNT_DISABLED = 2005
    LOGIN_FAILED = 2007
    ACCOUNT_EXISTS = 2010
    REFRESH_TOKEN_INVALID = 2012
    EMAIL_CODE_INVALID = 2013
    EMAIL_CODE_TOO_FREQUENT = 2014

    # ==================== 业务通用错误 (3xxx) ====================
    VALIDATION_ERROR = 3001
    RESOURCE_NOT_FOUND = 3002
    RESOURCE_EXISTS = 3003
    RESOURCE_CONFLICT = 3004
    OPERATION_FAILED = 3005
    FILE_TOO_LARGE = 3009
    FILE_TYPE_NOT_ALLOWED = 3010

    # ==================== 服务级错误 (4xxx) ====================
    # 4000-4099: 文件服务
    FILE_NOT_FOUND = 4001
    FILE_MD5_CONFLICT = 4002
    FILE_EMPTY = 4003

    # ==================== 下游服务错误 (5xxx) ====================
    EXTERNAL_API_ERROR = 5001
    EMAIL_SEND_FAILED = 5002
    STORAGE_ERROR = 5004


ERROR_MESSAGES: Dict[int, str] = {
    ErrorCode.SUCCESS: "操作成功",

    ErrorCode.INTERNAL_ERROR: "服务器内部错误，请稍后重试",
    ErrorCode.SERVICE_UNAVAILABLE: "服务暂时不可用",

    ErrorCode.UNAUTHORIZED: "用户未登录",
    ErrorCode.TOKEN_INVALID: "无效的认证凭据",
    ErrorCode.PERMISSION_DENIED: "权限不足",
    ErrorCode.ACCOUNT_DISABLED: "账户已被禁用",
    ErrorCode.LOGIN_FAILED: "用户名或密码错误",
    ErrorCode.ACCOUNT_EXISTS: "用户名已存在",
    ErrorCode.REFRESH_TOKEN_INVALID: "刷新令牌无效",
    ErrorCode.EMAIL_CODE_INVALID: "邮箱验证码错误或已过期",
    ErrorCode.EMAIL_CODE_TOO_FREQUENT: "发送过于频繁，请稍后再试",

    ErrorCode.VALIDATION_ERROR: "参数验证失败",
    ErrorCode.RESOURCE_NOT_FOUND: "请求的资源不存在",
    ErrorCode.RESOURCE_EXISTS: "资源已存在",
    ErrorCode.RESOURCE_CONFLICT: "资源冲突",
    ErrorCode.OPERATION_FAILED: "操作失败",
    ErrorCode.FILE_TOO_LARGE: "文件大小超出限制",
    ErrorCode.FILE_TYPE_NOT_ALLOWED: "不支持的文件类型",

    ErrorCode.FILE_NOT_FOUND: "文件不存在",
    ErrorCode.FILE_MD5_CONFLICT: "相同内容的文件已存在",
    ErrorCode.FILE_EMPTY: "上传文件不能为空",

    ErrorCode.EXTERNAL_API_ERROR: "外部服务调用失败",
    ErrorCode.EMAIL_SEND_FAILED: "邮件发送失败",
    ErrorCode.STORAGE_ERROR: "存储服务异常",
}

ERROR_HTTP_STATUS: Dict[int, int] = {
    ErrorCode.SUCCESS: status.HTTP_200_OK,

    ErrorCode.INTERNAL_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,

    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.PERMISSION_DENIED: status.HTTP_403_FORBIDDEN,
    ErrorCode.ACCOUNT_DISABLED: status.HTTP_403_FORBIDDEN,
    ErrorCode.LOGIN_FAILED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.ACCOUNT_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.REFRESH_TOKEN_INVALID: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.EMAIL_CODE_INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EMAIL_CODE_TOO_FREQUENT: status.HTTP_429_TOO_MANY_REQUESTS,

    ErrorCode.VALIDATION_ERROR: status.HTTP_400_BAD_REQUEST,
    ErrorCode.RESOURCE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.RESOURCE_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.RESOURCE_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.OPERATION_FAILED: status.HTTP_400_BAD_REQUEST,
    ErrorCode.FILE_TOO_LARGE: status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
    ErrorCode.FILE_TYPE_NOT_ALLOWED: status.HTTP_400_BAD_REQUEST,

    ErrorCode.FILE_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.FILE_MD5_CONFLICT: status.HTTP_409_CONFLICT,
    ErrorCode.FILE_EMPTY: status.HTTP_400_BAD_REQUEST,

    ErrorCode.EXTERNAL_API_ERROR: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.EMAIL_SEND_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.STORAGE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


class AppException(Exception):
    """
    应用异常基类

    Usage:
        raise AppException(ErrorCode.RESOURCE_NOT_FOUND, "用户不存在")
    """

    def __init__(
        self,
        code: int = ErrorCode.INTERNAL_ERROR,
        message: Optional[str] = None,
        data: Any = None
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, "未知错误")
        self.data = data
        self.http_status = ERROR_HTTP_STATUS.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        """转换为 JSONResponse"""
        return JSONResponse(status_code=self.http_status, content=self.to_dict())

    def to_dict(self) -> dict:
        return {
            "code": int(self.code),
            "message": self.message,
            "data": self.data
        }


class ValidationException(AppException):
    """参数验证异常"""

    def __init__(self, message: str = "参数验证失败", errors: Optional[list] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            data={"errors": errors} if errors else None
        )


class AuthException(AppException):
    """认证异常（未认证）"""

    def __init__(
        self,
        code: int = ErrorCode.UNAUTHORIZED,
        message: Optional[str] = None
    ):
        super().__init__(code=code, message=message)


class PermissionException(AppException):
    """权限异常（已认证但权限不足）"""

    def __init__(self, message: str = "权限不足", data: Any = None):
        super().__init__(code=ErrorCode.PERMISSION_DENIED, message=message, data=data)


class NotFoundException(AppException):
    """资源不存在异常"""

    def __init__(self, resource: str = "资源", resource_id: Any = None, code: int = ErrorCode.RESOURCE_NOT_FOUND):
        message = f"{resource}不存在"
        if resource_id is not None:
            message = f"{resource} (ID: {resource_id}) 不存在"
        super().__init__(code=code, message=message)


class ConflictException(AppException):
    """资源冲突异常"""

    def __init__(self, message: str = "资源冲突", code: int = ErrorCode.RESOURCE_CONFLICT, data: Any = None):
        super().__init__(code=code, message=message, data=data)


class ServiceUnavailableException(AppException):
    """下游服务不可用"""

    def __init__(self, service: str, detail: Optional[str] = None):
        message = f"服务 {service} 暂时不可用"
        super().__init__(
            code=ErrorCode.SERVICE_UNAVAILABLE,
            message=message,
            data={"service": service, "detail": detail} if detail else {"service": service}
        )


class BusinessException(AppException):
    """业务异常"""

    def __init__(
        self,
        code: int = ErrorCode.OPERATION_FAILED,
        message: str = "操作失败",
        data: Any = None
    ):
        super().__init__(code=code, message=message, data=data)


# ==================== 异常处理器 ====================

def register_exception_handlers(app):
    """
    注册异常处理器

    在 main.py 中调用：
        from core.errors import register_exception_handlers
        register_exception_handlers(app)
    """
    from fastapi.exceptions import RequestValidationError
    from starlette.exceptions import HTTPException as StarletteHTTPException

    @app.exception_handler(AppException)
    async def handle_app_exception(request, exc: AppException):
        if exc.http_status >= 500:
            logger.error(f"{request.method} {request.url.path} -> {exc.code} {exc.message}")
        return exc.to_response()

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request, exc: RequestValidationError):
        errors = []
        for error in exc.errors():
            errors.append({
                "field": ".".join(str(loc) for loc in error["loc"]),
                "message": error["msg"],
                "type": error["type"]
            })

        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "code": int(ErrorCode.VALIDATION_ERROR),
                "message": "参数验证失败",
                "data": {"errors": errors}
            }
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request, exc: StarletteHTTPException):
        code_mapping = {
            401: ErrorCode.UNAUTHORIZED,
            403: ErrorCode.PERMISSION_DENIED,
            404: ErrorCode.RESOURCE_NOT_FOUND,
            409: ErrorCode.RESOURCE_CONFLICT,
            503: ErrorCode.SERVICE_UNAVAILABLE,
        }

        code = code_mapping.get(exc.status_code, ErrorCode.INTERNAL_ERROR)
        message = str(exc.detail) if exc.detail else ERROR_MESSAGES.get(code, "请求失败")

        return JSONResponse(
            status_code=exc.status_code,
            content={"code": int(code), "message": message, "data": None}
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request, exc: Exception):
        logger.exception(f"未处理的异常: {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "code": int(ErrorCode.INTERNAL_ERROR),
                "message": ERROR_MESSAGES[ErrorCode.INTERNAL_ERROR],
                "data": None
            }
        )
