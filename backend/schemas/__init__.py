"""
数据验证模式目录
"""

from .auth import (
    LoginRequest, RegisterRequest, RefreshTokenRequest, TokenResponse, LoginRecordInfo,
    ForgotPasswordRequest, ResetPasswordRequest
)
from .menu import MenuCreate, MenuUpdate, MenuTreeNode, RoleMenuAssign
from .user import (
    UserInfo, UserUpdate, UserStatusUpdate, RoleBrief, PermissionInfo, PasswordValidateRequest, LoginInfoRequest,
    PasswordUpdateByEmail
)
from .role import RoleCreate, RoleUpdate, RoleInfo, UserRoleAssign
from .storage import (
    FileCreate, FileUpdate, FileQuery, FileBatchDelete, FileInfo, FileUploadResponse,
    FileRecordQuery, FileRecordInfo
)
from .response import success

__all__ = [
    # 认证
    "LoginRequest", "RegisterRequest", "RefreshTokenRequest", "TokenResponse", "LoginRecordInfo",
    "ForgotPasswordRequest", "ResetPasswordRequest",
    # 菜单
    "MenuCreate", "MenuUpdate", "MenuTreeNode", "RoleMenuAssign",
    # 用户
    "UserInfo", "UserUpdate", "UserStatusUpdate", "RoleBrief", "PermissionInfo",
    "PasswordValidateRequest", "LoginInfoRequest", "PasswordUpdateByEmail",
    # 角色
    "RoleCreate", "RoleUpdate", "RoleInfo", "UserRoleAssign",
    # 文件
    "FileCreate", "FileUpdate", "FileQuery", "FileBatchDelete", "FileInfo", "FileUploadResponse",
    "FileRecordQuery", "FileRecordInfo",
    # 响应
    "success",
]
