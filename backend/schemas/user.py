"""
用户管理数据验证
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field

from .menu import MenuTreeNode


class UserInfo(BaseModel):
    """用户信息（不含密码）"""
    id: int
    username: str
    nickname: Optional[str] = None
    real_name: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    gender: int = 0
    profile: Optional[str] = None
    status: int = 1
    last_login_time: Optional[datetime] = None
    last_login_ip: Optional[str] = None
    login_count: int = 0
    source: Optional[str] = None
    create_time: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserUpdate(BaseModel):
    """更新用户资料"""
    id: int
    nickname: Optional[str] = Field(None, max_length=50)
    real_name: Optional[str] = Field(None, max_length=50)
    mobile: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)
    avatar: Optional[str] = Field(None, max_length=255)
    gender: Optional[int] = Field(None, ge=0, le=2)
    profile: Optional[str] = None
    remark: Optional[str] = Field(None, max_length=500)


class UserStatusUpdate(BaseModel):
    status: int = Field(..., ge=0, le=1)


class RoleBrief(BaseModel):
    id: int
    role_code: str
    role_name: str

    class Config:
        from_attributes = True


class PermissionInfo(BaseModel):
    """用户权限信息：角色编码与权限标识"""
    user_id: int
    username: str
    nickname: Optional[str] = None
    roles: List[RoleBrief] = []
    role_codes: List[str] = []
    permissions: List[str] = []
    menu_tree: List[MenuTreeNode] = []


class PasswordValidateRequest(BaseModel):
    """校验用户名密码（供认证服务调用）"""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class LoginInfoRequest(BaseModel):
    """登录结果回写"""
    username: str = Field(..., min_length=1, max_length=50)
    ip: Optional[str] = Field(None, max_length=64)
    success: bool = True


class PasswordUpdateByEmail(BaseModel):
    """按邮箱修改密码（内部接口）"""
    email: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=6, max_length=128)
