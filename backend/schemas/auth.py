"""
认证相关数据验证
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """登录请求"""
    username: str = Field(..., min_length=1, max_length=50)
    password: str = Field(..., min_length=1, max_length=128)


class RegisterRequest(BaseModel):
    """注册请求"""
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_]+$")
    password: str = Field(..., min_length=6, max_length=128)
    nickname: Optional[str] = Field(None, max_length=50)
    mobile: Optional[str] = Field(None, max_length=20)
    email: Optional[str] = Field(None, max_length=100)


EMAIL_PATTERN = r"^[A-Za-z0-9._%+-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+$"


class ForgotPasswordRequest(BaseModel):
    """忘记密码：向邮箱发送重置验证码"""
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)


class ResetPasswordRequest(BaseModel):
    """凭邮箱验证码重置密码"""
    email: str = Field(..., max_length=100, pattern=EMAIL_PATTERN)
    email_code: str = Field(..., min_length=4, max_length=8)
    new_password: str = Field(..., min_length=6, max_length=20)
    confirm_password: str = Field(..., min_length=1)


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    """令牌响应"""
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user_id: int
    username: str
    roles: List[str] = []


class LoginRecordInfo(BaseModel):
    """登录环境记录"""
    id: int
    username: Optional[str] = None
    ip_address: Optional[str] = None
    browser_name: Optional[str] = None
    browser_version: Optional[str] = None
    os_name: Optional[str] = None
    os_version: Optional[str] = None
    device_type: Optional[str] = None
    login_result: int
    fail_reason: Optional[str] = None
    login_duration: Optional[int] = None
    create_time: Optional[datetime] = None

    class Config:
        from_attributes = True
