"""
令牌与密码
提供JWT令牌生成、验证和密码处理功能
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional
import bcrypt
from jose import JWTError, jwt
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from pydantic import BaseModel

from .config import get_settings
from .errors import AuthException, ErrorCode

# Bearer令牌（缺失时由调用方决定如何处理）
bearer_scheme = HTTPBearer(auto_error=False)


class TokenData(BaseModel):
    """令牌数据"""
    user_id: int
    username: str
    roles: List[str] = []


def hash_password(password: str) -> str:
    """
    加密密码
    bcrypt 限制密码长度不超过 72 字节
    """
    password_bytes = str(password).encode('utf-8')[:72]
    return bcrypt.hashpw(password_bytes, bcrypt.gensalt()).decode('utf-8')


def verify_password(plain_password: str, hashed_password: Optional[str]) -> bool:
    """验证密码"""
    if not hashed_password:
        return False
    password_bytes = str(plain_password).encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # 存储的哈希格式非法
        return False


def create_token(data: TokenData, expires_delta: Optional[timedelta] = None, token_type: str = "access") -> str:
    """
    创建JWT令牌

    Args:
        data: 令牌数据
        expires_delta: 过期时间增量
        token_type: 令牌类型（access 或 refresh）
    """
    settings = get_settings()
    if expires_delta is None:
        if token_type == "refresh":
            expires_delta = timedelta(days=settings.jwt_refresh_expire_days)
        else:
            expires_delta = timedelta(minutes=settings.jwt_expire_minutes)

    to_encode = {
        "sub": str(data.user_id),
        "username": data.username,
        "roles": data.roles,
        "type": token_type,
        "exp": datetime.now(timezone.utc) + expires_delta,
    }
    return jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_token_pair(data: TokenData) -> tuple[str, str]:
    """
    创建访问令牌和刷新令牌对

    Returns:
        (access_token, refresh_token)
    """
    return create_token(data, token_type="access"), create_token(data, token_type="refresh")


def decode_token(token: str, expected_type: Optional[str] = None) -> Optional[TokenData]:
    """
    解码JWT令牌，失败返回 None

    Args:
        token: 待解码的JWT
        expected_type: 期望的令牌类型（"access"/"refresh"），不匹配则返回None
    """
    settings = get_settings()
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if expected_type and payload.get("type") != expected_type:
        return None
    try:
        return TokenData(
            user_id=int(payload["sub"]),
            username=payload["username"],
            roles=payload.get("roles") or [],
        )
    except (KeyError, TypeError, ValueError):
        return None


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> str:
    """提取 Bearer 令牌（依赖注入用）"""
    if credentials is None or not credentials.credentials:
        raise AuthException(ErrorCode.UNAUTHORIZED, "缺少认证令牌")
    return credentials.credentials
