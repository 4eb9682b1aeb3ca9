"""
服务间调用客户端
"""

from .base import ServiceClient
from .user_client import UserServiceClient

__all__ = ["ServiceClient", "UserServiceClient"]
