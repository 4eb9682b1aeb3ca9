"""
工具函数目录
按功能分类组织
"""

from .request import get_client_ip, get_proxy_ip, get_user_agent, get_header_snapshot
from .user_agent import UserAgentInfo, parse_user_agent
from .storage import StorageManager, get_storage_manager, compute_md5, format_file_size

__all__ = [
    # 请求处理
    "get_client_ip",
    "get_proxy_ip",
    "get_user_agent",
    "get_header_snapshot",
    # UA 解析
    "UserAgentInfo",
    "parse_user_agent",
    # 文件存储
    "StorageManager",
    "get_storage_manager",
    "compute_md5",
    "format_file_size",
]
