"""
路由目录
"""

from . import auth, user, role, menu, file, file_record, health

__all__ = ["auth", "user", "role", "menu", "file", "file_record", "health"]
