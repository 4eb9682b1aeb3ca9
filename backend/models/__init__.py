"""
数据模型目录
"""

from .base import AuditMixin, NOT_DELETED, DELETED
from .account import User, Role, Menu, UserRole, RoleMenu
from .privacy import UserPrivacy
from .storage import File, FileRecord, FileAction, ACTION_DESCRIPTIONS

__all__ = [
    "AuditMixin", "NOT_DELETED", "DELETED",
    "User", "Role", "Menu", "UserRole", "RoleMenu",
    "UserPrivacy", "File", "FileRecord", "FileAction", "ACTION_DESCRIPTIONS",
]
