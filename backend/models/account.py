"""
账户数据模型
用户、角色、菜单权限及关联表
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, SmallInteger, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from .base import AuditMixin


class User(AuditMixin, Base):
    """用户表"""
    __tablename__ = "sys_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    password: Mapped[str] = mapped_column(String(128))  # bcrypt 哈希
    nickname: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    real_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    avatar: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    gender: Mapped[int] = mapped_column(SmallInteger, default=0)  # 0 未知 1 男 2 女
    profile: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[int] = mapped_column(SmallInteger, default=1)  # 1 正常 0 禁用
    last_login_time: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    last_login_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    login_count: Mapped[int] = mapped_column(Integer, default=0)
    failed_login_count: Mapped[int] = mapped_column(Integer, default=0)
    source: Mapped[str] = mapped_column(String(20), default="REGISTER")


class Role(AuditMixin, Base):
    """角色表"""
    __tablename__ = "sys_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_code: Mapped[str] = mapped_column(String(50), unique=True, index=True)
    role_name: Mapped[str] = mapped_column(String(50))
    role_desc: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[int] = mapped_column(SmallInteger, default=1)


class Menu(AuditMixin, Base):
    """菜单/权限表"""
    __tablename__ = "sys_menu"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    menu_name: Mapped[str] = mapped_column(String(50))
    parent_id: Mapped[int] = mapped_column(Integer, default=0, index=True)  # 0 为根节点
    menu_type: Mapped[int] = mapped_column(SmallInteger, default=2)  # 1 目录 2 菜单 3 按钮
    path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    component: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    permission: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)  # 如 file:delete
    icon: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    visible: Mapped[int] = mapped_column(SmallInteger, default=1)
    status: Mapped[int] = mapped_column(SmallInteger, default=1)


class UserRole(AuditMixin, Base):
    """用户-角色关联（逻辑删除）"""
    __tablename__ = "sys_user_role"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(Integer, index=True)
    role_id: Mapped[int] = mapped_column(Integer, index=True)


class RoleMenu(AuditMixin, Base):
    """角色-菜单关联（逻辑删除）"""
    __tablename__ = "sys_role_menu"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    role_id: Mapped[int] = mapped_column(Integer, index=True)
    menu_id: Mapped[int] = mapped_column(Integer, index=True)
