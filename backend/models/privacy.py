"""
登录审计数据模型
每次登录尝试追加一条，不修改不删除
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, SmallInteger, DateTime, JSON
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base


class UserPrivacy(Base):
    """用户登录环境记录"""
    __tablename__ = "sys_user_privacy"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)  # 登录失败时可能为空
    username: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    ip_address: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    real_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    forwarded_for: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    proxy_ip: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    user_agent: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    browser_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    browser_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    browser_engine: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    os_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    os_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    device_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    accept_language: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    referer: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    request_method: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)
    request_uri: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    host: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    origin: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    login_type: Mapped[str] = mapped_column(String(20), default="WEB")
    login_result: Mapped[int] = mapped_column(SmallInteger, default=1)  # 1 成功 0 失败
    fail_reason: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    login_duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # 毫秒
    request_headers: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    create_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
