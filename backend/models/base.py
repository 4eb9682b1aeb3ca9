"""
公共字段
所有业务表共享的审计与逻辑删除字段
"""

from datetime import datetime
from typing import Optional
from sqlalchemy import String, Integer, SmallInteger, DateTime
from sqlalchemy.orm import Mapped, mapped_column

# 逻辑删除标记
NOT_DELETED = 0
DELETED = 1


class AuditMixin:
    """创建/更新时间、操作人、逻辑删除、备注"""

    create_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    update_time: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)
    create_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    update_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deleted: Mapped[int] = mapped_column(SmallInteger, default=NOT_DELETED, server_default="0", index=True)
    remark: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
