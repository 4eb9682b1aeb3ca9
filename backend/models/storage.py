"""
文件存储数据模型
文件元数据与文件操作记录
"""

from enum import Enum
from typing import Optional
from sqlalchemy import String, Integer, BigInteger, SmallInteger, Text, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from core.database import Base
from .base import AuditMixin


class FileAction(str, Enum):
    """文件操作类型"""
    UPLOAD = "UPLOAD"
    DOWNLOAD = "DOWNLOAD"
    VIEW = "VIEW"
    FAVORITE = "FAVORITE"
    UNFAVORITE = "UNFAVORITE"
    DELETE = "DELETE"
    UPDATE = "UPDATE"


ACTION_DESCRIPTIONS = {
    FileAction.UPLOAD: "用户上传了文件",
    FileAction.DOWNLOAD: "用户下载了文件",
    FileAction.VIEW: "用户查看了文件",
    FileAction.FAVORITE: "用户收藏了文件",
    FileAction.UNFAVORITE: "用户取消收藏了文件",
    FileAction.DELETE: "用户删除了文件",
    FileAction.UPDATE: "用户更新了文件信息",
}


class File(AuditMixin, Base):
    """
    文件表

    file_md5 在未删除的文件中唯一，用于秒传；已删除的记录保留原哈希。
    唯一性由 active_md5 的唯一约束保证：未删除时等于 file_md5，删除时置空。
    计数器只通过单条 UPDATE 自增。
    """
    __tablename__ = "sys_file"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_name: Mapped[str] = mapped_column(String(255))  # 原始文件名
    file_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)  # 相对存储路径
    file_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    file_size: Mapped[int] = mapped_column(BigInteger, default=0)
    file_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # 扩展名
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    file_md5: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    active_md5: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    category: Mapped[str] = mapped_column(String(20), default="OTHER")  # IMAGE/DOCUMENT/VIDEO/AUDIO/OTHER
    business_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # AVATAR/ATTACHMENT/TEMP
    module_name: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    business_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    storage_type: Mapped[str] = mapped_column(String(20), default="LOCAL")
    storage_path: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    upload_status: Mapped[int] = mapped_column(SmallInteger, default=1)  # 0 上传中 1 完成 2 失败
    status: Mapped[int] = mapped_column(SmallInteger, default=1)  # 0 待审核 1 正常 2 拒绝 3 禁用
    download_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    view_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    favorite_count: Mapped[int] = mapped_column(Integer, default=0, server_default="0")
    access_level: Mapped[int] = mapped_column(SmallInteger, default=1)  # 1 公开 2 私有 3 内部
    owner_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    tags: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_sys_file_md5", "file_md5"),
        UniqueConstraint("active_md5", name="uk_sys_file_active_md5"),
        {'mysql_engine': 'InnoDB', 'mysql_charset': 'utf8mb4', 'comment': '文件表'},
    )


class FileRecord(AuditMixin, Base):
    """文件操作记录表（只追加）"""
    __tablename__ = "sys_file_record"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    file_id: Mapped[int] = mapped_column(Integer, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    action_type: Mapped[str] = mapped_column(String(20), index=True)
    action_desc: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    extra_data: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    __table_args__ = (
        {'mysql_engine': 'InnoDB', 'mysql_charset': 'utf8mb4', 'comment': '文件操作记录表'},
    )
