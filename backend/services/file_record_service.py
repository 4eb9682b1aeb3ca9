"""
文件操作记录服务
记录只追加，不修改
"""

import json
import logging
from typing import Any, List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import ErrorCode, NotFoundException
from core.pagination import PageResult, paginate
from models import File, FileRecord, FileAction, ACTION_DESCRIPTIONS, NOT_DELETED
from schemas.storage import FileRecordInfo, FileRecordQuery

logger = logging.getLogger(__name__)


class FileRecordService:
    """文件操作记录服务"""

    def __init__(self, db: AsyncSession):
        self.db = db

    def add_record(
        self,
        file_id: int,
        user_id: Optional[int],
        action: FileAction,
        extra: Optional[Any] = None,
    ) -> FileRecord:
        """加入当前事务，由调用方提交"""
        record = FileRecord(
            file_id=file_id,
            user_id=user_id,
            action_type=action.value,
            action_desc=ACTION_DESCRIPTIONS[action],
            extra_data=json.dumps(extra, ensure_ascii=False) if extra is not None else None,
            create_by=user_id,
            update_by=user_id,
        )
        self.db.add(record)
        return record

    async def create_record(
        self,
        file_id: int,
        user_id: Optional[int],
        action: FileAction,
        extra: Optional[Any] = None,
    ) -> FileRecord:
        """单独写入一条记录，文件须存在"""
        found = await self.db.execute(
            select(File.id).where(File.id == file_id, File.deleted == NOT_DELETED)
        )
        if found.first() is None:
            raise NotFoundException("文件", file_id, code=ErrorCode.FILE_NOT_FOUND)
        record = self.add_record(file_id, user_id, action, extra)
        await self.db.commit()
        await self.db.refresh(record)
        return record

    async def get_record(self, record_id: int) -> FileRecord:
        result = await self.db.execute(
            select(FileRecord).where(FileRecord.id == record_id, FileRecord.deleted == NOT_DELETED)
        )
        record = result.scalar_one_or_none()
        if record is None:
            raise NotFoundException("文件记录", record_id)
        return record

    async def list_records(self, query: FileRecordQuery) -> PageResult:
        stmt = select(FileRecord).where(FileRecord.deleted == NOT_DELETED)
        if query.file_id is not None:
            stmt = stmt.where(FileRecord.file_id == query.file_id)
        if query.user_id is not None:
            stmt = stmt.where(FileRecord.user_id == query.user_id)
        if query.action_type:
            stmt = stmt.where(FileRecord.action_type == query.action_type.upper())
        stmt = stmt.order_by(FileRecord.id.desc())
        return await paginate(self.db, stmt, query.page, query.page_size, transformer=FileRecordInfo.model_validate)

    async def list_by_file(self, file_id: int) -> List[FileRecord]:
        result = await self.db.execute(
            select(FileRecord)
            .where(FileRecord.file_id == file_id, FileRecord.deleted == NOT_DELETED)
            .order_by(FileRecord.id.desc())
        )
        return list(result.scalars().all())

    async def list_by_user(self, user_id: int) -> List[FileRecord]:
        result = await self.db.execute(
            select(FileRecord)
            .where(FileRecord.user_id == user_id, FileRecord.deleted == NOT_DELETED)
            .order_by(FileRecord.id.desc())
        )
        return list(result.scalars().all())

    async def _count(self, column, value: int, action_type: Optional[str]) -> int:
        stmt = select(func.count(FileRecord.id)).where(column == value, FileRecord.deleted == NOT_DELETED)
        if action_type:
            stmt = stmt.where(FileRecord.action_type == action_type.upper())
        return (await self.db.execute(stmt)).scalar() or 0

    async def count_file_actions(self, file_id: int, action_type: Optional[str] = None) -> int:
        return await self._count(FileRecord.file_id, file_id, action_type)

    async def count_user_actions(self, user_id: int, action_type: Optional[str] = None) -> int:
        return await self._count(FileRecord.user_id, user_id, action_type)
