"""
文件服务
文件元数据的登记、更新、逻辑删除、秒传与计数

每个写操作在同一事务中追加一条文件操作记录。
文件生命周期只有 正常 -> 已删除（逻辑删除，终态）。
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from core.errors import (
    AppException, BusinessException, ConflictException, ErrorCode, NotFoundException, ValidationException
)
from core.identity import Identity, SYSTEM_USER_ID
from core.pagination import PageResult, paginate
from models import File, FileAction, NOT_DELETED, DELETED
from schemas.storage import FileCreate, FileInfo, FileQuery, FileUpdate
from utils.storage import (
    StorageManager, compute_md5, detect_category, get_extension, get_storage_manager
)
from .file_record_service import FileRecordService

logger = logging.getLogger(__name__)

UserChecker = Callable[[int], Awaitable[bool]]

# 计数器字段
COUNTER_ACTIONS = {
    "download_count": FileAction.DOWNLOAD,
    "view_count": FileAction.VIEW,
    "favorite_count": FileAction.FAVORITE,
}


class FileService:
    """文件服务"""

    def __init__(
        self,
        db: AsyncSession,
        user_checker: Optional[UserChecker] = None,
        storage: Optional[StorageManager] = None,
    ):
        self.db = db
        self.user_checker = user_checker
        self._storage = storage
        self.records = FileRecordService(db)

    @property
    def storage(self) -> StorageManager:
        if self._storage is None:
            self._storage = get_storage_manager()
        return self._storage

    # ==================== 查询 ====================

    async def get_file(self, file_id: int) -> File:
        result = await self.db.execute(
            select(File).where(File.id == file_id, File.deleted == NOT_DELETED)
        )
        file = result.scalar_one_or_none()
        if file is None:
            raise NotFoundException("文件", file_id, code=ErrorCode.FILE_NOT_FOUND)
        return file

    async def get_by_md5(self, file_md5: str) -> Optional[File]:
        """按 MD5 查找未删除的文件（秒传判断）"""
        if not file_md5 or not file_md5.strip():
            raise ValidationException("文件MD5不能为空")
        result = await self.db.execute(
            select(File)
            .where(File.file_md5 == file_md5.strip().lower(), File.deleted == NOT_DELETED)
            .order_by(File.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_files(self, query: FileQuery) -> PageResult:
        stmt = select(File).where(File.deleted == NOT_DELETED)
        if query.file_name:
            stmt = stmt.where(File.file_name.contains(query.file_name))
        if query.category:
            stmt = stmt.where(File.category == query.category.upper())
        if query.business_type:
            stmt = stmt.where(File.business_type == query.business_type.upper())
        if query.module_name:
            stmt = stmt.where(File.module_name == query.module_name)
        if query.business_id:
            stmt = stmt.where(File.business_id == query.business_id)
        if query.owner_id is not None:
            stmt = stmt.where(File.owner_id == query.owner_id)
        if query.status is not None:
            stmt = stmt.where(File.status == query.status)
        if query.mime_type:
            stmt = stmt.where(File.mime_type.startswith(query.mime_type))
        if query.start_time:
            stmt = stmt.where(File.create_time >= query.start_time)
        if query.end_time:
            stmt = stmt.where(File.create_time <= query.end_time)
        stmt = stmt.order_by(File.id.desc())
        return await paginate(self.db, stmt, query.page, query.page_size, transformer=FileInfo.model_validate)

    # ==================== 登记与上传 ====================

    async def _check_owner(self, owner_id: Optional[int]) -> None:
        """所有者不存在或用户服务不可用时只记录日志"""
        if owner_id is None or owner_id == SYSTEM_USER_ID or self.user_checker is None:
            return
        try:
            if not await self.user_checker(owner_id):
                logger.warning(f"文件所有者不存在: {owner_id}")
        except AppException as e:
            logger.warning(f"校验文件所有者失败: {owner_id} | {e}")

    async def _instant(self, existing: File, operator: Identity, file_name: str) -> File:
        logger.info(f"秒传命中: {file_name} -> 文件 {existing.id}")
        self.records.add_record(
            existing.id, operator.user_id, FileAction.UPLOAD,
            {"instant": True, "file_name": file_name},
        )
        await self.db.commit()
        return existing

    async def _reuse(self, existing: Optional[File], operator: Identity, file_name: str, strict: bool) -> File:
        """MD5 已被未删除文件占用：严格模式返回冲突，否则按秒传处理"""
        if existing is None:
            # 占用方在冲突后又被删除
            raise ConflictException("相同内容的文件正在处理，请重试", code=ErrorCode.FILE_MD5_CONFLICT)
        if strict:
            raise ConflictException(
                "相同内容的文件已存在",
                code=ErrorCode.FILE_MD5_CONFLICT,
                data={"file_id": existing.id},
            )
        return await self._instant(existing, operator, file_name)

    async def _insert(self, file: File, operator: Identity) -> Optional[File]:
        """写入新文件；active_md5 唯一约束冲突时回滚并返回 None"""
        active_md5 = file.active_md5
        self.db.add(file)
        try:
            await self.db.flush()
        except IntegrityError:
            await self.db.rollback()
            if active_md5 is None:
                raise
            logger.info(f"MD5 已被并发写入的文件占用: {active_md5}")
            return None
        self.records.add_record(file.id, operator.user_id, FileAction.UPLOAD, {"file_name": file.file_name})
        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def create_file(self, data: FileCreate, operator: Identity) -> Tuple[File, bool]:
        """
        登记文件元数据

        Returns:
            (文件, 是否新建)；MD5 命中已有文件时返回已有文件

        Raises:
            ConflictException: 严格模式下 MD5 已存在
        """
        file_md5 = data.file_md5.lower() if data.file_md5 else None
        strict = get_settings().file_strict_md5
        if file_md5:
            existing = await self.get_by_md5(file_md5)
            if existing is not None:
                return await self._reuse(existing, operator, data.file_name, strict), False

        owner_id = data.owner_id if data.owner_id is not None else operator.user_id
        await self._check_owner(owner_id)

        values = data.model_dump(exclude={"file_md5", "owner_id", "category", "business_type"})
        extension = data.file_type or get_extension(data.file_name)
        file = File(
            **{**values, "file_type": extension},
            file_md5=file_md5,
            active_md5=file_md5,
            owner_id=owner_id,
            category=(data.category or detect_category(data.mime_type, extension)).upper(),
            business_type=data.business_type.upper() if data.business_type else None,
            create_by=operator.user_id,
            update_by=operator.user_id,
        )
        inserted = await self._insert(file, operator)
        if inserted is None:
            existing = await self.get_by_md5(file_md5)
            return await self._reuse(existing, operator, data.file_name, strict), False
        return inserted, True

    async def upload(
        self,
        file_name: str,
        content: bytes,
        content_type: Optional[str],
        operator: Identity,
        business_type: Optional[str] = None,
        module_name: Optional[str] = None,
        business_id: Optional[str] = None,
        access_level: int = 1,
    ) -> Tuple[File, bool]:
        """
        上传文件：校验 -> MD5 -> 秒传 或 落盘并登记

        Returns:
            (文件, 是否秒传)
        """
        storage = self.storage
        size = len(content)
        if size == 0:
            raise BusinessException(ErrorCode.FILE_EMPTY, "上传文件不能为空")
        if size > storage.max_size:
            raise BusinessException(ErrorCode.FILE_TOO_LARGE, "文件大小超出限制")
        valid, message = storage.validate_file(file_name, size, content)
        if not valid:
            raise BusinessException(ErrorCode.FILE_TYPE_NOT_ALLOWED, message)

        file_md5 = compute_md5(content)
        existing = await self.get_by_md5(file_md5)
        if existing is not None:
            return await self._instant(existing, operator, file_name), True

        await self._check_owner(operator.user_id)

        relative_path, full_path = storage.generate_path(file_name, business_type)
        try:
            storage.save(content, full_path)
        except OSError as e:
            logger.error(f"文件写入失败: {full_path} | {e}")
            raise BusinessException(ErrorCode.STORAGE_ERROR, "文件保存失败")

        extension = get_extension(file_name)
        mime_type = storage.guess_mime(content, content_type)
        file = File(
            file_name=file_name,
            file_path=relative_path,
            file_url=f"{get_settings().file_url_prefix.rstrip('/')}/{relative_path}",
            file_size=size,
            file_type=extension,
            mime_type=mime_type,
            file_md5=file_md5,
            active_md5=file_md5,
            category=detect_category(mime_type, extension),
            business_type=business_type.upper() if business_type else None,
            module_name=module_name,
            business_id=business_id,
            storage_type="LOCAL",
            storage_path=str(full_path),
            access_level=access_level,
            owner_id=operator.user_id,
            create_by=operator.user_id,
            update_by=operator.user_id,
        )
        try:
            inserted = await self._insert(file, operator)
        except Exception:
            await self.db.rollback()
            full_path.unlink(missing_ok=True)
            raise
        if inserted is None:
            # 并发上传了相同内容，保留先写入的文件
            full_path.unlink(missing_ok=True)
            existing = await self.get_by_md5(file_md5)
            return await self._reuse(existing, operator, file_name, strict=False), True
        return inserted, False

    # ==================== 修改 ====================

    async def update_file(self, data: FileUpdate, operator: Identity) -> File:
        file = await self.get_file(data.id)
        changes = data.model_dump(exclude_unset=True, exclude={"id"})
        for key in ("category", "business_type"):
            if changes.get(key):
                changes[key] = changes[key].upper()
        for key, value in changes.items():
            setattr(file, key, value)
        file.update_by = operator.user_id
        self.records.add_record(file.id, operator.user_id, FileAction.UPDATE, {"fields": sorted(changes)})
        await self.db.commit()
        await self.db.refresh(file)
        return file

    async def delete_file(self, file_id: int, operator: Identity) -> None:
        """逻辑删除，已删除或不存在返回 404"""
        result = await self.db.execute(
            update(File)
            .where(File.id == file_id, File.deleted == NOT_DELETED)
            .values(deleted=DELETED, active_md5=None, update_by=operator.user_id)
        )
        if result.rowcount == 0:
            raise NotFoundException("文件", file_id, code=ErrorCode.FILE_NOT_FOUND)
        self.records.add_record(file_id, operator.user_id, FileAction.DELETE)
        await self.db.commit()
        logger.info(f"删除文件: {file_id} by {operator.username}")

    async def delete_files(self, file_ids: List[int], operator: Identity) -> List[int]:
        """批量逻辑删除，返回实际删除的 ID，不存在的忽略"""
        result = await self.db.execute(
            select(File.id).where(File.id.in_(list(set(file_ids))), File.deleted == NOT_DELETED)
        )
        targets = sorted(result.scalars().all())
        if not targets:
            return []
        await self.db.execute(
            update(File)
            .where(File.id.in_(targets), File.deleted == NOT_DELETED)
            .values(deleted=DELETED, active_md5=None, update_by=operator.user_id)
        )
        for file_id in targets:
            self.records.add_record(file_id, operator.user_id, FileAction.DELETE, {"batch": True})
        await self.db.commit()
        logger.info(f"批量删除文件: {targets} by {operator.username}")
        return targets

    # ==================== 计数 ====================

    async def _increase(self, file_id: int, counter: str, operator: Identity) -> int:
        """
        计数器加一

        单条带条件的 UPDATE，不在应用层读后写，并发下不丢失更新。
        """
        column = getattr(File, counter)
        result = await self.db.execute(
            update(File)
            .where(File.id == file_id, File.deleted == NOT_DELETED)
            .values({counter: column + 1})
        )
        if result.rowcount == 0:
            raise NotFoundException("文件", file_id, code=ErrorCode.FILE_NOT_FOUND)
        self.records.add_record(file_id, operator.user_id, COUNTER_ACTIONS[counter])
        await self.db.commit()

        value = await self.db.execute(select(column).where(File.id == file_id))
        return value.scalar_one()

    async def increase_download_count(self, file_id: int, operator: Identity) -> int:
        return await self._increase(file_id, "download_count", operator)

    async def increase_view_count(self, file_id: int, operator: Identity) -> int:
        return await self._increase(file_id, "view_count", operator)

    async def increase_favorite_count(self, file_id: int, operator: Identity) -> int:
        return await self._increase(file_id, "favorite_count", operator)

    async def unfavorite(self, file_id: int, operator: Identity) -> None:
        """取消收藏只记录操作，收藏计数不回退"""
        await self.records.create_record(file_id, operator.user_id, FileAction.UNFAVORITE)
