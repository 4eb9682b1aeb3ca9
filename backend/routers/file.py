"""
文件路由
上传、元数据登记、查询、逻辑删除与下载/预览/收藏计数
"""

from typing import Optional

from fastapi import APIRouter, Depends, File as FormFile, Form, Query, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.deps import get_user_checker
from core.errors import BusinessException, ErrorCode
from core.guard import require_permissions
from core.identity import Identity, get_current_identity
from schemas.response import success
from schemas.storage import (
    FileCreate, FileUpdate, FileQuery, FileBatchDelete, FileInfo, FileUploadResponse
)
from services.file_service import FileService
from utils.storage import format_file_size, get_storage_manager

router = APIRouter(prefix="/file", tags=["文件管理"])

CHUNK_SIZE = 1024 * 1024


def get_file_service(
    db: AsyncSession = Depends(get_db),
    user_checker=Depends(get_user_checker),
) -> FileService:
    return FileService(db, user_checker=user_checker)


def _upload_result(file, instant: bool) -> dict:
    info = FileUploadResponse(
        **FileInfo.model_validate(file).model_dump(),
        instant=instant,
        file_size_text=format_file_size(file.file_size),
    )
    return info.model_dump()


async def _read_upload(file: UploadFile) -> bytes:
    """分块读取上传内容，超出大小限制立即中止"""
    max_size = get_storage_manager().max_size
    chunks = []
    total = 0
    while True:
        chunk = await file.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        if total > max_size:
            raise BusinessException(
                ErrorCode.FILE_TOO_LARGE,
                f"文件大小超过限制（最大 {format_file_size(max_size)}）",
            )
        chunks.append(chunk)
    return b"".join(chunks)


@router.post("/upload")
async def upload_file(
    file: UploadFile = FormFile(...),
    business_type: Optional[str] = Form(None),
    module_name: Optional[str] = Form(None),
    business_id: Optional[str] = Form(None),
    access_level: int = Form(1, ge=1, le=3),
    identity: Identity = Depends(require_permissions("file:upload")),
    service: FileService = Depends(get_file_service),
):
    """
    上传文件

    内容 MD5 已存在时直接返回已有文件（秒传），instant 为 true。
    """
    content = await _read_upload(file)
    saved, instant = await service.upload(
        file_name=file.filename or "unnamed",
        content=content,
        content_type=file.content_type,
        operator=identity,
        business_type=business_type,
        module_name=module_name,
        business_id=business_id,
        access_level=access_level,
    )
    return success(_upload_result(saved, instant), "秒传成功" if instant else "上传成功")


@router.post("/create")
async def create_file(
    data: FileCreate,
    identity: Identity = Depends(require_permissions("file:upload")),
    service: FileService = Depends(get_file_service),
):
    """登记已存储文件的元数据"""
    file, created = await service.create_file(data, identity)
    return success(_upload_result(file, not created), "创建成功" if created else "文件已存在")


@router.delete("/delete/batch")
async def delete_files(
    data: FileBatchDelete,
    identity: Identity = Depends(require_permissions("file:delete")),
    service: FileService = Depends(get_file_service),
):
    deleted = await service.delete_files(data.ids, identity)
    return success({"deleted": deleted, "count": len(deleted)}, "删除成功")


@router.delete("/delete/{file_id}")
async def delete_file(
    file_id: int,
    identity: Identity = Depends(require_permissions("file:delete")),
    service: FileService = Depends(get_file_service),
):
    await service.delete_file(file_id, identity)
    return success(None, "删除成功")


@router.put("/update")
async def update_file(
    data: FileUpdate,
    identity: Identity = Depends(require_permissions("file:update")),
    service: FileService = Depends(get_file_service),
):
    file = await service.update_file(data, identity)
    return success(FileInfo.model_validate(file).model_dump(), "更新成功")


@router.get("/get/{file_id}")
async def get_file(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    file = await service.get_file(file_id)
    return success(FileInfo.model_validate(file).model_dump())


@router.get("/list")
async def list_files(
    query: FileQuery = Depends(),
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    result = await service.list_files(query)
    return success(result.to_dict())


@router.get("/get-by-md5")
async def get_by_md5(
    md5: str = Query(..., min_length=1),
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    """按内容 MD5 查找，用于秒传判断；不存在时 data 为空"""
    file = await service.get_by_md5(md5)
    return success(FileInfo.model_validate(file).model_dump() if file else None)


# ==================== 计数 ====================

@router.put("/download/{file_id}")
async def increase_download(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    count = await service.increase_download_count(file_id, identity)
    return success({"file_id": file_id, "download_count": count})


@router.put("/view/{file_id}")
async def increase_view(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    count = await service.increase_view_count(file_id, identity)
    return success({"file_id": file_id, "view_count": count})


@router.put("/favorite/{file_id}")
async def favorite(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    count = await service.increase_favorite_count(file_id, identity)
    return success({"file_id": file_id, "favorite_count": count}, "收藏成功")


@router.put("/unfavorite/{file_id}")
async def unfavorite(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileService = Depends(get_file_service),
):
    await service.unfavorite(file_id, identity)
    return success(None, "已取消收藏")
