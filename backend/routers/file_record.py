"""
文件操作记录路由
记录只读查询与统计
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from core.database import get_db
from core.guard import (
    ADMIN_ROLE, AUDITOR_ROLE, AccessRequirement, GrantsProvider, Logical,
    check_self_or, get_grants_provider, require_roles,
)
from core.identity import Identity, get_current_identity
from schemas.response import success
from schemas.storage import FileRecordInfo, FileRecordQuery
from services.file_record_service import FileRecordService

router = APIRouter(prefix="/file/record", tags=["文件操作记录"])

AUDIT_REQUIREMENT = AccessRequirement(roles=(ADMIN_ROLE, AUDITOR_ROLE), logical=Logical.ANY)


def get_record_service(db: AsyncSession = Depends(get_db)) -> FileRecordService:
    return FileRecordService(db)


@router.get("/get/{record_id}")
async def get_record(
    record_id: int,
    identity: Identity = Depends(require_roles(ADMIN_ROLE, AUDITOR_ROLE, logical=Logical.ANY)),
    service: FileRecordService = Depends(get_record_service),
):
    record = await service.get_record(record_id)
    return success(FileRecordInfo.model_validate(record).model_dump())


@router.get("/list")
async def list_records(
    query: FileRecordQuery = Depends(),
    identity: Identity = Depends(require_roles(ADMIN_ROLE, AUDITOR_ROLE, logical=Logical.ANY)),
    service: FileRecordService = Depends(get_record_service),
):
    result = await service.list_records(query)
    return success(result.to_dict())


@router.get("/file/{file_id}")
async def list_by_file(
    file_id: int,
    identity: Identity = Depends(get_current_identity),
    service: FileRecordService = Depends(get_record_service),
):
    records = await service.list_by_file(file_id)
    return success([FileRecordInfo.model_validate(r).model_dump() for r in records])


@router.get("/user/{user_id}")
async def list_by_user(
    user_id: int,
    identity: Identity = Depends(get_current_identity),
    provider: GrantsProvider = Depends(get_grants_provider),
    service: FileRecordService = Depends(get_record_service),
):
    """用户的操作记录：本人、管理员或审计员可查"""
    await check_self_or(identity, user_id, AUDIT_REQUIREMENT, provider)
    records = await service.list_by_user(user_id)
    return success([FileRecordInfo.model_validate(r).model_dump() for r in records])


@router.get("/count/file/{file_id}")
async def count_file_actions(
    file_id: int,
    action_type: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    service: FileRecordService = Depends(get_record_service),
):
    count = await service.count_file_actions(file_id, action_type)
    return success({"file_id": file_id, "action_type": action_type, "count": count})


@router.get("/count/user/{user_id}")
async def count_user_actions(
    user_id: int,
    action_type: Optional[str] = Query(None),
    identity: Identity = Depends(get_current_identity),
    service: FileRecordService = Depends(get_record_service),
):
    count = await service.count_user_actions(user_id, action_type)
    return success({"user_id": user_id, "action_type": action_type, "count": count})
