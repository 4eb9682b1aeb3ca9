"""
文件存储 Schema
"""

from typing import Optional, List
from pydantic import BaseModel, Field
from datetime import datetime


class FileCreate(BaseModel):
    """登记文件元数据"""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: Optional[str] = Field(None, max_length=500)
    file_url: Optional[str] = Field(None, max_length=500)
    file_size: int = Field(0, ge=0)
    file_type: Optional[str] = Field(None, max_length=20)
    mime_type: Optional[str] = Field(None, max_length=100)
    file_md5: Optional[str] = Field(None, min_length=32, max_length=32)
    category: Optional[str] = None
    business_type: Optional[str] = None
    module_name: Optional[str] = None
    business_id: Optional[str] = None
    storage_type: str = "LOCAL"
    storage_path: Optional[str] = None
    access_level: int = Field(1, ge=1, le=3)
    owner_id: Optional[int] = None
    tags: Optional[str] = None
    remark: Optional[str] = None


class FileUpdate(BaseModel):
    """更新文件信息"""
    id: int
    file_name: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[str] = None
    business_type: Optional[str] = None
    module_name: Optional[str] = None
    business_id: Optional[str] = None
    status: Optional[int] = Field(None, ge=0, le=3)
    access_level: Optional[int] = Field(None, ge=1, le=3)
    tags: Optional[str] = None
    remark: Optional[str] = None


class FileQuery(BaseModel):
    """文件列表查询条件"""
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)
    file_name: Optional[str] = None
    category: Optional[str] = None
    business_type: Optional[str] = None
    module_name: Optional[str] = None
    business_id: Optional[str] = None
    owner_id: Optional[int] = None
    status: Optional[int] = None
    mime_type: Optional[str] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None


class FileBatchDelete(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class FileInfo(BaseModel):
    """文件信息"""
    id: int
    file_name: str
    file_path: Optional[str] = None
    file_url: Optional[str] = None
    file_size: int
    file_type: Optional[str] = None
    mime_type: Optional[str] = None
    file_md5: Optional[str] = None
    category: str
    business_type: Optional[str] = None
    module_name: Optional[str] = None
    business_id: Optional[str] = None
    storage_type: str
    upload_status: int
    status: int
    download_count: int
    view_count: int
    favorite_count: int
    access_level: int
    owner_id: Optional[int] = None
    tags: Optional[str] = None
    remark: Optional[str] = None
    create_time: Optional[datetime] = None
    update_time: Optional[datetime] = None

    class Config:
        from_attributes = True


class FileUploadResponse(FileInfo):
    """上传结果，instant 表示命中秒传"""
    instant: bool = False
    file_size_text: str = ""


class FileRecordQuery(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)
    file_id: Optional[int] = None
    user_id: Optional[int] = None
    action_type: Optional[str] = None


class FileRecordInfo(BaseModel):
    """文件操作记录"""
    id: int
    file_id: int
    user_id: Optional[int] = None
    action_type: str
    action_desc: Optional[str] = None
    extra_data: Optional[str] = None
    create_time: Optional[datetime] = None

    class Config:
        from_attributes = True
