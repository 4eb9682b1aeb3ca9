"""
角色数据验证
"""

from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, Field


class RoleCreate(BaseModel):
    """创建角色"""
    role_code: str = Field(..., min_length=1, max_length=50)
    role_name: str = Field(..., min_length=1, max_length=50)
    role_desc: Optional[str] = Field(None, max_length=255)
    sort_order: int = 0
    status: int = Field(1, ge=0, le=1)


class RoleUpdate(BaseModel):
    """更新角色"""
    id: int
    role_name: Optional[str] = Field(None, min_length=1, max_length=50)
    role_desc: Optional[str] = Field(None, max_length=255)
    sort_order: Optional[int] = None
    status: Optional[int] = Field(None, ge=0, le=1)


class RoleInfo(BaseModel):
    """角色信息"""
    id: int
    role_code: str
    role_name: str
    role_desc: Optional[str] = None
    sort_order: int = 0
    status: int = 1
    create_time: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserRoleAssign(BaseModel):
    """为用户分配角色（覆盖原有角色）"""
    user_id: int
    role_ids: List[int] = []
