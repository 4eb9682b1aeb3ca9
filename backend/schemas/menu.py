"""
菜单/权限数据验证
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class MenuCreate(BaseModel):
    menu_name: str = Field(..., min_length=1, max_length=50)
    parent_id: int = 0
    menu_type: int = Field(2, ge=1, le=3)  # 1 目录 2 菜单 3 按钮
    path: Optional[str] = Field(None, max_length=255)
    component: Optional[str] = Field(None, max_length=255)
    permission: Optional[str] = Field(None, max_length=100)
    icon: Optional[str] = Field(None, max_length=100)
    sort_order: int = 0
    visible: int = Field(1, ge=0, le=1)
    status: int = Field(1, ge=0, le=1)


class MenuUpdate(BaseModel):
    id: int
    menu_name: Optional[str] = Field(None, min_length=1, max_length=50)
    parent_id: Optional[int] = None
    menu_type: Optional[int] = Field(None, ge=1, le=3)
    path: Optional[str] = Field(None, max_length=255)
    component: Optional[str] = Field(None, max_length=255)
    permission: Optional[str] = Field(None, max_length=100)
    icon: Optional[str] = Field(None, max_length=100)
    sort_order: Optional[int] = None
    visible: Optional[int] = Field(None, ge=0, le=1)
    status: Optional[int] = Field(None, ge=0, le=1)


class MenuTreeNode(BaseModel):
    """菜单树节点"""
    id: int
    menu_name: str
    parent_id: int = 0
    menu_type: int = 2
    path: Optional[str] = None
    component: Optional[str] = None
    permission: Optional[str] = None
    icon: Optional[str] = None
    sort_order: int = 0
    visible: int = 1
    children: List["MenuTreeNode"] = []

    class Config:
        from_attributes = True


class RoleMenuAssign(BaseModel):
    """为角色分配菜单（覆盖原有菜单）"""
    role_id: int
    menu_ids: List[int] = []
