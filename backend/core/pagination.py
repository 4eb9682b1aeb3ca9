"""
统一分页工具
提供标准化的分页查询功能
"""

import math
from typing import List, Optional, Any, Callable
from pydantic import BaseModel, ConfigDict, Field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


class PageResult(BaseModel):
    """分页结果"""
    items: List[Any] = Field(description="数据列表")
    total: int = Field(description="总记录数")
    page: int = Field(description="当前页码")
    page_size: int = Field(description="每页数量")
    total_pages: int = Field(description="总页数")

    model_config = ConfigDict(arbitrary_types_allowed=True)

    @classmethod
    def create(cls, items: List[Any], total: int, page: int, page_size: int) -> "PageResult":
        total_pages = math.ceil(total / page_size) if page_size > 0 else 0
        return cls(items=items, total=total, page=page, page_size=page_size, total_pages=total_pages)

    def to_dict(self) -> dict:
        """转换为字典（用于API响应）"""
        return {
            "items": self.items,
            "total": self.total,
            "page": self.page,
            "page_size": self.page_size,
            "total_pages": self.total_pages,
        }


async def paginate(
    db: AsyncSession,
    query,
    page: int = 1,
    page_size: int = 20,
    transformer: Optional[Callable] = None
) -> PageResult:
    """
    通用分页查询

    Usage:
        query = select(File).where(File.deleted == 0)
        result = await paginate(db, query, page=1, page_size=20, transformer=FileInfo.model_validate)
    """
    count_query = select(func.count()).select_from(query.order_by(None).subquery())
    total = (await db.execute(count_query)).scalar() or 0

    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    items = list(result.scalars().all())
    if transformer:
        items = [transformer(item) for item in items]

    return PageResult.create(items=items, total=total, page=page, page_size=page_size)

