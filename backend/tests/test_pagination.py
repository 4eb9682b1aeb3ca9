"""
分页工具测试
"""

import pytest
from sqlalchemy import select

from core.pagination import PageResult, paginate
from models import Role, NOT_DELETED
from schemas.role import RoleInfo


class TestPageResult:

    def test_total_pages(self):
        assert PageResult.create([1, 2, 3], total=10, page=1, page_size=5).total_pages == 2
        assert PageResult.create([], total=0, page=1, page_size=20).total_pages == 0
        assert PageResult.create([1], total=21, page=2, page_size=20).total_pages == 2

    def test_to_dict(self):
        result = PageResult.create(["a"], total=1, page=1, page_size=20)
        assert result.to_dict() == {
            "items": ["a"],
            "total": 1,
            "page": 1,
            "page_size": 20,
            "total_pages": 1,
        }


class TestPaginate:

    @pytest.mark.asyncio
    async def test_pages_over_query(self, db_session, seeded):
        query = select(Role).where(Role.deleted == NOT_DELETED).order_by(Role.sort_order)

        first = await paginate(db_session, query, page=1, page_size=2)
        assert first.total == 3
        assert first.total_pages == 2
        assert [role.role_code for role in first.items] == ["ADMIN", "AUDITOR"]

        second = await paginate(db_session, query, page=2, page_size=2, transformer=RoleInfo.model_validate)
        assert [role.role_code for role in second.items] == ["USER"]
        assert isinstance(second.items[0], RoleInfo)

    @pytest.mark.asyncio
    async def test_page_beyond_end(self, db_session, seeded):
        result = await paginate(db_session, select(Role), page=5, page_size=10)
        assert result.items == []
        assert result.total == 3
