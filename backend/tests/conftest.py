"""
测试配置和 Fixtures
提供测试用的数据库会话、客户端和通用工具
"""

from typing import AsyncGenerator, Dict

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

import models  # noqa: F401
from core.bootstrap import seed_defaults
from core.config import get_settings
from core.database import Base, get_db
from main import app
from models import User
from tests.helpers import create_test_user
from utils.storage import reset_storage_manager


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ==================== Fixtures ====================

@pytest_asyncio.fixture(scope="function")
async def engine():
    """每个测试独立的内存数据库"""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(engine) -> AsyncGenerator[AsyncSession, None]:
    """
    创建测试用数据库会话
    同一会话注入到 FastAPI 的 get_db 中
    """
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)
    async with session_factory() as session:
        async def _get_test_db():
            yield session

        app.dependency_overrides[get_db] = _get_test_db
        try:
            yield session
        finally:
            await session.rollback()
            app.dependency_overrides.clear()


@pytest.fixture
def db(db_session):
    """db_session 测试夹具的别名"""
    return db_session


@pytest.fixture(scope="function")
def upload_dir(tmp_path):
    """上传目录指向临时目录"""
    settings = get_settings()
    old_upload_dir = settings.upload_dir
    storage_dir = tmp_path / "uploads"
    settings.upload_dir = str(storage_dir)
    reset_storage_manager()
    yield storage_dir
    settings.upload_dir = old_upload_dir
    reset_storage_manager()


@pytest.fixture
def settings_override():
    """临时修改配置，测试结束后恢复"""
    settings = get_settings()
    saved: Dict[str, object] = {}

    def _apply(**values):
        for key, value in values.items():
            saved.setdefault(key, getattr(settings, key))
            setattr(settings, key, value)
        return settings

    yield _apply
    for key, value in saved.items():
        setattr(settings, key, value)


@pytest_asyncio.fixture(scope="function")
async def client(db_session, upload_dir) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def seeded(db_session: AsyncSession) -> dict:
    """写入默认角色、菜单与管理员"""
    return await seed_defaults(db_session)


@pytest_asyncio.fixture(scope="function")
async def admin(db_session: AsyncSession, seeded) -> User:
    result = await db_session.execute(select(User).where(User.username == get_settings().admin_username))
    return result.scalar_one()


@pytest_asyncio.fixture(scope="function")
async def normal_user(db_session: AsyncSession, seeded) -> User:
    """持有 USER 角色的普通用户"""
    return await create_test_user(db_session, "alice", "alice123", role_codes=["USER"])
