"""
Coder Cloud - 服务入口
同一代码库按 SERVICE_NAME 启动认证服务、用户服务、文件服务或全部服务

- auth: 登录、注册、登出、刷新令牌
- user: 用户、角色、菜单及其关联
- file: 文件元数据与操作记录
- all:  以上全部（单进程部署）
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.database import init_db, close_db
from core.bootstrap import init_system_data
from core.cache import close_cache
from core.errors import register_exception_handlers
from core.identity import IdentityMiddleware
from core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from routers import auth, user, role, menu, file, file_record, health

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

# 减少第三方库的日志输出
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

SERVICE_ROUTERS = {
    "auth": [auth.router],
    "user": [user.router, role.router, role.user_role_router, menu.router, menu.role_menu_router],
    "file": [file.router, file_record.router],
}
SERVICE_ROUTERS["all"] = [r for name in ("auth", "user", "file") for r in SERVICE_ROUTERS[name]]

# 持有用户/角色/菜单表的服务负责写入默认数据
SEED_SERVICES = {"all", "user"}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    settings = get_settings()
    logger.info(f"正在启动 {settings.app_name} [{settings.service_name}] v{settings.app_version}...")

    await init_db()
    if settings.service_name in SEED_SERVICES:
        result = await init_system_data()
        if result.get("created"):
            logger.warning(f"已创建默认管理员: {result['username']}，请尽快修改密码")

    logger.info(f"{settings.app_name} [{settings.service_name}] 启动完成")
    yield

    logger.info("服务关闭中...")
    await close_cache()
    await close_db()


def create_app(service_name: Optional[str] = None) -> FastAPI:
    settings = get_settings()
    service_name = service_name or settings.service_name
    if service_name not in SERVICE_ROUTERS:
        raise ValueError(f"未知的服务: {service_name}")

    app = FastAPI(
        title=f"{settings.app_name} - {service_name}",
        version=settings.app_version,
        lifespan=lifespan,
    )

    # 中间件（后添加的先执行）
    app.add_middleware(IdentityMiddleware)
    app.add_middleware(
        RequestLoggingMiddleware,
        skip_paths=["/health", "/docs", "/redoc", "/openapi.json"],
        slow_request_threshold=1.0,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    for router in SERVICE_ROUTERS[service_name]:
        app.include_router(router, prefix=settings.api_prefix)
    app.include_router(health.router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("main:app", host=settings.host, port=settings.port, reload=settings.debug)
