"""
Coder Cloud - 网关入口
校验访问令牌后按路径前缀转发到认证/用户/文件服务
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core.config import get_settings
from core.errors import register_exception_handlers
from core.middleware import RequestLoggingMiddleware
from gateway import GatewayAuthMiddleware, router as proxy_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    for prefix, target in settings.gateway_routes.items():
        logger.info(f"路由: {prefix} -> {target}")
    yield


def create_gateway() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=f"{settings.app_name} - gateway", version=settings.app_version, lifespan=lifespan)

    app.add_middleware(GatewayAuthMiddleware)
    app.add_middleware(RequestLoggingMiddleware, skip_paths=["/health"])
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/health", include_in_schema=False)
    async def health():
        return {"status": "healthy", "service": "gateway", "timestamp": datetime.now().isoformat()}

    # 转发路由必须最后注册
    app.include_router(proxy_router)
    return app


app = create_gateway()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("gateway_main:app", host=settings.host, port=settings.port, reload=settings.debug)
