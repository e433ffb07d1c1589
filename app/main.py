"""应用入口：创建 FastAPI 实例，装配当前启用的业务包。"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.middleware.request_id import RequestIdMiddleware
from app.packages import get_active_package

package = get_active_package()
package.setup_logging()
settings = package.get_settings()
logger = package.logger


@asynccontextmanager
async def lifespan(_: FastAPI):
    """建表并补齐系统文件夹，完成后输出启动日志。"""
    package.on_startup()
    logger.info("app.started package=%s port=%s", package.name, settings.app_port)
    yield


app = FastAPI(title=settings.project_name, debug=settings.debug, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestIdMiddleware)

for exc_class, handler in package.exception_handlers.items():
    app.add_exception_handler(exc_class, handler)


@app.get("/health")
async def health_check() -> dict:
    """健康检查，供编排器与监控系统探活。"""
    return package.create_response("OK", {"status": "healthy", "package": package.name})


app.include_router(package.api_router, prefix=settings.api_v1_str)
