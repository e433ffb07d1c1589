"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from app.packages.portfolio.api.v1.endpoints import admin_files, files, filesystem

api_router = APIRouter()
api_router.include_router(filesystem.router)
api_router.include_router(admin_files.router)
api_router.include_router(files.router)
