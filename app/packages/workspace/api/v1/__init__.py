"""API v1 汇总路由：统一挂载所有版本化的子路由。"""

from fastapi import APIRouter

from app.packages.workspace.api.v1.endpoints import files, projects

api_router = APIRouter()
api_router.include_router(projects.router)
api_router.include_router(files.router)
