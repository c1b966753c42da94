"""应用入口：创建 FastAPI 实例，挂载工作区路由、中间件与异常处理。"""

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from app.middleware.request_id import RequestIdMiddleware
from app.packages.workspace.api.v1 import api_router
from app.packages.workspace.core.config import get_settings
from app.packages.workspace.core.exceptions import (
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from app.packages.workspace.core.logger import logger, setup_logging
from app.packages.workspace.core.responses import create_response
from app.packages.workspace.db.init_db import init_db
from app.packages.workspace.services.workspace_service import registry

setup_logging()
settings = get_settings()

app = FastAPI(title=settings.project_name, debug=settings.debug)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)

app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(Exception, generic_exception_handler)


@app.on_event("startup")
async def startup_event() -> None:
    init_db()
    logger.info(
        "Workspace API ready on port %s (storage=%s, autosave_delay=%ss)",
        settings.app_port,
        settings.storage_provider,
        settings.autosave_delay_seconds,
    )


@app.on_event("shutdown")
async def shutdown_event() -> None:
    """关闭所有编辑会话，未触发的自动保存随之取消。"""
    registry.close_all()


@app.get("/health")
async def health_check() -> dict:
    return create_response("OK", {"status": "healthy"})


app.include_router(api_router, prefix=settings.api_v1_str)
