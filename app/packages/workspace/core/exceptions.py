"""异常处理模块：定义统一的业务异常与响应格式。

业务异常按对账引擎的错误分类划分：
- NotFoundError：项目、节点或父目录不存在；
- ConflictError：同级重名、父节点不是目录、移动形成环、保存正在进行中；
- UnauthorizedError：项目归属不匹配；
- StoreFailure：与对象存储/数据库交互时的 I/O 失败，引擎不重试；
- InvalidSnapshotError：快照本身不是 path -> content 映射。
"""

from typing import Any

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.packages.workspace.core.logger import logger
from app.packages.workspace.core.responses import create_response


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data

    @property
    def msg(self) -> str:
        return str(self.detail)


class NotFoundError(AppException):
    def __init__(self, msg: str, data=None) -> None:
        super().__init__(msg, status.HTTP_404_NOT_FOUND, data)


class ConflictError(AppException):
    def __init__(self, msg: str, data=None) -> None:
        super().__init__(msg, status.HTTP_409_CONFLICT, data)


class UnauthorizedError(AppException):
    def __init__(self, msg: str = "无权访问该项目", data=None) -> None:
        super().__init__(msg, status.HTTP_403_FORBIDDEN, data)


class StoreFailure(AppException):
    """外部存储调用失败。保留原始异常于 ``__cause__``。"""

    def __init__(self, msg: str, data=None) -> None:
        super().__init__(msg, status.HTTP_502_BAD_GATEWAY, data)


class InvalidSnapshotError(AppException):
    def __init__(self, msg: str = "快照格式非法", data=None) -> None:
        super().__init__(msg, status.HTTP_422_UNPROCESSABLE_ENTITY, data)


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Exception):
        return str(obj)
    if isinstance(obj, dict):
        return {key: _jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    return obj


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    payload = create_response(str(exc.detail), getattr(exc, "data", None), exc.status_code)
    return JSONResponse(status_code=exc.status_code, content=payload)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # pragma: no cover
    code = status.HTTP_422_UNPROCESSABLE_ENTITY
    return JSONResponse(status_code=code, content=create_response("请求参数验证失败", _jsonable(exc.errors()), code))


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：记录堆栈并返回标准的 500 响应结构。"""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    code = status.HTTP_500_INTERNAL_SERVER_ERROR
    return JSONResponse(status_code=code, content=create_response("服务器内部错误", None, code))
