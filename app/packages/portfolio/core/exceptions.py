"""异常处理模块：定义统一的业务异常、文件系统错误分类与响应格式。

文件系统相关错误均继承 ``FilesystemError``，携带稳定的 ``error_code``，
HTTP 层与客户端可据此确定性地映射状态码与提示文案。
"""

from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.packages.portfolio.core.constants import (
    HTTP_STATUS_BAD_REQUEST,
    HTTP_STATUS_CONFLICT,
    HTTP_STATUS_FORBIDDEN,
    HTTP_STATUS_NOT_FOUND,
    HTTP_STATUS_SERVICE_UNAVAILABLE,
)
from app.packages.portfolio.core.logger import logger


class AppException(HTTPException):
    """携带统一响应结构的业务异常，方便在全局处理中转换响应体。"""

    def __init__(self, msg: str, code: int = status.HTTP_400_BAD_REQUEST, data=None) -> None:
        super().__init__(status_code=code, detail=msg)
        self.data = data


class FilesystemError(AppException):
    """虚拟文件系统的业务错误基类。"""

    error_code = "FILESYSTEM_ERROR"
    status_code_default = HTTP_STATUS_BAD_REQUEST

    def __init__(self, msg: str, *, path: Optional[str] = None, data: Any = None) -> None:
        super().__init__(msg, self.status_code_default, data)
        self.path = path


class InvalidPath(FilesystemError):
    error_code = "INVALID_PATH"

    def __init__(self, path: Optional[str]) -> None:
        super().__init__(f"非法路径: {path}", path=path)


class InvalidArgument(FilesystemError):
    """请求参数不合法（空名称、未知排序字段等）。"""

    error_code = "INVALID_ARGUMENT"


class FileNotFound(FilesystemError):
    error_code = "FILE_NOT_FOUND"
    status_code_default = HTTP_STATUS_NOT_FOUND

    def __init__(self, target: Optional[str]) -> None:
        super().__init__(f"文件不存在: {target}", path=target)


class DirectoryNotFound(FilesystemError):
    error_code = "DIRECTORY_NOT_FOUND"
    status_code_default = HTTP_STATUS_NOT_FOUND

    def __init__(self, path: Optional[str]) -> None:
        super().__init__(f"目录不存在: {path}", path=path)


class FileAlreadyExists(FilesystemError):
    error_code = "FILE_ALREADY_EXISTS"
    status_code_default = HTTP_STATUS_CONFLICT

    def __init__(self, path: str) -> None:
        super().__init__(f"文件已存在: {path}", path=path)


class ProtectedResource(FilesystemError):
    error_code = "PROTECTED_RESOURCE"
    status_code_default = HTTP_STATUS_FORBIDDEN

    def __init__(self, path: str, action: str) -> None:
        super().__init__(f"系统文件夹不允许{action}: {path}", path=path)


class InvalidMove(FilesystemError):
    error_code = "INVALID_MOVE"


class StorageFailure(FilesystemError):
    """字节存储或元数据存储不可用。"""

    error_code = "STORAGE_FAILURE"
    status_code_default = HTTP_STATUS_SERVICE_UNAVAILABLE


def _error_payload(msg: Any, code: int, data: Any = None, error_code: Optional[str] = None) -> dict:
    payload = {"msg": msg, "data": data, "code": code, "error": msg}
    if error_code:
        payload["errorCode"] = error_code
    return payload


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # pragma: no cover - framework glue
    """将 FastAPI 的 ``HTTPException`` 转换为统一响应格式。"""
    error_code = getattr(exc, "error_code", None)
    if isinstance(exc, FilesystemError):
        logger.info(
            "fs.error code=%s status=%s path=%s uri=%s",
            error_code, exc.status_code, exc.path, request.url.path,
        )
    payload = _error_payload(exc.detail, exc.status_code, getattr(exc, "data", None), error_code)
    return JSONResponse(status_code=exc.status_code, content=payload)


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # pragma: no cover - framework glue
    """兜底处理：将未捕获异常转换为标准的 500 响应结构。"""
    logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    payload = _error_payload("服务器内部错误", status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=payload)


def _jsonable(obj: Any) -> Any:
    if isinstance(obj, Exception):
        return str(obj)
    if isinstance(obj, dict):
        return {key: _jsonable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(item) for item in obj]
    return obj


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # pragma: no cover - framework glue
    """请求参数校验失败：422，``data`` 中给出逐字段的错误明细。"""
    code = status.HTTP_422_UNPROCESSABLE_ENTITY
    payload = _error_payload("请求参数验证失败", code, _jsonable(exc.errors()), "VALIDATION_ERROR")
    return JSONResponse(status_code=code, content=payload)
