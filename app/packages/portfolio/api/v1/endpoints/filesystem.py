"""虚拟文件系统路由：目录浏览与上传。

Finder 客户端通过 ``GET /filesystem/{path}`` 浏览目录；上传走 multipart 表单。
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from app.packages.portfolio.api.v1.schemas.filesystem import ItemResponse, ItemsListResponse
from app.packages.portfolio.core.constants import HTTP_STATUS_OK, MAX_LIST_LIMIT
from app.packages.portfolio.core.dependencies import get_db, get_filesystem_service
from app.packages.portfolio.core.enums import SortByEnum, SortOrderEnum
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.responses import create_response
from app.packages.portfolio.services.filesystem_service import FilesystemService, serialize_item

router = APIRouter(prefix="/filesystem", tags=["filesystem"])


def _list_directory(
    path: str,
    sort_by: SortByEnum,
    sort_order: SortOrderEnum,
    limit: Optional[int],
    offset: int,
    db: Session,
    service: FilesystemService,
) -> dict:
    page = service.get_items(
        db,
        path,
        sort_by=sort_by.value,
        sort_order=sort_order.value,
        limit=limit,
        offset=offset,
    )
    data = {
        "items": [serialize_item(i) for i in page.items],
        "totalCount": page.total_count,
        "path": page.path,
        "parent": serialize_item(page.parent) if page.parent is not None else None,
    }
    return create_response("获取目录内容成功", data, HTTP_STATUS_OK)


@router.post("/upload", response_model=ItemResponse)
async def upload_file(
    file: UploadFile = File(...),
    path: str = Form(..., min_length=1),
    custom_name: Optional[str] = Form(None, alias="customName"),
    owner_id: Optional[str] = Form(None, alias="ownerId"),
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    """上传真实文件：先写字节，再写记录。customName 为空时沿用原文件名。"""
    content = await file.read()
    file_name = (custom_name or "").strip() or file.filename
    logger.info("filesystem.upload path=%s name=%s size=%s", path, file_name, len(content))
    item = service.upload_file(
        db,
        path,
        file_name,
        content,
        mime_type=file.content_type,
        owner_id=owner_id,
    )
    return create_response("文件上传成功", serialize_item(item), HTTP_STATUS_OK)


@router.get("", response_model=ItemsListResponse)
def list_root(
    sort_by: SortByEnum = Query(SortByEnum.NAME, alias="sortBy"),
    sort_order: SortOrderEnum = Query(SortOrderEnum.ASC, alias="sortOrder"),
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    return _list_directory("/", sort_by, sort_order, limit, offset, db, service)


@router.get("/{path:path}", response_model=ItemsListResponse)
def list_directory(
    path: str,
    sort_by: SortByEnum = Query(SortByEnum.NAME, alias="sortBy"),
    sort_order: SortOrderEnum = Query(SortOrderEnum.ASC, alias="sortOrder"),
    limit: Optional[int] = Query(None, ge=1, le=MAX_LIST_LIMIT),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    """列出目录的直接子项；路径非法返回 400，目录不存在返回 404。"""
    return _list_directory(path, sort_by, sort_order, limit, offset, db, service)
