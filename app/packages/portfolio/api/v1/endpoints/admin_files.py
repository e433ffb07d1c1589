"""管理端文件路由：列表/详情、虚拟文件创建、重命名/移动/重新分配、删除、目录选项与统计。

管理员身份校验由外部认证层负责，这里只处理文件系统语义。
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.packages.portfolio.api.v1.schemas.filesystem import (
    DeleteResponse,
    FilesPageResponse,
    FolderPathsResponse,
    ItemResponse,
    StatsResponse,
    SyntheticFileBody,
    UpdateFileBody,
)
from app.packages.portfolio.core.constants import HTTP_STATUS_OK, MAX_LIST_LIMIT
from app.packages.portfolio.core.dependencies import get_db, get_filesystem_service
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.responses import create_response
from app.packages.portfolio.services.filesystem_service import UNSET, FilesystemService, serialize_item

router = APIRouter(prefix="/admin/files", tags=["admin-files"])


@router.get("", response_model=FilesPageResponse)
def list_files(
    search: Optional[str] = Query(None),
    file_type: Optional[FileType] = Query(None, alias="type"),
    is_real: Optional[bool] = Query(None, alias="isReal"),
    parent_path: Optional[str] = Query(None, alias="parentPath"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=MAX_LIST_LIMIT),
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    data = service.list_files(
        db,
        search=search,
        file_type=file_type,
        is_real=is_real,
        parent_path=parent_path,
        page=page,
        limit=limit,
    )
    return create_response("获取文件列表成功", data, HTTP_STATUS_OK)


@router.get("/paths", response_model=FolderPathsResponse)
def list_folder_paths(
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    """可选的目标目录：根目录、公共文件夹以及 ownerId 对应用户的文件夹。"""
    return create_response("获取目录列表成功", service.list_folder_paths(db, owner_id=owner_id), HTTP_STATUS_OK)


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    return create_response("获取文件统计成功", service.get_stats(db), HTTP_STATUS_OK)


@router.post("/synthetic", response_model=ItemResponse)
def create_synthetic_file(
    body: SyntheticFileBody,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    """创建仅含元数据的占位文件（或文件夹），不写入任何字节。"""
    item = service.create_synthetic_file(
        db,
        body.parentPath,
        body.fileName,
        body.fileType,
        owner_id=body.ownerId,
    )
    return create_response("创建成功", serialize_item(item), HTTP_STATUS_OK)


@router.get("/{item_id}", response_model=ItemResponse)
def get_file(
    item_id: str,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    return create_response("获取文件详情成功", serialize_item(service.get_item(db, item_id)), HTTP_STATUS_OK)


@router.put("/{item_id}", response_model=ItemResponse)
def update_file(
    item_id: str,
    body: UpdateFileBody,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    provided = body.model_fields_set
    item = service.update_file(
        db,
        item_id,
        name=body.name if "name" in provided else UNSET,
        parent_path=body.parentPath if "parentPath" in provided else UNSET,
        owner_id=body.ownerId if "ownerId" in provided else UNSET,
    )
    return create_response("更新成功", serialize_item(item), HTTP_STATUS_OK)


@router.delete("/{item_id}", response_model=DeleteResponse)
def delete_file(
    item_id: str,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    """删除条目；文件夹级联删除全部后代及其字节。"""
    result = service.delete_file(db, item_id)
    data = {
        "path": result.path,
        "deleted": result.deleted,
        "blobsDeleted": result.blobs_deleted,
        "orphanKeys": result.orphan_keys,
    }
    return create_response("删除成功", data, HTTP_STATUS_OK)
