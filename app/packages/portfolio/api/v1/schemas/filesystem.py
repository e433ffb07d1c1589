"""虚拟文件系统 - 请求/响应模型。"""

from typing import Optional

from pydantic import BaseModel, Field

from app.packages.portfolio.api.v1.schemas.common import ResponseEnvelope
from app.packages.portfolio.core.enums import FileType


class ItemDTO(BaseModel):
    id: str
    name: str
    type: FileType
    path: str
    parentPath: Optional[str] = None
    size: Optional[int] = None
    extension: Optional[str] = None
    isReal: bool
    ownerId: Optional[str] = None
    mimeType: Optional[str] = None
    downloadCount: int = 0
    dateCreated: Optional[str] = None
    dateModified: Optional[str] = None


class ItemsListData(BaseModel):
    items: list[ItemDTO]
    totalCount: int
    path: str
    parent: Optional[ItemDTO] = None


class SyntheticFileBody(BaseModel):
    fileName: str = Field(..., min_length=1)
    parentPath: str = Field(..., min_length=1)
    fileType: FileType
    ownerId: Optional[str] = None


class UpdateFileBody(BaseModel):
    """未出现在请求体中的字段保持不变；ownerId 显式传 null 表示改为公开。"""

    name: Optional[str] = None
    parentPath: Optional[str] = None
    ownerId: Optional[str] = None


class FolderPathItem(BaseModel):
    path: str
    name: str
    parentPath: Optional[str] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int


class FilesPageData(BaseModel):
    files: list[ItemDTO]
    pagination: Pagination


class DeleteResultData(BaseModel):
    path: str
    deleted: int
    blobsDeleted: int
    orphanKeys: list[str] = Field(default_factory=list)


class FilesystemStats(BaseModel):
    totalFiles: int
    totalFolders: int
    realFiles: int
    syntheticFiles: int
    fileTypes: dict[str, int]
    totalSize: int
    recentFiles: int


ItemsListResponse = ResponseEnvelope[ItemsListData]
ItemResponse = ResponseEnvelope[ItemDTO]
FilesPageResponse = ResponseEnvelope[FilesPageData]
FolderPathsResponse = ResponseEnvelope[list[FolderPathItem]]
DeleteResponse = ResponseEnvelope[DeleteResultData]
StatsResponse = ResponseEnvelope[FilesystemStats]
