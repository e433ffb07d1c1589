"""虚拟文件系统服务：目录查询、上传、虚拟文件创建、重命名/移动/重新分配与级联删除。

约定：
- 所有路径在访问数据库之前完成校验与归一化，非法输入直接失败，不产生任何部分写入；
- 上传先写字节再写记录：字节写入失败则不建记录；记录写入失败只会遗留无引用的字节（记录日志）；
- 删除先在单个事务内删除记录，提交后再清理字节，字节删除失败仅记录日志；
- 变更规则统一通过 ``core.guards`` 的策略表判定。
"""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.packages.portfolio.core.config import get_settings
from app.packages.portfolio.core.constants import (
    MAX_LIST_LIMIT,
    RECENT_FILES_DAYS,
    ROOT_PATH,
    SORT_FIELDS,
    SORT_ORDERS,
)
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.exceptions import (
    DirectoryNotFound,
    FileAlreadyExists,
    FileNotFound,
    FilesystemError,
    InvalidArgument,
    InvalidMove,
    InvalidPath,
    ProtectedResource,
    StorageFailure,
)
from app.packages.portfolio.core.guards import ensure_can, is_protected, policy_for
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.timezone import isoformat, utc_now
from app.packages.portfolio.crud.filesystem_item import filesystem_item_crud
from app.packages.portfolio.models.filesystem_item import FilesystemItem
from app.packages.portfolio.services.blob_store import BlobStore, build_blob_store, generate_storage_key
from app.packages.portfolio.utils.file_types import default_extension_for, detect_file_type
from app.packages.portfolio.utils.path_utils import (
    get_extension,
    is_same_or_descendant,
    is_valid_path,
    join_path,
    normalize_path,
    strip_extension,
)

# 区分“未传入”与“显式传入 None”（owner_id=None 表示改为公开）
UNSET: Any = object()


@dataclass
class ItemsPage:
    items: List[FilesystemItem]
    total_count: int
    path: str
    parent: Optional[FilesystemItem]


@dataclass
class DeleteResult:
    path: str
    deleted: int
    blobs_deleted: int
    orphan_keys: List[str] = field(default_factory=list)


def serialize_item(item: FilesystemItem) -> Dict[str, Any]:
    """ORM 记录 -> ItemDTO（camelCase，类型为大写枚举名，时间为 ISO-8601）。"""
    return {
        "id": item.id,
        "name": item.name,
        "type": item.type.value,
        "path": item.path,
        "parentPath": item.parent_path,
        "size": None if item.is_folder else item.size,
        "extension": item.extension,
        "isReal": bool(item.is_real),
        "ownerId": item.owner_id,
        "mimeType": item.mime_type,
        "downloadCount": int(item.download_count or 0),
        "dateCreated": isoformat(item.date_created),
        "dateModified": isoformat(item.date_modified),
    }


def _parent_key(folder_path: str) -> Optional[str]:
    return None if folder_path == ROOT_PATH else folder_path


class FilesystemService:
    def __init__(self, blob_store: Optional[BlobStore] = None) -> None:
        self._blob_store = blob_store

    @property
    def blob_store(self) -> BlobStore:
        # 延迟构建，避免导入阶段就创建本地目录或连接对象存储
        if self._blob_store is None:
            self._blob_store = build_blob_store()
        return self._blob_store

    # ----------------------------
    # 校验辅助
    # ----------------------------
    def _validated_path(self, path: Optional[str]) -> str:
        if not is_valid_path(path):
            raise InvalidPath(path)
        return normalize_path(path)

    def _validated_name(self, name: Optional[str]) -> str:
        value = (name or "").strip()
        if not value:
            raise InvalidArgument("名称不能为空")
        if "/" in value or "\\" in value or value in {".", ".."}:
            raise InvalidArgument(f"名称不合法: {value}")
        if not is_valid_path(value):
            raise InvalidArgument(f"名称包含非法字符: {value}")
        return value

    def _resolve_folder(self, db: Session, folder_path: str) -> Optional[FilesystemItem]:
        """返回目录记录；根目录返回 None；不存在或不是文件夹时抛 DirectoryNotFound。"""
        if folder_path == ROOT_PATH:
            return None
        folder = filesystem_item_crud.get_by_path(db, folder_path)
        if folder is None or not folder.is_folder:
            raise DirectoryNotFound(folder_path)
        return folder

    def _get_or_404(self, db: Session, item_id: str) -> FilesystemItem:
        item = filesystem_item_crud.get(db, item_id)
        if item is None:
            raise FileNotFound(item_id)
        return item

    def _ensure_free(self, db: Session, path: str) -> None:
        if filesystem_item_crud.get_by_path(db, path) is not None:
            raise FileAlreadyExists(path)

    # ----------------------------
    # 查询
    # ----------------------------
    def get_items(
        self,
        db: Session,
        path: Optional[str] = ROOT_PATH,
        *,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> ItemsPage:
        """列出目录的直接子项（仅一层），按请求的字段排序，不做“文件夹优先”处理。"""
        if sort_by not in SORT_FIELDS:
            raise InvalidArgument(f"不支持的排序字段: {sort_by}")
        if sort_order not in SORT_ORDERS:
            raise InvalidArgument(f"不支持的排序方向: {sort_order}")
        if limit is None:
            limit = get_settings().finder_default_limit
        if limit < 1 or limit > MAX_LIST_LIMIT or offset < 0:
            raise InvalidArgument("分页参数不合法")

        folder_path = self._validated_path(path)
        try:
            parent = self._resolve_folder(db, folder_path)
            key = _parent_key(folder_path)
            items = filesystem_item_crud.list_by_parent(
                db, key, sort_by=sort_by, sort_order=sort_order, limit=limit, offset=offset
            )
            total = filesystem_item_crud.count_by_parent(db, key)
        except SQLAlchemyError as exc:
            logger.exception("fs.list failed path=%s", folder_path)
            raise StorageFailure("元数据存储不可用") from exc
        return ItemsPage(items=items, total_count=total, path=folder_path, parent=parent)

    def get_item(self, db: Session, item_id: str) -> FilesystemItem:
        return self._get_or_404(db, item_id)

    def list_files(
        self,
        db: Session,
        *,
        search: Optional[str] = None,
        file_type: Optional[str] = None,
        is_real: Optional[bool] = None,
        parent_path: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> Dict[str, Any]:
        """管理端列表：名称模糊匹配、类型/真实性/父目录过滤，分页返回。"""
        if page < 1 or limit < 1 or limit > MAX_LIST_LIMIT:
            raise InvalidArgument("分页参数不合法")
        type_filter = self._coerce_type(file_type) if file_type else None
        filter_parent = parent_path is not None
        parent_key: Optional[str] = None
        if filter_parent:
            parent_key = _parent_key(self._validated_path(parent_path))
        rows, total = filesystem_item_crud.search(
            db,
            search=(search or "").strip() or None,
            file_type=type_filter,
            is_real=is_real,
            parent_path=parent_key,
            filter_parent=filter_parent,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return {
            "files": [serialize_item(r) for r in rows],
            "pagination": {
                "page": page,
                "limit": limit,
                "total": total,
                "totalPages": (total + limit - 1) // limit,
            },
        }

    def list_folder_paths(self, db: Session, *, owner_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """可作为上传/移动目标的目录：根目录 + 公共文件夹 + 指定用户的文件夹。"""
        folders = filesystem_item_crud.list_folders(db, owner_id=owner_id)
        return [{"path": ROOT_PATH, "name": "Root", "parentPath": None}] + [
            {"path": f.path, "name": f.name, "parentPath": f.parent_path} for f in folders
        ]

    def get_stats(self, db: Session) -> Dict[str, Any]:
        since = utc_now() - timedelta(days=RECENT_FILES_DAYS)
        return filesystem_item_crud.stats(db, recent_since=since)

    # ----------------------------
    # 创建
    # ----------------------------
    def upload_file(
        self,
        db: Session,
        path: Optional[str],
        file_name: Optional[str],
        content: bytes,
        *,
        mime_type: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> FilesystemItem:
        folder_path = self._validated_path(path)
        name = self._validated_name(file_name)
        self._resolve_folder(db, folder_path)
        full_path = join_path(folder_path, name)
        if not is_valid_path(full_path):
            raise InvalidPath(full_path)
        self._ensure_free(db, full_path)
        if not mime_type or mime_type == "application/octet-stream":
            mime_type = mimetypes.guess_type(name)[0] or mime_type

        extension = get_extension(name)
        storage_key = generate_storage_key(extension)
        try:
            self.blob_store.put(storage_key, content, content_type=mime_type)
        except StorageFailure:
            raise
        except Exception as exc:
            logger.exception("fs.upload blob write failed path=%s", full_path)
            raise StorageFailure("写入文件字节失败") from exc

        now = utc_now()
        try:
            item = filesystem_item_crud.create(
                db,
                {
                    "name": name,
                    "type": detect_file_type(extension, mime_type),
                    "path": full_path,
                    "parent_path": _parent_key(folder_path),
                    "size": len(content),
                    "extension": extension,
                    "is_real": True,
                    "owner_id": owner_id,
                    "storage_key": storage_key,
                    "mime_type": mime_type,
                    "date_created": now,
                    "date_modified": now,
                },
            )
        except IntegrityError as exc:
            logger.error("fs.upload orphan blob key=%s path=%s reason=conflict", storage_key, full_path)
            raise FileAlreadyExists(full_path) from exc
        except SQLAlchemyError as exc:
            logger.error("fs.upload orphan blob key=%s path=%s reason=%s", storage_key, full_path, exc)
            raise StorageFailure("写入文件记录失败") from exc

        logger.info("fs.upload path=%s size=%s key=%s", full_path, len(content), storage_key)
        return item

    def create_synthetic_file(
        self,
        db: Session,
        path: Optional[str],
        file_name: Optional[str],
        file_type: FileType | str,
        *,
        owner_id: Optional[str] = None,
    ) -> FilesystemItem:
        """创建仅存在于数据库的占位条目（不触达 Blob Store）；FOLDER 类型即新建文件夹。"""
        folder_path = self._validated_path(path)
        name = self._validated_name(file_name)
        item_type = self._coerce_type(file_type)
        self._resolve_folder(db, folder_path)

        extension: Optional[str] = None
        if item_type != FileType.FOLDER:
            extension = get_extension(name)
            if extension is None:
                extension = default_extension_for(item_type)
                name = f"{name}.{extension}"
        full_path = join_path(folder_path, name)
        if not is_valid_path(full_path):
            raise InvalidPath(full_path)
        self._ensure_free(db, full_path)

        now = utc_now()
        try:
            item = filesystem_item_crud.create(
                db,
                {
                    "name": name,
                    "type": item_type,
                    "path": full_path,
                    "parent_path": _parent_key(folder_path),
                    "size": None,
                    "extension": extension,
                    "is_real": False,
                    "owner_id": owner_id,
                    "date_created": now,
                    "date_modified": now,
                },
            )
        except IntegrityError as exc:
            raise FileAlreadyExists(full_path) from exc
        except SQLAlchemyError as exc:
            raise StorageFailure("写入文件记录失败") from exc
        logger.info("fs.synthetic path=%s type=%s", full_path, item_type.value)
        return item

    # ----------------------------
    # 变更
    # ----------------------------
    def update_file(
        self,
        db: Session,
        item_id: str,
        *,
        name: Any = UNSET,
        parent_path: Any = UNSET,
        owner_id: Any = UNSET,
    ) -> FilesystemItem:
        item = self._get_or_404(db, item_id)
        old_path = item.path

        wants_rename = name is not UNSET and name is not None and name != item.name
        new_parent_key = item.parent_path
        wants_move = False
        if parent_path is not UNSET and parent_path is not None:
            target_folder = self._validated_path(parent_path)
            new_parent_key = _parent_key(target_folder)
            wants_move = new_parent_key != item.parent_path
        wants_reassign = owner_id is not UNSET and owner_id != item.owner_id

        if is_protected(item) and (wants_rename or wants_move or wants_reassign):
            action = "重命名" if wants_rename else ("移动" if wants_move else "重新分配归属")
            raise ProtectedResource(old_path, action)

        policy = policy_for(item)
        new_name = item.name
        if wants_rename:
            ensure_can(item, "rename")
            new_name = self._renamed(self._validated_name(name), item.name, policy.keeps_extension)
        if wants_move:
            destination = new_parent_key or ROOT_PATH
            if is_same_or_descendant(destination, old_path):
                raise InvalidMove(f"不能将 {old_path} 移动到其自身或子目录 {destination}", path=old_path)
            ensure_can(item, "move")
            self._resolve_folder(db, destination)
        if wants_reassign:
            ensure_can(item, "reassign")

        new_path = join_path(new_parent_key or ROOT_PATH, new_name)
        if not is_valid_path(new_path):
            raise InvalidPath(new_path)
        if new_path != old_path:
            self._ensure_free(db, new_path)

        now = utc_now()
        try:
            if item.is_folder and new_path != old_path:
                self._rewrite_descendants(db, old_path, new_path, now)
            item.name = new_name
            item.path = new_path
            item.parent_path = new_parent_key
            if item.is_folder:
                item.extension = None
            elif wants_rename:
                item.extension = get_extension(new_name)
            if wants_reassign:
                item.owner_id = owner_id
            item.date_modified = now
            filesystem_item_crud.save(db, item, auto_commit=False)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise FileAlreadyExists(new_path) from exc
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("fs.update failed id=%s", item_id)
            raise StorageFailure("更新文件记录失败") from exc
        db.refresh(item)
        logger.info("fs.update id=%s %s -> %s owner=%s", item_id, old_path, new_path, item.owner_id)
        return item

    def _renamed(self, requested: str, current: str, keeps_extension: bool) -> str:
        """文件重命名时保留原扩展名（扩展名不可由用户修改）。"""
        if not keeps_extension:
            return requested
        base = strip_extension(requested) if get_extension(requested) else requested
        base = base.rstrip(".")
        if not base:
            raise InvalidArgument("名称不能为空")
        original_ext = get_extension(current)
        return f"{base}.{original_ext}" if original_ext else base

    def _rewrite_descendants(self, db: Session, old_path: str, new_path: str, now) -> None:
        """文件夹改名后同步改写整棵子树的 path / parent_path。"""
        prefix_len = len(old_path)
        for node in filesystem_item_crud.list_subtree(db, old_path):
            if node.path == old_path:
                continue
            node.path = new_path + node.path[prefix_len:]
            if node.parent_path is not None and is_same_or_descendant(node.parent_path, old_path):
                node.parent_path = new_path + node.parent_path[prefix_len:]
            node.date_modified = now
            db.add(node)
        db.flush()

    # ----------------------------
    # 删除
    # ----------------------------
    def delete_file(self, db: Session, item_id: str) -> DeleteResult:
        item = self._get_or_404(db, item_id)
        policy = ensure_can(item, "delete")
        path = item.path

        rows = filesystem_item_crud.list_subtree(db, path) if policy.cascades else [item]
        blob_keys = [r.storage_key for r in rows if policy_for(r).has_blob and r.storage_key]

        try:
            if policy.cascades:
                deleted = filesystem_item_crud.delete_subtree(db, path, auto_commit=False)
            else:
                deleted = filesystem_item_crud.delete_by_path(db, path, auto_commit=False)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            logger.exception("fs.delete rolled back path=%s", path)
            raise StorageFailure("删除文件记录失败，已回滚") from exc
        db.expire_all()

        result = DeleteResult(path=path, deleted=deleted, blobs_deleted=0)
        for key in blob_keys:
            try:
                self.blob_store.delete(key)
                result.blobs_deleted += 1
            except FilesystemError:
                logger.warning("fs.delete orphan blob key=%s path=%s", key, path)
                result.orphan_keys.append(key)
        logger.info(
            "fs.delete path=%s records=%s blobs=%s orphans=%s",
            path, deleted, result.blobs_deleted, len(result.orphan_keys),
        )
        return result

    # ----------------------------
    # 下载
    # ----------------------------
    def read_file(self, db: Session, item_id: str) -> Tuple[FilesystemItem, bytes]:
        item = self._get_or_404(db, item_id)
        if item.is_folder or not item.is_real or not item.storage_key:
            raise InvalidArgument(f"该条目没有可下载的内容: {item.path}", path=item.path)
        content = self.blob_store.get(item.storage_key)
        item.download_count = int(item.download_count or 0) + 1
        filesystem_item_crud.save(db, item)
        return item, content

    @staticmethod
    def _coerce_type(value: FileType | str) -> FileType:
        if isinstance(value, FileType):
            return value
        try:
            return FileType(str(value).upper())
        except ValueError as exc:
            raise InvalidArgument(f"不支持的文件类型: {value}") from exc


filesystem_service = FilesystemService()
