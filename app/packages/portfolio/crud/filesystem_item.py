"""FilesystemItem CRUD：按 path / parent_path 查询与变更条目记录。

本层不做业务校验（路径合法性、保护目录、环路等由服务层负责）。
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.crud.base import CRUDBase
from app.packages.portfolio.models.filesystem_item import FilesystemItem


def _parent_filter(parent_path: Optional[str]):
    if parent_path is None:
        return FilesystemItem.parent_path.is_(None)
    return FilesystemItem.parent_path == parent_path


def _subtree_filter(path: str):
    # SQLite 的 LIKE 对 ASCII 大小写不敏感，只能作为预筛选
    return or_(
        FilesystemItem.path == path,
        FilesystemItem.path.startswith(path + "/", autoescape=True),
    )


def _in_subtree(candidate: str, path: str) -> bool:
    return candidate == path or candidate.startswith(path + "/")


class CRUDFilesystemItem(CRUDBase[FilesystemItem]):
    def _sort_columns(self, sort_by: str, sort_order: str) -> list:
        if sort_by == "dateModified":
            key = FilesystemItem.date_modified
        elif sort_by == "size":
            # 文件夹的 size 无意义，按 0 参与排序
            key = func.coalesce(FilesystemItem.size, 0)
        elif sort_by == "type":
            key = FilesystemItem.type
        else:
            key = FilesystemItem.name
        primary = key.desc() if sort_order == "desc" else key.asc()
        # path 唯一，作为次级排序保证结果稳定
        return [primary, FilesystemItem.path.asc()]

    def get_by_path(self, db: Session, path: str) -> FilesystemItem | None:
        return self.query(db).filter(FilesystemItem.path == path).first()

    def list_by_parent(
        self,
        db: Session,
        parent_path: Optional[str],
        *,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[FilesystemItem]:
        q = (
            self.query(db)
            .filter(_parent_filter(parent_path))
            .order_by(*self._sort_columns(sort_by, sort_order))
        )
        if offset:
            q = q.offset(offset)
        if limit is not None:
            q = q.limit(limit)
        return q.all()

    def count_by_parent(self, db: Session, parent_path: Optional[str]) -> int:
        return self.query(db).filter(_parent_filter(parent_path)).count()

    def list_subtree(self, db: Session, path: str) -> List[FilesystemItem]:
        """返回 path 本身及其所有后代，按路径长度倒序（先叶子后父级）。"""
        rows = [r for r in self.query(db).filter(_subtree_filter(path)).all() if _in_subtree(r.path, path)]
        return sorted(rows, key=lambda r: len(r.path), reverse=True)

    def delete_by_path(self, db: Session, path: str, *, auto_commit: bool = True) -> int:
        deleted = self.query(db).filter(FilesystemItem.path == path).delete(synchronize_session=False)
        self._commit_or_flush(db, auto_commit)
        return deleted

    def delete_subtree(self, db: Session, path: str, *, auto_commit: bool = True) -> int:
        ids = [r.id for r in self.list_subtree(db, path)]
        if not ids:
            return 0
        deleted = self.query(db).filter(FilesystemItem.id.in_(ids)).delete(synchronize_session=False)
        self._commit_or_flush(db, auto_commit)
        return deleted

    def search(
        self,
        db: Session,
        *,
        search: Optional[str] = None,
        file_type: Optional[FileType] = None,
        is_real: Optional[bool] = None,
        parent_path: Optional[str] = None,
        filter_parent: bool = False,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[List[FilesystemItem], int]:
        q = self.query(db)
        if search:
            q = q.filter(FilesystemItem.name.icontains(search, autoescape=True))
        if file_type is not None:
            q = q.filter(FilesystemItem.type == file_type)
        if is_real is not None:
            q = q.filter(FilesystemItem.is_real.is_(is_real))
        if filter_parent:
            q = q.filter(_parent_filter(parent_path))
        total = q.count()
        rows = (
            q.order_by(FilesystemItem.date_created.desc(), FilesystemItem.path.asc())
            .offset(skip)
            .limit(limit)
            .all()
        )
        return rows, total

    def list_folders(self, db: Session, *, owner_id: Optional[str] = None) -> List[FilesystemItem]:
        """公共文件夹（owner 为空）以及指定用户的文件夹。"""
        q = self.query(db).filter(FilesystemItem.type == FileType.FOLDER)
        if owner_id:
            q = q.filter(or_(FilesystemItem.owner_id.is_(None), FilesystemItem.owner_id == owner_id))
        else:
            q = q.filter(FilesystemItem.owner_id.is_(None))
        return q.order_by(FilesystemItem.path.asc()).all()

    def stats(self, db: Session, *, recent_since: datetime) -> Dict[str, Any]:
        not_folder = FilesystemItem.type != FileType.FOLDER
        total_files = self.query(db).filter(not_folder).count()
        total_folders = self.query(db).filter(FilesystemItem.type == FileType.FOLDER).count()
        real_files = self.query(db).filter(not_folder, FilesystemItem.is_real.is_(True)).count()
        by_type = (
            db.query(FilesystemItem.type, func.count(FilesystemItem.id))
            .filter(not_folder)
            .group_by(FilesystemItem.type)
            .all()
        )
        total_size = (
            db.query(func.coalesce(func.sum(FilesystemItem.size), 0))
            .filter(not_folder, FilesystemItem.size.isnot(None))
            .scalar()
        )
        recent = (
            self.query(db)
            .filter(not_folder, FilesystemItem.date_created >= recent_since)
            .count()
        )
        return {
            "totalFiles": total_files,
            "totalFolders": total_folders,
            "realFiles": real_files,
            "syntheticFiles": total_files - real_files,
            "fileTypes": {t.value: c for t, c in by_type},
            "totalSize": int(total_size or 0),
            "recentFiles": recent,
        }

    @staticmethod
    def _commit_or_flush(db: Session, auto_commit: bool) -> None:
        if not auto_commit:
            db.flush()
            return
        try:
            db.commit()
        except Exception:
            db.rollback()
            raise


filesystem_item_crud = CRUDFilesystemItem(FilesystemItem)
