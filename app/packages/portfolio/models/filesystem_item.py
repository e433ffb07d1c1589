"""虚拟文件系统条目模型（文件与文件夹合并存储）。

存储规则：
- path：以 '/' 开头，不以 '/' 结尾；根目录不入库；全局唯一；
- parent_path：所在文件夹的 path，直接位于根目录下的条目为 NULL；
- 文件夹：size/extension/storage_key 均为 NULL；
- is_real：True 表示字节保存在 Blob Store（storage_key 指向该对象），
  False 为仅存在于数据库的占位文件。
"""

import uuid
from typing import Optional

from sqlalchemy import BigInteger, Boolean, Enum, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.models.base import Base, TimestampMixin


def _new_id() -> str:
    return str(uuid.uuid4())


class FilesystemItem(TimestampMixin, Base):
    __tablename__ = "filesystem_items"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), index=True)
    type: Mapped[FileType] = mapped_column(
        Enum(FileType, name="file_type", native_enum=False, length=16), index=True
    )
    # 示例："/Documents"、"/Documents/cv.pdf"
    path: Mapped[str] = mapped_column(String(1024), unique=True, index=True)
    parent_path: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True, index=True)
    size: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    extension: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    is_real: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    owner_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True, index=True)
    storage_key: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    download_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    @property
    def is_folder(self) -> bool:
        return self.type == FileType.FOLDER

    def __repr__(self) -> str:  # pragma: no cover - 调试辅助
        return f"<FilesystemItem {self.type.value} {self.path!r}>"
