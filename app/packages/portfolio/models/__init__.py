"""模型集合：导入所有 ORM 模型以便于元数据注册。"""

from app.packages.portfolio.models.base import Base
from app.packages.portfolio.models.filesystem_item import FilesystemItem

__all__ = ["Base", "FilesystemItem"]
