"""Finder 客户端：通过 HTTP 适配器浏览虚拟文件系统，维护导航历史、排序与选择状态。"""

from .adapter import FinderAdapterError, FinderItem, HttpFilesystemAdapter
from .navigator import FinderNavigator, FinderState
from .sorting import format_file_size, sort_items

__all__ = [
    "FinderAdapterError",
    "FinderItem",
    "FinderNavigator",
    "FinderState",
    "HttpFilesystemAdapter",
    "format_file_size",
    "sort_items",
]
