"""Finder 列表的客户端排序与尺寸格式化。"""

from __future__ import annotations

from typing import Iterable, List

from app.packages.portfolio.core.constants import SORT_FIELDS, SORT_ORDERS

FOLDER = "folder"
_SIZE_UNITS = ("Bytes", "KB", "MB", "GB", "TB")


def _sort_value(item, sort_by: str):
    if sort_by == "dateModified":
        return item.date_modified
    if sort_by == "size":
        return 0 if item.type == FOLDER else (item.size or 0)
    if sort_by == "type":
        return item.type
    return item.name.casefold()


def sort_items(items: Iterable, sort_by: str = "name", sort_order: str = "asc") -> List:
    """文件夹始终排在文件之前，组内按 ``sort_by`` 排序；文件夹大小视为 0。"""
    if sort_by not in SORT_FIELDS:
        raise ValueError(f"unsupported sort field: {sort_by}")
    if sort_order not in SORT_ORDERS:
        raise ValueError(f"unsupported sort order: {sort_order}")

    reverse = sort_order == "desc"
    items = list(items)
    folders = [i for i in items if i.type == FOLDER]
    files = [i for i in items if i.type != FOLDER]
    folders.sort(key=lambda i: _sort_value(i, sort_by), reverse=reverse)
    files.sort(key=lambda i: _sort_value(i, sort_by), reverse=reverse)
    return folders + files


def format_file_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 Bytes"
    value = float(num_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_SIZE_UNITS[unit]}"
