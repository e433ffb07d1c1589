"""Path utilities for the virtual filesystem.

Rules shared by the repository, the service and the finder:
- A normalized path always starts with '/', has no repeated separators and
  no trailing '/' except for the root itself;
- Root is '/'; items directly under root have ``parent_path = None``.
"""

from __future__ import annotations

import re
from typing import Optional, Tuple

ROOT = "/"

_MULTI_SLASH = re.compile(r"/+")
_FORBIDDEN_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


def normalize_path(value: str | None) -> str:
    if not value:
        return ROOT
    s = _MULTI_SLASH.sub("/", value)
    if not s.startswith("/"):
        s = "/" + s
    if len(s) > 1 and s.endswith("/"):
        s = s[:-1]
    return s


def is_valid_path(value: str | None) -> bool:
    """Reject parent-directory traversal and control/forbidden characters."""
    normalized = normalize_path(value)
    if "../" in normalized or "..\\" in normalized or normalized.endswith(("/..", "\\..")):
        return False
    return _FORBIDDEN_CHARS.search(normalized) is None


def join_path(*segments: str | None) -> str:
    parts = [s for s in segments if s]
    return normalize_path("/" + "/".join(parts))


def split_path(path: str) -> Tuple[Optional[str], str]:
    """Split a normalized path into ``(parent_path, name)``; parent is None under root."""
    normalized = normalize_path(path)
    if normalized == ROOT:
        return None, ""
    parent, _, name = normalized.rpartition("/")
    return (parent or None), name


def is_same_or_descendant(path: str, ancestor: str) -> bool:
    path = normalize_path(path)
    ancestor = normalize_path(ancestor)
    if ancestor == ROOT:
        return True
    return path == ancestor or path.startswith(ancestor + "/")


def get_extension(name: str | None) -> str | None:
    """Lowercase suffix after the last dot; hidden files such as '.env' have none."""
    if not name:
        return None
    base = name.rsplit("/", 1)[-1]
    idx = base.rfind(".")
    if idx <= 0 or idx == len(base) - 1:
        return None
    return base[idx + 1:].lower()


def strip_extension(name: str) -> str:
    ext = get_extension(name)
    if ext is None:
        return name
    return name[: -(len(ext) + 1)]
