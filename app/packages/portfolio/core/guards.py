"""文件系统条目的变更策略：统一维护“哪些条目允许哪些操作”。

规则按 ``(是否文件夹, 是否真实文件)`` 建表，另叠加系统保留文件夹的硬性禁止，
所有变更路径（重命名/移动/重新分配/删除）都只通过这里判定，避免散落的布尔判断。
"""

from __future__ import annotations

from dataclasses import dataclass

from app.packages.portfolio.core.constants import PROTECTED_FOLDERS
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.exceptions import InvalidArgument, InvalidMove, ProtectedResource


@dataclass(frozen=True)
class MutationPolicy:
    can_rename: bool
    can_move: bool
    can_reassign: bool
    can_delete: bool
    # 删除时需要同步删除 Blob Store 中的字节
    has_blob: bool
    # 删除时级联删除后代
    cascades: bool
    # 重命名时保留原扩展名
    keeps_extension: bool


# key: (is_folder, is_real)
POLICY_TABLE: dict[tuple[bool, bool], MutationPolicy] = {
    (True, False): MutationPolicy(
        can_rename=True, can_move=False, can_reassign=False, can_delete=True,
        has_blob=False, cascades=True, keeps_extension=False,
    ),
    # 文件夹不会有字节；兼容历史数据中误标为 real 的文件夹
    (True, True): MutationPolicy(
        can_rename=True, can_move=False, can_reassign=False, can_delete=True,
        has_blob=False, cascades=True, keeps_extension=False,
    ),
    (False, True): MutationPolicy(
        can_rename=True, can_move=True, can_reassign=True, can_delete=True,
        has_blob=True, cascades=False, keeps_extension=True,
    ),
    (False, False): MutationPolicy(
        can_rename=True, can_move=True, can_reassign=True, can_delete=True,
        has_blob=False, cascades=False, keeps_extension=True,
    ),
}

PROTECTED_POLICY = MutationPolicy(
    can_rename=False, can_move=False, can_reassign=False, can_delete=False,
    has_blob=False, cascades=True, keeps_extension=False,
)


def is_protected(item: object) -> bool:
    """根目录下与系统文件夹同名的文件夹即为保护对象。"""
    return (
        getattr(item, "type", None) == FileType.FOLDER
        and getattr(item, "parent_path", None) is None
        and getattr(item, "name", None) in PROTECTED_FOLDERS
    )


def policy_for(item: object) -> MutationPolicy:
    if is_protected(item):
        return PROTECTED_POLICY
    key = (getattr(item, "type", None) == FileType.FOLDER, bool(getattr(item, "is_real", False)))
    return POLICY_TABLE[key]


def ensure_can(item: object, action: str) -> MutationPolicy:
    """校验 ``action``（rename/move/reassign/delete）是否允许，不允许则抛出对应异常。"""
    policy = policy_for(item)
    allowed = getattr(policy, f"can_{action}")
    if allowed:
        return policy
    path = getattr(item, "path", "")
    label = _ACTION_LABELS.get(action, action)
    if policy is PROTECTED_POLICY:
        raise ProtectedResource(path, label)
    if action == "move":
        raise InvalidMove(f"文件夹不允许{label}: {path}", path=path)
    raise InvalidArgument(f"文件夹不允许{label}: {path}", path=path)


_ACTION_LABELS = {
    "rename": "重命名",
    "move": "移动",
    "reassign": "重新分配归属",
    "delete": "删除",
}
