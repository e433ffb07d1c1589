"""变更策略表与系统文件夹保护的单元测试。"""

from types import SimpleNamespace

import pytest

from app.packages.portfolio.core.constants import PROTECTED_FOLDERS
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.exceptions import InvalidArgument, InvalidMove, ProtectedResource
from app.packages.portfolio.core.guards import PROTECTED_POLICY, ensure_can, is_protected, policy_for


def _item(name, file_type=FileType.FOLDER, parent_path=None, is_real=False):
    path = f"{parent_path or ''}/{name}"
    return SimpleNamespace(name=name, type=file_type, parent_path=parent_path, is_real=is_real, path=path)


@pytest.mark.parametrize("name", PROTECTED_FOLDERS)
def test_root_system_folders_are_protected(name):
    item = _item(name)
    assert is_protected(item)
    assert policy_for(item) is PROTECTED_POLICY
    for action in ("rename", "move", "reassign", "delete"):
        with pytest.raises(ProtectedResource):
            ensure_can(item, action)


def test_nested_folder_with_system_name_is_not_protected():
    item = _item("Documents", parent_path="/Projects")
    assert not is_protected(item)
    assert ensure_can(item, "delete").cascades


def test_file_named_like_system_folder_is_not_protected():
    assert not is_protected(_item("Desktop", file_type=FileType.TEXT))


def test_folder_policy():
    folder = _item("Projects")
    assert ensure_can(folder, "rename").keeps_extension is False
    with pytest.raises(InvalidMove):
        ensure_can(folder, "move")
    with pytest.raises(InvalidArgument):
        ensure_can(folder, "reassign")


@pytest.mark.parametrize("is_real, has_blob", [(True, True), (False, False)])
def test_file_policy(is_real, has_blob):
    item = _item("a.txt", file_type=FileType.TEXT, parent_path="/Desktop", is_real=is_real)
    policy = policy_for(item)
    assert policy.has_blob is has_blob
    assert policy.keeps_extension
    assert not policy.cascades
    for action in ("rename", "move", "reassign", "delete"):
        assert ensure_can(item, action) is policy
