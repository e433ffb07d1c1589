"""FilesystemService 行为测试：上传、虚拟文件、重命名/移动、级联删除与系统文件夹保护。"""

import logging

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.packages.portfolio.core.constants import PROTECTED_FOLDERS
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.exceptions import (
    DirectoryNotFound,
    FileAlreadyExists,
    FileNotFound,
    InvalidArgument,
    InvalidMove,
    InvalidPath,
    ProtectedResource,
    StorageFailure,
)
from app.packages.portfolio.crud.filesystem_item import filesystem_item_crud
from app.packages.portfolio.models import FilesystemItem
from app.packages.portfolio.services import filesystem_service as fs_module


def _folder(service, db, parent, name, owner_id=None):
    return service.create_synthetic_file(db, parent, name, FileType.FOLDER, owner_id=owner_id)


def _paths(db):
    return sorted(p for (p,) in db.query(FilesystemItem.path).all())


# ----------------------------
# 目录查询
# ----------------------------


def test_root_lists_system_folders(fs_service, db_session_fixture):
    page = fs_service.get_items(db_session_fixture, "/")
    assert page.path == "/"
    assert page.parent is None
    assert page.total_count == len(PROTECTED_FOLDERS)
    assert [i.name for i in page.items] == sorted(PROTECTED_FOLDERS)
    assert all(i.parent_path is None for i in page.items)


def test_get_items_sorting_and_paging(fs_service, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Desktop", "small.txt", b"1")
    fs_service.upload_file(db, "/Desktop", "large.txt", b"123456")
    fs_service.upload_file(db, "/Desktop", "medium.txt", b"123")

    by_size = fs_service.get_items(db, "/Desktop", sort_by="size", sort_order="desc")
    assert [i.name for i in by_size.items] == ["large.txt", "medium.txt", "small.txt"]

    page = fs_service.get_items(db, "Desktop/", limit=2, offset=2)
    assert page.path == "/Desktop"
    assert page.total_count == 3
    assert [i.name for i in page.items] == ["small.txt"]
    assert page.parent is not None and page.parent.name == "Desktop"


def test_get_items_errors(fs_service, db_session_fixture):
    db = db_session_fixture
    with pytest.raises(InvalidPath):
        fs_service.get_items(db, "/Documents/../etc")
    with pytest.raises(DirectoryNotFound):
        fs_service.get_items(db, "/Nowhere")
    with pytest.raises(InvalidArgument):
        fs_service.get_items(db, "/", sort_by="color")
    with pytest.raises(InvalidArgument):
        fs_service.get_items(db, "/", limit=0)

    fs_service.upload_file(db, "/Desktop", "a.txt", b"x")
    with pytest.raises(DirectoryNotFound):
        fs_service.get_items(db, "/Desktop/a.txt")


# ----------------------------
# 上传
# ----------------------------


def test_upload_creates_real_file(fs_service, blob_store, db_session_fixture):
    item = fs_service.upload_file(
        db_session_fixture, "/Desktop", "a.txt", b"hello", mime_type="text/plain", owner_id="u1"
    )
    assert item.path == "/Desktop/a.txt"
    assert item.parent_path == "/Desktop"
    assert item.is_real is True
    assert item.size == 5
    assert item.extension == "txt"
    assert item.type == FileType.TEXT
    assert item.owner_id == "u1"
    assert blob_store.stored_keys() == [item.storage_key]
    assert blob_store.get(item.storage_key) == b"hello"


def test_upload_collision_does_not_touch_blob_store(fs_service, blob_store, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Desktop", "a.txt", b"first")
    calls_before = list(blob_store.calls)
    keys_before = blob_store.stored_keys()

    with pytest.raises(FileAlreadyExists):
        fs_service.upload_file(db, "/Desktop", "a.txt", b"second")

    assert blob_store.calls == calls_before
    assert blob_store.stored_keys() == keys_before


def test_upload_to_missing_folder(fs_service, blob_store, db_session_fixture):
    with pytest.raises(DirectoryNotFound):
        fs_service.upload_file(db_session_fixture, "/Missing", "a.txt", b"x")
    assert blob_store.calls == []


@pytest.mark.parametrize("name", ["", "   ", None, "a/b.txt", ".."])
def test_upload_rejects_bad_names(fs_service, blob_store, db_session_fixture, name):
    with pytest.raises(InvalidArgument):
        fs_service.upload_file(db_session_fixture, "/Desktop", name, b"x")
    assert blob_store.calls == []


def test_upload_record_failure_leaves_logged_orphan(fs_service, blob_store, db_session_fixture, monkeypatch, caplog):
    def _broken_create(*args, **kwargs):
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr(filesystem_item_crud, "create", _broken_create)
    monkeypatch.setattr(fs_module.logger, "propagate", True)
    caplog.set_level(logging.ERROR)

    with pytest.raises(StorageFailure):
        fs_service.upload_file(db_session_fixture, "/Desktop", "a.txt", b"bytes")

    assert [c[0] for c in blob_store.calls] == ["put"]
    orphan_key = blob_store.calls[0][1]
    assert blob_store.exists(orphan_key)
    assert filesystem_item_crud.get_by_path(db_session_fixture, "/Desktop/a.txt") is None
    assert "orphan blob" in caplog.text
    assert orphan_key in caplog.text


# ----------------------------
# 虚拟文件
# ----------------------------


def test_synthetic_file_never_uses_blob_store(fs_service, blob_store, db_session_fixture):
    item = fs_service.create_synthetic_file(db_session_fixture, "/Documents", "resume.pdf", "document")
    assert item.is_real is False
    assert item.size is None
    assert item.storage_key is None
    assert item.type == FileType.DOCUMENT
    assert blob_store.calls == []


def test_synthetic_file_gets_default_extension(fs_service, db_session_fixture):
    item = fs_service.create_synthetic_file(db_session_fixture, "/Music", "theme", FileType.AUDIO)
    assert item.name == "theme.mp3"
    assert item.extension == "mp3"


def test_synthetic_folder_and_nested_file(fs_service, db_session_fixture):
    db = db_session_fixture
    folder = _folder(fs_service, db, "/", "Projects")
    assert folder.parent_path is None
    assert folder.extension is None
    child = fs_service.create_synthetic_file(db, "/Projects", "plan.md", FileType.TEXT)
    assert child.parent_path == "/Projects"

    with pytest.raises(FileAlreadyExists):
        _folder(fs_service, db, "/", "Projects")
    with pytest.raises(InvalidArgument):
        fs_service.create_synthetic_file(db, "/", "x", "SPREADSHEET")


def test_every_parent_path_resolves_to_folder(fs_service, db_session_fixture):
    db = db_session_fixture
    _folder(fs_service, db, "/", "Projects")
    _folder(fs_service, db, "/Projects", "Sub")
    fs_service.upload_file(db, "/Projects/Sub", "code.py", b"print()")
    fs_service.create_synthetic_file(db, "/Pictures", "cat.png", FileType.IMAGE)

    for item in db.query(FilesystemItem).all():
        if item.parent_path is None:
            assert item.path.count("/") == 1
            continue
        parent = filesystem_item_crud.get_by_path(db, item.parent_path)
        assert parent is not None
        assert parent.type == FileType.FOLDER


# ----------------------------
# 更新：重命名 / 移动 / 重新分配
# ----------------------------


def test_rename_preserves_extension(fs_service, db_session_fixture):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x")

    renamed = fs_service.update_file(db, item.id, name="b.md")
    assert renamed.name == "b.txt"
    assert renamed.path == "/Desktop/b.txt"
    assert renamed.extension == "txt"

    renamed = fs_service.update_file(db, item.id, name="notes")
    assert renamed.name == "notes.txt"

    renamed = fs_service.update_file(db, item.id, name="draft.")
    assert renamed.name == "draft.txt"
    assert renamed.path == "/Desktop/draft.txt"


@pytest.mark.parametrize("name", ["", "   "])
def test_rename_to_empty_name_is_rejected(fs_service, db_session_fixture, name):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x")
    with pytest.raises(InvalidArgument):
        fs_service.update_file(db, item.id, name=name)
    assert filesystem_item_crud.get(db, item.id).name == "a.txt"


def test_rename_collision(fs_service, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Desktop", "a.txt", b"x")
    other = fs_service.upload_file(db, "/Desktop", "b.txt", b"y")
    with pytest.raises(FileAlreadyExists):
        fs_service.update_file(db, other.id, name="a")


def test_folder_rename_rewrites_subtree(fs_service, db_session_fixture):
    db = db_session_fixture
    folder = _folder(fs_service, db, "/", "Projects")
    _folder(fs_service, db, "/Projects", "Sub")
    deep = fs_service.upload_file(db, "/Projects/Sub", "x.txt", b"x")
    _folder(fs_service, db, "/", "ProjectsOld")

    fs_service.update_file(db, folder.id, name="Work")

    db.expire_all()
    moved = filesystem_item_crud.get(db, deep.id)
    assert moved.path == "/Work/Sub/x.txt"
    assert moved.parent_path == "/Work/Sub"
    assert filesystem_item_crud.get_by_path(db, "/Work/Sub").parent_path == "/Work"
    assert filesystem_item_crud.get_by_path(db, "/ProjectsOld") is not None
    assert not [p for p in _paths(db) if p.startswith("/Projects/")]


def test_move_file_between_folders(fs_service, db_session_fixture):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x")

    moved = fs_service.update_file(db, item.id, parent_path="/Documents")
    assert moved.path == "/Documents/a.txt"
    assert moved.parent_path == "/Documents"

    to_root = fs_service.update_file(db, item.id, parent_path="/")
    assert to_root.path == "/a.txt"
    assert to_root.parent_path is None

    with pytest.raises(DirectoryNotFound):
        fs_service.update_file(db, item.id, parent_path="/Missing")


def test_move_into_existing_name_conflicts(fs_service, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Documents", "a.txt", b"x")
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"y")
    with pytest.raises(FileAlreadyExists):
        fs_service.update_file(db, item.id, parent_path="/Documents")


def test_move_folder_into_own_subtree_is_rejected(fs_service, db_session_fixture):
    db = db_session_fixture
    projects = _folder(fs_service, db, "/", "Projects")
    _folder(fs_service, db, "/Projects", "Sub")
    before = _paths(db)

    with pytest.raises(InvalidMove):
        fs_service.update_file(db, projects.id, parent_path="/Projects/Sub")
    with pytest.raises(InvalidMove):
        fs_service.update_file(db, projects.id, parent_path="/Projects")

    db.expire_all()
    assert _paths(db) == before


def test_folders_cannot_move_or_change_owner(fs_service, db_session_fixture):
    db = db_session_fixture
    projects = _folder(fs_service, db, "/", "Projects")
    with pytest.raises(InvalidMove):
        fs_service.update_file(db, projects.id, parent_path="/Documents")
    with pytest.raises(InvalidArgument):
        fs_service.update_file(db, projects.id, owner_id="u1")


def test_reassign_file_owner(fs_service, db_session_fixture):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x", owner_id="u1")
    assert fs_service.update_file(db, item.id, owner_id="u2").owner_id == "u2"
    assert fs_service.update_file(db, item.id, owner_id=None).owner_id is None


@pytest.mark.parametrize("name", PROTECTED_FOLDERS)
def test_protected_folders_reject_every_mutation(fs_service, db_session_fixture, name):
    db = db_session_fixture
    folder = filesystem_item_crud.get_by_path(db, f"/{name}")
    with pytest.raises(ProtectedResource):
        fs_service.update_file(db, folder.id, name=f"{name}2")
    with pytest.raises(ProtectedResource):
        fs_service.update_file(db, folder.id, owner_id="u1")
    other = "/Documents" if name == "Desktop" else "/Desktop"
    with pytest.raises(ProtectedResource):
        fs_service.update_file(db, folder.id, parent_path=other)
    with pytest.raises(ProtectedResource):
        fs_service.delete_file(db, folder.id)
    assert filesystem_item_crud.get_by_path(db, f"/{name}") is not None


def test_update_unknown_id(fs_service, db_session_fixture):
    with pytest.raises(FileNotFound):
        fs_service.update_file(db_session_fixture, "missing-id", name="x")


# ----------------------------
# 删除
# ----------------------------


def test_delete_folder_cascades_records_and_blobs(fs_service, blob_store, db_session_fixture):
    db = db_session_fixture
    projects = _folder(fs_service, db, "/", "Projects")
    _folder(fs_service, db, "/Projects", "Sub")
    fs_service.upload_file(db, "/Projects", "a.txt", b"a")
    fs_service.upload_file(db, "/Projects/Sub", "b.txt", b"b")
    fs_service.create_synthetic_file(db, "/Projects/Sub", "c.pdf", FileType.DOCUMENT)
    sibling = _folder(fs_service, db, "/", "ProjectsOld")
    total_before = db.query(FilesystemItem).count()

    result = fs_service.delete_file(db, projects.id)

    # folder + 4 descendants
    assert result.deleted == 5
    assert result.blobs_deleted == 2
    assert result.orphan_keys == []
    assert db.query(FilesystemItem).count() == total_before - 5
    assert blob_store.stored_keys() == []
    assert not [p for p in _paths(db) if p == "/Projects" or p.startswith("/Projects/")]
    assert filesystem_item_crud.get(db, sibling.id) is not None


def test_delete_folder_leaves_case_variant_sibling(fs_service, blob_store, db_session_fixture):
    db = db_session_fixture
    upper = _folder(fs_service, db, "/", "Projects")
    fs_service.upload_file(db, "/Projects", "gone.txt", b"g")
    _folder(fs_service, db, "/", "projects")
    keep = fs_service.upload_file(db, "/projects", "keep.txt", b"k")

    result = fs_service.delete_file(db, upper.id)

    assert result.deleted == 2
    assert result.blobs_deleted == 1
    assert filesystem_item_crud.get_by_path(db, "/projects") is not None
    assert filesystem_item_crud.get_by_path(db, "/projects/keep.txt") is not None
    assert blob_store.stored_keys() == [keep.storage_key]


def test_folder_rename_leaves_case_variant_sibling(fs_service, db_session_fixture):
    db = db_session_fixture
    upper = _folder(fs_service, db, "/", "Projects")
    mine = fs_service.upload_file(db, "/Projects", "mine.txt", b"m")
    _folder(fs_service, db, "/", "projects")
    keep = fs_service.upload_file(db, "/projects", "keep.txt", b"k")

    fs_service.update_file(db, upper.id, name="Work")

    db.expire_all()
    assert filesystem_item_crud.get(db, mine.id).path == "/Work/mine.txt"
    untouched = filesystem_item_crud.get(db, keep.id)
    assert untouched.path == "/projects/keep.txt"
    assert untouched.parent_path == "/projects"


def test_delete_single_file(fs_service, blob_store, db_session_fixture):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x")
    result = fs_service.delete_file(db, item.id)
    assert result.deleted == 1
    assert result.blobs_deleted == 1
    assert blob_store.stored_keys() == []
    with pytest.raises(FileNotFound):
        fs_service.get_item(db, item.id)


def test_delete_reports_blob_failures_as_orphans(fs_service, blob_store, db_session_fixture, monkeypatch):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"x")

    def _broken_delete(key):
        raise StorageFailure("bucket unavailable")

    monkeypatch.setattr(blob_store, "delete", _broken_delete)
    result = fs_service.delete_file(db, item.id)
    assert result.deleted == 1
    assert result.blobs_deleted == 0
    assert result.orphan_keys == [item.storage_key]
    assert filesystem_item_crud.get_by_path(db, "/Desktop/a.txt") is None


# ----------------------------
# 下载、管理端列表与统计
# ----------------------------


def test_read_file_counts_downloads(fs_service, db_session_fixture):
    db = db_session_fixture
    item = fs_service.upload_file(db, "/Desktop", "a.txt", b"hello")
    read, content = fs_service.read_file(db, item.id)
    assert content == b"hello"
    assert read.download_count == 1

    fake = fs_service.create_synthetic_file(db, "/Desktop", "fake.txt", FileType.TEXT)
    with pytest.raises(InvalidArgument):
        fs_service.read_file(db, fake.id)


def test_list_files_filters(fs_service, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Documents", "report.pdf", b"%PDF")
    fs_service.create_synthetic_file(db, "/Documents", "Report-draft.pdf", FileType.DOCUMENT)
    fs_service.create_synthetic_file(db, "/Music", "song.mp3", FileType.AUDIO)

    data = fs_service.list_files(db, search="report")
    assert {f["name"] for f in data["files"]} == {"report.pdf", "Report-draft.pdf"}
    assert data["pagination"]["total"] == 2

    real = fs_service.list_files(db, search="report", is_real=True)
    assert [f["name"] for f in real["files"]] == ["report.pdf"]

    audio = fs_service.list_files(db, file_type="audio")
    assert [f["path"] for f in audio["files"]] == ["/Music/song.mp3"]

    root_only = fs_service.list_files(db, parent_path="/", limit=100)
    assert {f["name"] for f in root_only["files"]} == set(PROTECTED_FOLDERS)


def test_folder_paths_include_owned_folders(fs_service, db_session_fixture):
    db = db_session_fixture
    _folder(fs_service, db, "/", "Private", owner_id="u1")

    public = fs_service.list_folder_paths(db)
    assert public[0]["path"] == "/"
    assert "/Private" not in [p["path"] for p in public]

    owned = fs_service.list_folder_paths(db, owner_id="u1")
    assert "/Private" in [p["path"] for p in owned]
    assert len(owned) == len(PROTECTED_FOLDERS) + 2


def test_stats(fs_service, db_session_fixture):
    db = db_session_fixture
    fs_service.upload_file(db, "/Desktop", "a.txt", b"12345")
    fs_service.create_synthetic_file(db, "/Documents", "cv.pdf", FileType.DOCUMENT)

    stats = fs_service.get_stats(db)
    assert stats["totalFiles"] == 2
    assert stats["totalFolders"] == len(PROTECTED_FOLDERS)
    assert stats["realFiles"] == 1
    assert stats["syntheticFiles"] == 1
    assert stats["totalSize"] == 5
    assert stats["recentFiles"] == 2
    assert stats["fileTypes"] == {"TEXT": 1, "DOCUMENT": 1}
