"""测试夹具：为 pytest 提供数据库、Blob Store 与客户端的共享配置。"""

import os
from pathlib import Path
from typing import Generator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.packages.portfolio.core.dependencies import get_db, get_filesystem_service
from app.packages.portfolio.db import session as db_session
from app.packages.portfolio.db.init_db import init_db
from app.packages.portfolio.models import Base, FilesystemItem
from app.packages.portfolio.services.blob_store import LocalBlobStore
from app.packages.portfolio.services.filesystem_service import FilesystemService
from app.main import app

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"


class RecordingBlobStore(LocalBlobStore):
    """记录每一次调用的本地 Blob Store，用于断言调用顺序与次数。"""

    def __init__(self, root: Path):
        super().__init__(root)
        self.calls: List[Tuple[str, str]] = []

    def put(self, key: str, content: bytes, *, content_type: Optional[str] = None) -> None:
        self.calls.append(("put", key))
        super().put(key, content, content_type=content_type)

    def get(self, key: str) -> bytes:
        self.calls.append(("get", key))
        return super().get(key)

    def delete(self, key: str) -> None:
        self.calls.append(("delete", key))
        super().delete(key)

    def stored_keys(self) -> List[str]:
        return sorted(p.relative_to(self.root).as_posix() for p in self.root.rglob("*") if p.is_file())


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    Base.metadata.create_all(bind=engine)
    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
def reset_filesystem() -> Generator[None, None, None]:
    """每个用例结束后清空条目表并重新补齐系统文件夹。"""
    yield
    session = db_session.SessionLocal()
    try:
        session.query(FilesystemItem).delete()
        session.commit()
    finally:
        session.close()
    init_db()


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def blob_store(tmp_path) -> RecordingBlobStore:
    return RecordingBlobStore(tmp_path / "blobs")


@pytest.fixture()
def fs_service(blob_store) -> FilesystemService:
    return FilesystemService(blob_store)


@pytest.fixture()
def client(db_session_fixture, fs_service):
    """构建 FastAPI TestClient，并注入测试专用的数据库与文件系统服务依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_filesystem_service] = lambda: fs_service

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
