"""依赖注入模块：封装 FastAPI 中复用度高的依赖函数。

身份认证由外部协作方负责，这里不解析用户；调用方通过请求参数传入 ownerId。
"""

from collections.abc import Generator

from sqlalchemy.orm import Session

from app.packages.portfolio.db import session as db_session
from app.packages.portfolio.services.filesystem_service import FilesystemService, filesystem_service


def get_db() -> Generator[Session, None, None]:
    """生成一个数据库会话，并在请求结束后自动关闭。"""
    db = db_session.SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_filesystem_service() -> FilesystemService:
    """返回组合根中的文件系统服务实例，测试可通过 dependency_overrides 替换。"""
    return filesystem_service
