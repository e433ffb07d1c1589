"""Database bootstrapping utilities."""

from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from app.packages.portfolio.core.constants import PROTECTED_FOLDERS
from app.packages.portfolio.core.enums import FileType
from app.packages.portfolio.core.timezone import utc_now
from app.packages.portfolio.crud.filesystem_item import filesystem_item_crud
from app.packages.portfolio.db import session as db_session
from app.packages.portfolio.models.base import Base
from app.packages.portfolio.models.filesystem_item import FilesystemItem  # noqa: F401 - ensure table creation in tests
from app.packages.portfolio.utils.path_utils import join_path

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables if they do not exist and seed the system folders."""
    Base.metadata.create_all(bind=db_session.engine)

    session = db_session.SessionLocal()
    try:
        created = _seed_protected_folders(session)
        session.commit()
        if created:
            logger.info("Seeded %s system folders: %s", len(created), ", ".join(created))
    except Exception:  # pragma: no cover - initialization failures should surface
        session.rollback()
        logger.exception("Failed to seed default data during database initialization")
        raise
    finally:
        session.close()


def _seed_protected_folders(db: Session) -> list[str]:
    """确保根目录下的六个系统文件夹存在（幂等）。"""
    created: list[str] = []
    for name in PROTECTED_FOLDERS:
        path = join_path(name)
        if filesystem_item_crud.get_by_path(db, path) is not None:
            continue
        now = utc_now()
        filesystem_item_crud.create(
            db,
            {
                "name": name,
                "type": FileType.FOLDER,
                "path": path,
                "parent_path": None,
                "is_real": False,
                "date_created": now,
                "date_modified": now,
            },
            auto_commit=False,
        )
        created.append(name)
    db.flush()
    return created
