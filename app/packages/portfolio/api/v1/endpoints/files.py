"""文件内容路由：按 id 下载或内联预览真实文件。"""

from __future__ import annotations

from urllib.parse import quote

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from app.packages.portfolio.core.dependencies import get_db, get_filesystem_service
from app.packages.portfolio.services.filesystem_service import FilesystemService

router = APIRouter(prefix="/files", tags=["files"])


def _content_response(db: Session, service: FilesystemService, item_id: str, disposition: str) -> Response:
    item, content = service.read_file(db, item_id)
    media_type = item.mime_type or "application/octet-stream"
    headers = {"Content-Disposition": f"{disposition}; filename*=UTF-8''{quote(item.name)}"}
    return Response(content=content, media_type=media_type, headers=headers)


@router.get("/download/{item_id}")
def download_file(
    item_id: str,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    return _content_response(db, service, item_id, "attachment")


@router.get("/view/{item_id}")
def view_file(
    item_id: str,
    db: Session = Depends(get_db),
    service: FilesystemService = Depends(get_filesystem_service),
):
    return _content_response(db, service, item_id, "inline")
