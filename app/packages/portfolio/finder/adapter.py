"""Finder 使用的 HTTP 适配器。

把 ``/api/v1/filesystem`` 的统一响应信封解包成 :class:`FinderItem`，
非 2xx 响应统一转换为 :class:`FinderAdapterError`。
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional

import httpx

from app.packages.portfolio.core.constants import ROOT_PATH

DEFAULT_API_PREFIX = "/api/v1"


@dataclass(frozen=True)
class FinderItem:
    id: str
    name: str
    type: str
    path: str
    parent_path: Optional[str]
    date_created: datetime
    date_modified: datetime
    size: Optional[int] = None
    extension: Optional[str] = None
    is_real: bool = False
    owner_id: Optional[str] = None

    @property
    def is_folder(self) -> bool:
        return self.type == "folder"

    @classmethod
    def from_dto(cls, dto: dict) -> "FinderItem":
        """服务端的枚举类型为大写，客户端统一使用小写。"""
        return cls(
            id=dto["id"],
            name=dto["name"],
            type=str(dto["type"]).lower(),
            path=dto["path"],
            parent_path=dto.get("parentPath"),
            date_created=datetime.fromisoformat(dto["dateCreated"]),
            date_modified=datetime.fromisoformat(dto["dateModified"]),
            size=dto.get("size"),
            extension=dto.get("extension"),
            is_real=bool(dto.get("isReal", False)),
            owner_id=dto.get("ownerId"),
        )


class FinderAdapterError(Exception):
    """服务端返回错误信封或请求未能完成。"""

    def __init__(self, message: str, *, error_code: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.status_code = status_code


class HttpFilesystemAdapter:
    """Finder 与文件系统 API 之间唯一的通信通道，除 HTTP 客户端外不持有任何状态。"""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        client: Optional[httpx.AsyncClient] = None,
        api_prefix: str = DEFAULT_API_PREFIX,
        timeout: float = 10.0,
    ):
        if client is None and base_url is None:
            raise ValueError("either base_url or client is required")
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.api_prefix = api_prefix.rstrip("/")

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "HttpFilesystemAdapter":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def _directory_url(self, path: str) -> str:
        base = f"{self.api_prefix}/filesystem"
        if not path or path == ROOT_PATH:
            return base
        return f"{base}/{path.lstrip('/')}"

    async def get_items(self, path: str, sort_by: str = "name", sort_order: str = "asc") -> List[FinderItem]:
        params = {"sortBy": sort_by, "sortOrder": sort_order}
        response = await self._request("GET", self._directory_url(path), params=params)
        data = self._unwrap(response, "Failed to fetch items")
        return [FinderItem.from_dto(item) for item in (data or {}).get("items", [])]

    async def upload_file(
        self,
        content: bytes,
        path: str,
        custom_name: Optional[str] = None,
        *,
        filename: str,
        content_type: str = "application/octet-stream",
        owner_id: Optional[str] = None,
    ) -> FinderItem:
        form = {"path": path, "customName": custom_name or filename}
        if owner_id:
            form["ownerId"] = owner_id
        files = {"file": (filename, content, content_type)}
        response = await self._request("POST", f"{self.api_prefix}/filesystem/upload", data=form, files=files)
        return FinderItem.from_dto(self._unwrap(response, "Failed to upload file"))

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            raise FinderAdapterError(f"request failed: {exc}") from exc

    @staticmethod
    def _unwrap(response: httpx.Response, fallback: str) -> Any:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        if not response.is_success:
            body = payload if isinstance(payload, dict) else {}
            message = body.get("error") or body.get("msg") or fallback
            raise FinderAdapterError(message, error_code=body.get("errorCode"), status_code=response.status_code)

        if not isinstance(payload, dict):
            raise FinderAdapterError(fallback, status_code=response.status_code)
        return payload.get("data")
