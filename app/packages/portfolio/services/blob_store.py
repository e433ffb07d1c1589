"""字节存储抽象与实现：统一封装本地目录与 S3 的对象读写。

Blob Store 只按 key 存取字节，不感知虚拟文件系统的目录结构；
key 由服务层生成并记录在 ``FilesystemItem.storage_key`` 中。
"""

from __future__ import annotations

import io
import uuid
from pathlib import Path
from typing import Optional

from app.packages.portfolio.core.config import Settings, get_settings
from app.packages.portfolio.core.enums import BlobBackendEnum
from app.packages.portfolio.core.exceptions import AppException, InvalidArgument, StorageFailure
from app.packages.portfolio.core.logger import logger
from app.packages.portfolio.core.constants import HTTP_STATUS_BAD_REQUEST, HTTP_STATUS_INTERNAL_SERVER_ERROR


def generate_storage_key(extension: Optional[str] = None) -> str:
    """生成唯一对象 key：``ab/abcdef....ext``，前两位做分桶避免单目录过大。"""
    token = uuid.uuid4().hex
    suffix = f".{extension}" if extension else ""
    return f"{token[:2]}/{token}{suffix}"


class BlobStore:
    """字节存储接口。"""

    def put(self, key: str, content: bytes, *, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def get(self, key: str) -> bytes:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError


# ------------------------------------------
# 本地文件系统实现
# ------------------------------------------


class LocalBlobStore(BlobStore):
    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()
        if not self.root.exists():
            try:
                self.root.mkdir(parents=True, exist_ok=True)
            except OSError as exc:  # pragma: no cover - 极端情况下可能失败
                raise AppException(f"无法创建本地根目录: {exc}", HTTP_STATUS_INTERNAL_SERVER_ERROR) from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        rel = key.strip().lstrip("/")
        candidate = (self.root / rel).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise InvalidArgument("非法存储 key: 越权访问") from exc
        return candidate

    def put(self, key: str, content: bytes, *, content_type: Optional[str] = None) -> None:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "wb") as f:
                f.write(content)
        except OSError as exc:
            logger.exception("blob.put failed key=%s", key)
            raise StorageFailure(f"写入文件失败: {exc}") from exc

    def get(self, key: str) -> bytes:
        target = self._resolve(key)
        try:
            return target.read_bytes()
        except FileNotFoundError as exc:
            raise StorageFailure(f"存储对象不存在: {key}") from exc
        except OSError as exc:
            raise StorageFailure(f"读取文件失败: {exc}") from exc

    def delete(self, key: str) -> None:
        target = self._resolve(key)
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageFailure(f"删除文件失败: {exc}") from exc

    def exists(self, key: str) -> bool:
        return self._resolve(key).is_file()


# ------------------------------------------
# S3 实现（boto3）
# ------------------------------------------


class S3BlobStore(BlobStore):
    def __init__(
        self,
        *,
        bucket: str,
        region: str,
        access_key_id: str,
        secret_access_key: str,
        prefix: Optional[str] = None,
        endpoint_url: Optional[str] = None,
    ):
        try:
            import boto3  # type: ignore
        except ImportError as exc:
            raise AppException(
                "S3 功能不可用：缺少依赖 boto3，请在后端安装后重试",
                HTTP_STATUS_INTERNAL_SERVER_ERROR,
            ) from exc

        self.bucket = bucket
        self.prefix = (prefix or "").strip("/")
        self._client = boto3.client(
            "s3",
            region_name=region,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
            endpoint_url=endpoint_url,
        )

    # 拼接基于 prefix 的对象 key
    def _join_key(self, key: str) -> str:
        rel = key.lstrip("/")
        return f"{self.prefix}/{rel}" if self.prefix else rel

    def put(self, key: str, content: bytes, *, content_type: Optional[str] = None) -> None:
        extra = {"ContentType": content_type} if content_type else None
        try:
            self._client.upload_fileobj(io.BytesIO(content), self.bucket, self._join_key(key), ExtraArgs=extra)
        except Exception as exc:
            logger.exception("S3 upload failed key=%s", key)
            raise StorageFailure(f"上传到对象存储失败: {exc}") from exc

    def get(self, key: str) -> bytes:
        buf = io.BytesIO()
        try:
            self._client.download_fileobj(self.bucket, self._join_key(key), buf)
        except Exception as exc:
            raise StorageFailure(f"读取对象存储失败: {exc}") from exc
        return buf.getvalue()

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=self._join_key(key))
        except Exception as exc:
            raise StorageFailure(f"删除对象存储文件失败: {exc}") from exc

    def exists(self, key: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=self._join_key(key))
        except Exception:
            return False
        return True


def build_blob_store(settings: Optional[Settings] = None) -> BlobStore:
    settings = settings or get_settings()
    t = (settings.blob_backend or "").upper()
    if t == BlobBackendEnum.LOCAL.value:
        return LocalBlobStore(settings.blob_local_directory)
    if t == BlobBackendEnum.S3.value:
        if not (
            settings.s3_region
            and settings.s3_bucket
            and settings.s3_access_key_id
            and settings.s3_secret_access_key
        ):
            raise AppException("S3 配置不完整", HTTP_STATUS_BAD_REQUEST)
        return S3BlobStore(
            bucket=settings.s3_bucket,
            region=settings.s3_region,
            access_key_id=settings.s3_access_key_id,
            secret_access_key=settings.s3_secret_access_key,
            prefix=settings.s3_prefix,
            endpoint_url=settings.s3_endpoint_url,
        )
    raise AppException("不支持的存储类型", HTTP_STATUS_BAD_REQUEST)
