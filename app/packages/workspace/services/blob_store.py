"""对象存储抽象与实现：统一封装本地目录与 S3/R2 的文件内容读写。

对账引擎只依赖三个操作：put / get / delete。key 为不透明字符串，
按 ``projects/{project_id}/files/{suffix}-{name}`` 生成。
"""

from __future__ import annotations

import uuid
from pathlib import Path
from typing import Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import status

from app.packages.workspace.core.config import Settings, get_settings
from app.packages.workspace.core.constants import CONTENT_TYPES, DEFAULT_CONTENT_TYPE
from app.packages.workspace.core.exceptions import AppException, NotFoundError, StoreFailure
from app.packages.workspace.core.logger import get_logger

logger = get_logger("storage")


def content_type_for(language: Optional[str]) -> str:
    return CONTENT_TYPES.get((language or "").lower(), DEFAULT_CONTENT_TYPE)


def build_blob_key(project_id: int, name: str) -> str:
    return f"projects/{project_id}/files/{uuid.uuid4().hex[:12]}-{name}"


class BlobStore:
    """对象存储接口。"""

    def put(self, key: str, content: str, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        raise NotImplementedError

    def get(self, key: str) -> str:
        raise NotImplementedError

    def delete(self, key: str) -> None:
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
                raise StoreFailure(f"无法创建本地存储目录: {exc}") from exc

    # 统一的安全路径拼接，防止路径遍历
    def _resolve(self, key: str) -> Path:
        candidate = (self.root / key.lstrip("/")).resolve()
        try:
            candidate.relative_to(self.root)
        except ValueError as exc:
            raise AppException("非法存储 key: 越权访问", status.HTTP_400_BAD_REQUEST) from exc
        return candidate

    def put(self, key: str, content: str, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        target = self._resolve(key)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        except OSError as exc:
            logger.exception("Local blob put failed: %s", key)
            raise StoreFailure(f"存储写入失败: {exc}") from exc

    def get(self, key: str) -> str:
        target = self._resolve(key)
        if not target.is_file():
            raise NotFoundError(f"存储对象不存在: {key}")
        try:
            return target.read_text(encoding="utf-8")
        except OSError as exc:
            raise StoreFailure(f"存储读取失败: {exc}") from exc

    def delete(self, key: str) -> None:
        target = self._resolve(key)
        if not target.exists():
            # 允许幂等：不存在则忽略
            return
        try:
            target.unlink()
        except OSError as exc:
            raise StoreFailure(f"存储删除失败: {exc}") from exc


# ------------------------------------------
# S3 / Cloudflare R2 实现（boto3）
# ------------------------------------------


class S3BlobStore(BlobStore):
    """AWS S3 或 Cloudflare R2（S3 兼容，通过 endpoint_url 接入）。"""

    def __init__(
        self,
        *,
        bucket: str,
        region: Optional[str],
        access_key_id: Optional[str],
        secret_access_key: Optional[str],
        endpoint_url: Optional[str] = None,
        client=None,
    ):
        self.bucket = bucket
        self._client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key_id,
            aws_secret_access_key=secret_access_key,
        )

    def put(self, key: str, content: str, content_type: str = DEFAULT_CONTENT_TYPE) -> None:
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=content.encode("utf-8"),
                ContentType=content_type,
            )
        except (ClientError, BotoCoreError) as exc:
            logger.exception("S3 put failed: %s", key)
            raise StoreFailure(f"Storage Upload Error: {exc}") from exc

    def get(self, key: str) -> str:
        try:
            resp = self._client.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read().decode("utf-8")
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in ("NoSuchKey", "404"):
                raise NotFoundError(f"存储对象不存在: {key}") from exc
            logger.error("S3 get failed: %s (%s)", key, exc)
            raise StoreFailure(f"Storage Get Error: {exc}") from exc
        except BotoCoreError as exc:
            raise StoreFailure(f"Storage Get Error: {exc}") from exc

    def delete(self, key: str) -> None:
        # S3 对不存在的 key 删除同样返回成功，天然幂等
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            logger.error("S3 delete failed: %s (%s)", key, exc)
            raise StoreFailure(f"Storage Delete Error: {exc}") from exc


def build_blob_store(settings: Settings) -> BlobStore:
    provider = (settings.storage_provider or "").lower()
    if provider == "local":
        return LocalBlobStore(settings.local_blob_directory)
    if provider == "cloudflare-r2":
        if not (settings.r2_endpoint and settings.r2_bucket_name):
            raise AppException("R2 配置不完整", status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Using Cloudflare R2 for file storage")
        return S3BlobStore(
            bucket=settings.r2_bucket_name,
            region="auto",
            access_key_id=settings.r2_access_key_id,
            secret_access_key=settings.r2_secret_access_key,
            endpoint_url=settings.r2_endpoint,
        )
    if provider == "aws-s3":
        if not settings.s3_bucket_name:
            raise AppException("S3 配置不完整", status.HTTP_500_INTERNAL_SERVER_ERROR)
        logger.info("Using AWS S3 for file storage")
        return S3BlobStore(
            bucket=settings.s3_bucket_name,
            region=settings.aws_region,
            access_key_id=settings.aws_access_key_id,
            secret_access_key=settings.aws_secret_access_key,
        )
    raise AppException("不支持的存储类型", status.HTTP_500_INTERNAL_SERVER_ERROR)


_blob_store: Optional[BlobStore] = None


def get_blob_store() -> BlobStore:
    """返回进程级共享的对象存储实例，首次调用时按配置创建。"""
    global _blob_store
    if _blob_store is None:
        _blob_store = build_blob_store(get_settings())
    return _blob_store


def set_blob_store(store: Optional[BlobStore]) -> None:
    """替换共享实例（测试中切换到临时目录）；传入 None 时下次调用重新构建。"""
    global _blob_store
    _blob_store = store
