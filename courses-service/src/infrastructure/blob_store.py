"""S3-совместимое хранилище файлов курсов (AWS S3 / MinIO).

Ядро только кладёт объекты и подписывает ссылки. delete() есть для
внешнего сборщика мусора; сервис курсов его не вызывает.
"""
from functools import lru_cache
from typing import BinaryIO

import boto3
import structlog
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from ..config import settings
from ..domain.errors import BlobStoreUnavailableError
from .metrics import blob_store_errors_total
from .storage_keys import generate_course_file_key

logger = structlog.get_logger()


class S3BlobStore:
    def __init__(self, client, bucket: str):
        self._client = client
        self.bucket = bucket

    @classmethod
    def from_settings(cls) -> "S3BlobStore":
        client = boto3.client(
            "s3",
            endpoint_url=settings.S3_ENDPOINT_URL,
            aws_access_key_id=settings.S3_ACCESS_KEY_ID,
            aws_secret_access_key=settings.S3_SECRET_ACCESS_KEY,
            region_name=settings.S3_REGION,
            config=BotoConfig(
                signature_version="s3v4",
                connect_timeout=settings.S3_CONNECT_TIMEOUT,
                read_timeout=settings.S3_READ_TIMEOUT,
                retries={"max_attempts": settings.S3_MAX_ATTEMPTS, "mode": "standard"},
            ),
        )
        return cls(client, settings.S3_BUCKET)

    def _unavailable(self, operation: str, key: str, exc: Exception) -> BlobStoreUnavailableError:
        blob_store_errors_total.labels(operation=operation).inc()
        logger.error("blob_store_error", operation=operation, key=key, error=str(exc))
        return BlobStoreUnavailableError(f"Blob store {operation} failed, retry the request")

    def key_for(self, file_type: str, file_name: str, course_title, version: int = 1) -> str:
        return generate_course_file_key(file_type, file_name, course_title, version)

    def put(self, data: BinaryIO | bytes, key: str, content_type: str | None = None) -> str:
        extra = {"ContentType": content_type} if content_type else {}
        try:
            self._client.put_object(Bucket=self.bucket, Key=key, Body=data, **extra)
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("put", key, exc) from exc
        return key

    def delete(self, key: str) -> None:
        try:
            self._client.delete_object(Bucket=self.bucket, Key=key)
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("delete", key, exc) from exc

    def sign_get(self, key: str, ttl: int, content_type: str | None = None) -> str:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            # inline, чтобы браузер не предлагал скачать видео
            "ResponseContentDisposition": "inline",
        }
        is_video = "/videos/" in key or (content_type or "").startswith("video/")
        if is_video and content_type:
            params["ResponseContentType"] = content_type
        try:
            return self._client.generate_presigned_url("get_object", Params=params, ExpiresIn=ttl)
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("sign", key, exc) from exc


@lru_cache(maxsize=1)
def get_blob_store() -> S3BlobStore:
    return S3BlobStore.from_settings()
