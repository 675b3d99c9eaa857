"""
Object storage abstraction for S3-compatible backends and in-memory testing.
"""
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol
from urllib.parse import quote

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from core.config import settings
from core.logging import storage_logger as logger


class StorageError(Exception):
    """Raised when the storage backend rejects or fails an operation."""


class ObjectNotFoundError(StorageError):
    """Raised when an object does not exist."""


class StorageClient(Protocol):
    """Operations the application needs from object storage."""

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None, upsert: bool = False) -> None:
        ...

    def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        ...

    def remove(self, paths: List[str]) -> None:
        ...

    def exists(self, path: str) -> bool:
        ...

    def list(self, prefix: str = "", limit: int = 1000) -> List[str]:
        ...

    def ping(self) -> None:
        ...


@dataclass
class InMemoryStorageClient:
    """Test double for storage interactions."""

    bucket: str = "student-notes"
    base_url: str = "https://storage.example.test"
    objects: Dict[str, bytes] = field(default_factory=dict)
    content_types: Dict[str, str] = field(default_factory=dict)

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None, upsert: bool = False) -> None:
        if path in self.objects and not upsert:
            raise StorageError(f"The resource already exists: {path}")
        self.objects[path] = bytes(data)
        self.content_types[path] = content_type or "application/octet-stream"

    def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        if path not in self.objects:
            raise ObjectNotFoundError(f"Object not found: {path}")
        return f"{self.base_url}/{self.bucket}/{quote(path)}?expires={expires_in}&signature=test"

    def remove(self, paths: List[str]) -> None:
        for path in paths:
            self.objects.pop(path, None)
            self.content_types.pop(path, None)

    def exists(self, path: str) -> bool:
        return path in self.objects

    def list(self, prefix: str = "", limit: int = 1000) -> List[str]:
        return sorted(p for p in self.objects if p.startswith(prefix))[:limit]

    def ping(self) -> None:
        return None


@dataclass
class S3StorageClient:
    """
    S3-compatible storage client.

    Works against AWS S3 or any S3-compatible gateway, including the S3
    endpoint exposed by managed backends.
    """

    bucket: str
    endpoint_url: Optional[str]
    region: str
    access_key_id: str
    secret_access_key: str

    def __post_init__(self):
        config = Config(
            s3={"addressing_style": "path"},
            signature_version="s3v4",
        )
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def upload(self, path: str, data: bytes, content_type: Optional[str] = None, upsert: bool = False) -> None:
        if not upsert and self.exists(path):
            raise StorageError(f"The resource already exists: {path}")
        try:
            self._client.put_object(
                Bucket=self.bucket,
                Key=path,
                Body=data,
                ContentType=content_type or "application/octet-stream",
                CacheControl="max-age=3600",
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e

    def create_signed_url(self, path: str, expires_in: int = 3600) -> str:
        if not self.exists(path):
            raise ObjectNotFoundError(f"Object not found: {path}")
        try:
            return self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": self.bucket, "Key": path},
                ExpiresIn=expires_in,
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e

    def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        try:
            self._client.delete_objects(
                Bucket=self.bucket,
                Delete={"Objects": [{"Key": p} for p in paths], "Quiet": True},
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e

    def exists(self, path: str) -> bool:
        try:
            self._client.head_object(Bucket=self.bucket, Key=path)
            return True
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") in ("404", "NoSuchKey", "NotFound"):
                return False
            raise StorageError(str(e)) from e
        except BotoCoreError as e:
            raise StorageError(str(e)) from e

    def list(self, prefix: str = "", limit: int = 1000) -> List[str]:
        keys: List[str] = []
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(Bucket=self.bucket, Prefix=prefix):
                for item in page.get("Contents", []):
                    keys.append(item["Key"])
                    if len(keys) >= limit:
                        return keys
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e
        return keys

    def ping(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(str(e)) from e

    def ensure_bucket(self) -> bool:
        """Create the bucket if it is missing. Returns True when a bucket was created."""
        try:
            self._client.head_bucket(Bucket=self.bucket)
            return False
        except ClientError:
            self._client.create_bucket(Bucket=self.bucket)
            return True


_storage_client: Optional[StorageClient] = None


def get_storage_client() -> StorageClient:
    """Return the process-wide storage client, creating it on first use."""
    global _storage_client
    if _storage_client is not None:
        return _storage_client

    if settings.use_in_memory_storage or not settings.storage_secret_access_key:
        logger.info("Using in-memory object storage", bucket=settings.storage_bucket)
        _storage_client = InMemoryStorageClient(bucket=settings.storage_bucket)
    else:
        logger.info(
            "Using S3 object storage",
            bucket=settings.storage_bucket,
            endpoint=settings.storage_endpoint_url,
        )
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            endpoint_url=settings.storage_endpoint_url,
            region=settings.storage_region,
            access_key_id=settings.storage_access_key_id or "",
            secret_access_key=settings.storage_secret_access_key,
        )
    return _storage_client


def set_storage_client(client: Optional[StorageClient]) -> None:
    """Replace the process-wide storage client (None resets to lazy creation)."""
    global _storage_client
    _storage_client = client
