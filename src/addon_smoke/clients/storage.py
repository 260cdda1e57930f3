"""S3-compatible object listing used to confirm shipped logs."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from addon_smoke.runtime.errors import AddonSmokeError, MissingDependencyError

_NOT_FOUND_CODES = {"NoSuchBucket", "NoSuchKey", "NotFound"}
_AUTH_CODES = {
    "AccessDenied",
    "ExpiredToken",
    "InvalidAccessKeyId",
    "InvalidToken",
    "SignatureDoesNotMatch",
    "Unauthorized",
}
_TRANSIENT_STATUS_CODES = {408, 425, 429, 500, 502, 503, 504}


class StorageError(AddonSmokeError):
    """Base exception for object storage operations."""

    def __init__(self, operation: str, bucket: str, prefix: str | None, message: str) -> None:
        self.operation = operation
        self.bucket = bucket
        self.prefix = prefix
        target = bucket if prefix is None else f"{bucket}/{prefix}"
        super().__init__(f"Storage {operation} failed for 's3://{target}': {message}")


class StorageNotFoundError(StorageError):
    """Raised when the bucket does not exist."""


class StorageAuthError(StorageError):
    """Raised when credentials are invalid or access is denied."""


class StorageTransientError(StorageError):
    """Raised for retryable failures (throttling, 5xx, network)."""


class StorageOperationError(StorageError):
    """Raised for any other failure."""


@dataclass(frozen=True, slots=True)
class StoredObject:
    key: str
    last_modified: datetime | None
    size: int | None = None


@runtime_checkable
class S3ListingClient(Protocol):
    """Subset of the MinIO SDK used by ``ObjectStore``."""

    def list_objects(self, bucket_name: str, prefix: str | None = None, recursive: bool = False) -> Any:
        ...


class ObjectStore:
    """Lists objects of one bucket. Blocking SDK calls run in a worker thread."""

    def __init__(self, *, client: S3ListingClient, bucket: str) -> None:
        normalized_bucket = bucket.strip()
        if not normalized_bucket:
            raise ValueError("bucket must be a non-empty string")
        self._client = client
        self._bucket = normalized_bucket

    @property
    def bucket(self) -> str:
        return self._bucket

    @classmethod
    def for_aws(
        cls,
        *,
        bucket: str,
        region: str,
        endpoint: str = "s3.amazonaws.com",
    ) -> ObjectStore:
        """Build a store using the standard AWS credential chain.

        Credentials are taken from ``AWS_ACCESS_KEY_ID``/``AWS_SECRET_ACCESS_KEY``,
        the shared credentials file, or the instance/IRSA role, in that order.
        """
        try:
            from minio import Minio
            from minio.credentials import (
                AWSConfigProvider,
                ChainedProvider,
                EnvAWSProvider,
                IamAwsProvider,
            )
        except ImportError as exc:
            raise MissingDependencyError("Install dependency: minio") from exc

        credentials = ChainedProvider([EnvAWSProvider(), AWSConfigProvider(), IamAwsProvider()])
        client = Minio(endpoint, region=region, credentials=credentials, secure=True)
        return cls(client=client, bucket=bucket)

    async def list_objects(self, prefix: str) -> list[StoredObject]:
        """Every object under ``prefix`` (recursive)."""

        def _list() -> list[StoredObject]:
            return [
                StoredObject(
                    key=item.object_name,
                    last_modified=item.last_modified,
                    size=item.size,
                )
                for item in self._client.list_objects(self._bucket, prefix=prefix, recursive=True)
            ]

        try:
            return await asyncio.to_thread(_list)
        except Exception as exc:
            raise translate_storage_error(
                operation="list", bucket=self._bucket, prefix=prefix, exc=exc
            ) from exc

    async def newest_after(self, prefix: str, since: datetime) -> StoredObject | None:
        """First object under ``prefix`` modified strictly after ``since``."""
        for item in await self.list_objects(prefix):
            if item.last_modified is not None and item.last_modified > since:
                return item
        return None


def translate_storage_error(
    *,
    operation: str,
    bucket: str,
    prefix: str | None,
    exc: Exception,
) -> StorageError:
    message = str(exc)

    if _is_auth_error(exc):
        return StorageAuthError(operation, bucket, prefix, message)
    if _is_not_found_error(exc):
        return StorageNotFoundError(operation, bucket, prefix, message)
    if _is_transient_error(exc):
        return StorageTransientError(operation, bucket, prefix, message)
    return StorageOperationError(operation, bucket, prefix, message)


def _is_not_found_error(exc: Exception) -> bool:
    return _error_code(exc) in _NOT_FOUND_CODES or _error_status(exc) == 404


def _is_auth_error(exc: Exception) -> bool:
    return _error_code(exc) in _AUTH_CODES or _error_status(exc) in {401, 403}


def _is_transient_error(exc: Exception) -> bool:
    if _error_status(exc) in _TRANSIENT_STATUS_CODES:
        return True

    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True

    name = type(exc).__name__.lower()
    return "timeout" in name or "connection" in name or "maxretry" in name


def _error_code(exc: Exception) -> str | None:
    code = getattr(exc, "code", None) or getattr(exc, "error_code", None)
    if code is None:
        return None
    return str(code)


def _error_status(exc: Exception) -> int | None:
    status = getattr(exc, "status", None) or getattr(exc, "status_code", None)
    if status is None:
        # minio's S3Error keeps the HTTP status on the response object.
        status = getattr(getattr(exc, "response", None), "status", None)
    if status is None:
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None
