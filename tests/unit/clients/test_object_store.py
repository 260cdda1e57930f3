"""Tests for S3 object listing."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from typing import Any

import pytest

from addon_smoke.clients.storage import (
    ObjectStore,
    StorageAuthError,
    StorageNotFoundError,
    StorageOperationError,
    StorageTransientError,
    translate_storage_error,
)

STARTED = datetime(2024, 3, 5, 1, 0, tzinfo=UTC)


class _S3Error(Exception):
    def __init__(self, code: str | None = None, status: int | None = None) -> None:
        super().__init__(code or f"status {status}")
        self.code = code
        self.response = SimpleNamespace(status=status)


class _FakeMinio:
    def __init__(self, objects: list[Any] | None = None, error: Exception | None = None) -> None:
        self.objects = objects or []
        self.error = error
        self.calls: list[tuple[str, str | None, bool]] = []

    def list_objects(
        self, bucket_name: str, prefix: str | None = None, recursive: bool = False
    ) -> Any:
        self.calls.append((bucket_name, prefix, recursive))
        if self.error is not None:
            raise self.error
        return iter(self.objects)


def _item(key: str, modified: datetime | None, size: int = 10) -> SimpleNamespace:
    return SimpleNamespace(object_name=key, last_modified=modified, size=size)


class TestObjectStore:
    def test_rejects_blank_bucket(self) -> None:
        with pytest.raises(ValueError, match="bucket"):
            ObjectStore(client=_FakeMinio(), bucket="  ")

    async def test_lists_recursively(self) -> None:
        client = _FakeMinio([_item("fluentd/test/ns/dt=20240305/a.gz", STARTED)])
        store = ObjectStore(client=client, bucket="logs")

        objects = await store.list_objects("fluentd/test/ns/dt=20240305")

        assert client.calls == [("logs", "fluentd/test/ns/dt=20240305", True)]
        assert objects[0].key == "fluentd/test/ns/dt=20240305/a.gz"
        assert objects[0].size == 10

    async def test_newest_after_requires_strictly_newer(self) -> None:
        client = _FakeMinio(
            [
                _item("old.gz", STARTED - timedelta(minutes=5)),
                _item("same.gz", STARTED),
                _item("unknown.gz", None),
                _item("new.gz", STARTED + timedelta(seconds=1)),
            ]
        )
        store = ObjectStore(client=client, bucket="logs")

        found = await store.newest_after("prefix", STARTED)

        assert found is not None
        assert found.key == "new.gz"

    async def test_newest_after_returns_none_without_match(self) -> None:
        store = ObjectStore(client=_FakeMinio([_item("old.gz", STARTED)]), bucket="logs")

        assert await store.newest_after("prefix", STARTED) is None

    async def test_listing_errors_are_translated(self) -> None:
        store = ObjectStore(client=_FakeMinio(error=_S3Error("AccessDenied")), bucket="logs")

        with pytest.raises(StorageAuthError) as exc_info:
            await store.list_objects("prefix")

        assert exc_info.value.bucket == "logs"
        assert "s3://logs/prefix" in str(exc_info.value)


class TestTranslateStorageError:
    @pytest.mark.parametrize(
        ("exc", "error_type"),
        [
            (_S3Error("AccessDenied"), StorageAuthError),
            (_S3Error(status=403), StorageAuthError),
            (_S3Error("NoSuchBucket"), StorageNotFoundError),
            (_S3Error(status=503), StorageTransientError),
            (ConnectionError("reset"), StorageTransientError),
            (_S3Error("InternalLogic"), StorageOperationError),
        ],
    )
    def test_classification(self, exc: Exception, error_type: type) -> None:
        error = translate_storage_error(operation="list", bucket="logs", prefix=None, exc=exc)

        assert type(error) is error_type
