from __future__ import annotations

from unittest.mock import patch

import pytest

from objstore.common.config import StoreConfig
from objstore.infra.storage.s3_client import S3StorageClient
from tests.infra.fake_s3 import FakeS3


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(
        access_key="test-key",
        secret_key="test-secret",
        bucket="test-bucket",
        endpoint="s3.example.com",
    )


@pytest.fixture
def fake_s3() -> FakeS3:
    return FakeS3()


@pytest.fixture
def storage_client(fake_s3, store_config):
    """S3StorageClient talking to an in-memory store."""
    with patch.object(S3StorageClient, "_build_client", return_value=fake_s3):
        yield S3StorageClient(store_config)
