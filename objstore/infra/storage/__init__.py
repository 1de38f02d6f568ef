"""Object storage layer.

This package provides a protocol-based abstraction over a single bucket on
an S3-compatible object store, and a boto3-backed implementation of it.
"""

from .client import (
    BucketNotFoundError,
    ConfigError,
    DirectoryUploadError,
    DownloadError,
    ListError,
    ObjectInfo,
    ObjectPresence,
    PresenceState,
    RemoveError,
    StorageClient,
    StorageError,
    StoreConnectionError,
    UploadError,
    UploadOptions,
    Visibility,
)
from .s3_client import S3StorageClient

__all__ = [
    "BucketNotFoundError",
    "ConfigError",
    "DirectoryUploadError",
    "DownloadError",
    "ListError",
    "ObjectInfo",
    "ObjectPresence",
    "PresenceState",
    "RemoveError",
    "S3StorageClient",
    "StorageClient",
    "StorageError",
    "StoreConnectionError",
    "UploadError",
    "UploadOptions",
    "Visibility",
]
