"""Storage client protocol, data types and errors.

This module defines the interface the rest of a program codes against when it
talks to a single bucket on an S3-compatible object store, together with the
value types and the error hierarchy shared by all implementations.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Protocol, runtime_checkable


class StorageError(RuntimeError):
    """Raised when object storage operations fail."""


class ConfigError(StorageError):
    """Raised when a required configuration value is missing or invalid."""


class StoreConnectionError(StorageError):
    """Raised when the store cannot be reached or rejects the credentials."""


class BucketNotFoundError(StorageError):
    """Raised when the configured bucket does not exist."""


class UploadError(StorageError):
    """Raised when an object upload fails."""


class DirectoryUploadError(UploadError):
    """Raised when one file of a directory upload fails.

    Objects uploaded before the failure are left in place; their keys are
    available in ``uploaded_keys`` so callers can clean up if they need to.
    """

    def __init__(
        self,
        message: str,
        *,
        local_path: str,
        remote_path: str,
        uploaded_keys: list[str],
    ) -> None:
        super().__init__(message)
        self.local_path = local_path
        self.remote_path = remote_path
        self.uploaded_keys = uploaded_keys


class DownloadError(StorageError):
    """Raised when an object download fails."""


class ListError(StorageError):
    """Raised when a listing fails partway."""


class RemoveError(StorageError):
    """Raised when an object cannot be deleted."""


class Visibility(enum.Enum):
    """Who may read an uploaded object without credentials."""

    PUBLIC = "public"
    PRIVATE = "private"


class PresenceState(enum.Enum):
    PRESENT = "present"
    ABSENT = "absent"
    UNKNOWN = "unknown"


@dataclass(frozen=True, slots=True)
class ObjectPresence:
    """Outcome of an existence probe.

    ``error`` is set only when ``state`` is ``UNKNOWN``.
    """

    state: PresenceState
    error: Exception | None = field(default=None, compare=False)

    def __bool__(self) -> bool:
        return self.state is PresenceState.PRESENT


@dataclass(frozen=True, slots=True)
class UploadOptions:
    """Per-call upload metadata derived from the key and visibility."""

    content_type: str
    visibility: Visibility

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC


@dataclass(frozen=True, slots=True)
class ObjectInfo:
    """Snapshot of an object's metadata as reported by the store."""

    key: str
    size: int
    last_modified: datetime | None = None
    etag: str | None = None


@runtime_checkable
class StorageClient(Protocol):
    """Protocol defining the interface for a bucket-bound storage client.

    Implementations must provide all methods defined here.
    """

    def exists(self, remote_path: str) -> bool:
        """Return True iff the object can be stat'ed. Errors read as False."""
        ...

    def probe(self, remote_path: str) -> ObjectPresence:
        """Like ``exists`` but keeps absent and unknown apart."""
        ...

    def upload_data(
        self,
        remote_path: str,
        data: bytes,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> ObjectInfo:
        """Store ``data`` under ``remote_path``, replacing any existing object.

        Raises:
            UploadError: If the store rejects the upload.
        """
        ...

    def upload_file(
        self,
        remote_path: str,
        local_path: str,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> ObjectInfo:
        """Stream a local file to ``remote_path``.

        Raises:
            UploadError: If the store rejects the upload.
            OSError: If the local file cannot be read.
        """
        ...

    def upload_file_compressed(
        self,
        remote_path: str,
        local_path: str,
        visibility: Visibility = Visibility.PUBLIC,
        *,
        streaming: bool = False,
    ) -> ObjectInfo:
        """Brotli-compress a local file and store the compressed bytes.

        Raises:
            UploadError: If the store rejects the upload.
            OSError: If the local file cannot be read or compressed.
        """
        ...

    def upload_directory(self, remote_prefix: str, local_dir: str) -> list[str]:
        """Upload the regular files directly inside ``local_dir`` as public.

        Returns:
            Keys written, in upload order.

        Raises:
            DirectoryUploadError: On the first file that fails.
        """
        ...

    def download_to_file(self, local_path: str, remote_path: str) -> None:
        """Atomically replace ``local_path`` with the object's content.

        Raises:
            DownloadError: If the object cannot be fetched.
            OSError: If the local file cannot be written.
        """
        ...

    def list_objects(self, prefix: str = "") -> Iterator[ObjectInfo]:
        """Lazily enumerate every object whose key starts with ``prefix``.

        Raises:
            ListError: From the iterator, if the listing fails partway.
        """
        ...

    def remove(self, remote_path: str) -> None:
        """Delete an object. Deleting a missing object succeeds.

        Raises:
            RemoveError: If the store rejects the delete.
        """
        ...

    def url_base(self) -> str:
        ...

    def url_for_path(self, remote_path: str) -> str:
        ...
