"""S3-compatible storage client implementation.

This module provides a bucket-bound client that works with AWS S3, MinIO and
other S3-compatible object storage services. Every method is a single,
blocking request against the store; nothing is retried or cached here.

Dependencies:
    - boto3
    - botocore
"""

from __future__ import annotations

import logging
import os
import posixpath
from typing import TYPE_CHECKING, Any, BinaryIO, Iterator

import boto3
from boto3.exceptions import S3UploadFailedError
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from objstore.infra.observability.metrics import track_operation
from objstore.infra.storage.atomic_file import write_atomically
from objstore.infra.storage.client import (
    BucketNotFoundError,
    ConfigError,
    DirectoryUploadError,
    DownloadError,
    ListError,
    ObjectInfo,
    ObjectPresence,
    PresenceState,
    RemoveError,
    StoreConnectionError,
    UploadError,
    UploadOptions,
    Visibility,
)
from objstore.infra.storage.compression import CompressingReader, compress_file
from objstore.infra.storage.content_type import resolve_content_type
from objstore.infra.storage.urls import build_url_base, build_url_for_path

if TYPE_CHECKING:
    from objstore.common.config import StoreConfig

logger = logging.getLogger("objstore.storage")

PUBLIC_READ_ACL = "public-read"

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NoSuchBucket", "NotFound"})

_TRANSPORT_ERRORS = (BotoCoreError, ClientError)
_UPLOAD_ERRORS = (S3UploadFailedError, BotoCoreError, ClientError)


def _is_not_found(exc: ClientError) -> bool:
    error = exc.response.get("Error", {})
    if str(error.get("Code")) in _NOT_FOUND_CODES:
        return True
    status = exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return status == 404


class S3StorageClient:
    """S3-compatible object storage client bound to one bucket.

    Construction fails fast: the configured bucket is checked with a blocking
    ``HeadBucket`` so that misconfiguration shows up at startup rather than on
    first use. The client never creates or deletes buckets.
    """

    def __init__(self, config: "StoreConfig") -> None:
        """Open a session and verify the bucket exists.

        Args:
            config: Validated connection settings.

        Raises:
            ConfigError: If no config is given.
            BucketNotFoundError: If the store reports the bucket as absent.
            StoreConnectionError: If the bucket check cannot complete.
        """
        if config is None:
            raise ConfigError("A StoreConfig is required")
        self._config = config
        self._bucket = config.bucket
        self._client = self._build_client(config)
        self._ensure_bucket()
        logger.info(
            "storage_client_ready bucket=%s endpoint=%s",
            self._bucket,
            config.endpoint,
            extra={"extra": {"bucket": self._bucket, "endpoint": config.endpoint}},
        )

    @staticmethod
    def _build_client(config: "StoreConfig") -> Any:
        """Create a boto3 S3 client from config."""
        botocore_config = Config(
            signature_version="s3v4",
            connect_timeout=config.connect_timeout,
            read_timeout=config.read_timeout,
            retries={"total_max_attempts": 1, "mode": "standard"},
        )
        return boto3.client(
            "s3",
            endpoint_url=config.endpoint_url,
            region_name=config.region,
            aws_access_key_id=config.access_key,
            aws_secret_access_key=config.secret_key,
            use_ssl=True,
            config=botocore_config,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    def _ensure_bucket(self) -> None:
        try:
            with track_operation("head_bucket"):
                self._client.head_bucket(Bucket=self._bucket)
        except ClientError as exc:
            if _is_not_found(exc):
                raise BucketNotFoundError(
                    f"Bucket '{self._bucket}' doesn't exist"
                ) from exc
            raise StoreConnectionError(
                f"Failed to check bucket '{self._bucket}': {exc}"
            ) from exc
        except BotoCoreError as exc:
            raise StoreConnectionError(
                f"Failed to reach object store at '{self._config.endpoint}': {exc}"
            ) from exc

    def url_base(self) -> str:
        return build_url_base(self._bucket, self._config.endpoint)

    def url_for_path(self, remote_path: str) -> str:
        return build_url_for_path(self._bucket, self._config.endpoint, remote_path)

    def probe(self, remote_path: str) -> ObjectPresence:
        """Stat an object and report present, absent or unknown."""
        try:
            with track_operation("head_object"):
                self._client.head_object(Bucket=self._bucket, Key=remote_path)
        except ClientError as exc:
            if _is_not_found(exc):
                return ObjectPresence(PresenceState.ABSENT)
            return ObjectPresence(PresenceState.UNKNOWN, exc)
        except BotoCoreError as exc:
            return ObjectPresence(PresenceState.UNKNOWN, exc)
        return ObjectPresence(PresenceState.PRESENT)

    def exists(self, remote_path: str) -> bool:
        # Transient failures read as "absent"; use probe() to tell them apart.
        return self.probe(remote_path).state is PresenceState.PRESENT

    @staticmethod
    def _upload_options(remote_path: str, visibility: Visibility) -> UploadOptions:
        return UploadOptions(
            content_type=resolve_content_type(remote_path),
            visibility=visibility,
        )

    @staticmethod
    def _extra_args(options: UploadOptions) -> dict[str, str]:
        extra: dict[str, str] = {}
        if options.content_type:
            extra["ContentType"] = options.content_type
        if options.is_public:
            extra["ACL"] = PUBLIC_READ_ACL
        return extra

    def _put(
        self,
        remote_path: str,
        body: bytes | BinaryIO,
        length: int,
        options: UploadOptions,
    ) -> ObjectInfo:
        try:
            with track_operation("put_object"):
                response = self._client.put_object(
                    Bucket=self._bucket,
                    Key=remote_path,
                    Body=body,
                    ContentLength=length,
                    **self._extra_args(options),
                )
        except _TRANSPORT_ERRORS as exc:
            logger.warning(
                "upload_failed key=%s error=%s",
                remote_path,
                exc,
                extra={"extra": {"key": remote_path, "exception": repr(exc)}},
            )
            raise UploadError(f"Failed to upload object '{remote_path}': {exc}") from exc

        logger.debug(
            "uploaded key=%s size=%s visibility=%s",
            remote_path,
            length,
            options.visibility.value,
        )
        return ObjectInfo(key=remote_path, size=length, etag=response.get("ETag"))

    def upload_data(
        self,
        remote_path: str,
        data: bytes,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> ObjectInfo:
        """Store an in-memory buffer, replacing any existing object."""
        options = self._upload_options(remote_path, visibility)
        return self._put(remote_path, bytes(data), len(data), options)

    def upload_file(
        self,
        remote_path: str,
        local_path: str,
        visibility: Visibility = Visibility.PRIVATE,
    ) -> ObjectInfo:
        """Stream a local file; its length is taken when the file is opened."""
        options = self._upload_options(remote_path, visibility)
        with open(local_path, "rb") as handle:
            size = os.fstat(handle.fileno()).st_size
            return self._put(remote_path, handle, size, options)

    def upload_file_compressed(
        self,
        remote_path: str,
        local_path: str,
        visibility: Visibility = Visibility.PUBLIC,
        *,
        streaming: bool = False,
    ) -> ObjectInfo:
        """Store the brotli encoding of a local file.

        The content type is the one ``remote_path`` would get uncompressed;
        the store does not decompress on read.

        By default the whole file is compressed in memory first and sent with
        an exact length. With ``streaming=True`` compression is piped into a
        managed transfer instead, which keeps memory flat for large files at
        the cost of an unknown length (the transfer may go multipart).
        """
        options = self._upload_options(remote_path, visibility)
        if not streaming:
            payload = compress_file(local_path)
            return self._put(remote_path, payload, len(payload), options)

        with open(local_path, "rb") as handle:
            reader = CompressingReader(handle)
            try:
                with track_operation("upload_fileobj"):
                    self._client.upload_fileobj(
                        reader,
                        self._bucket,
                        remote_path,
                        ExtraArgs=self._extra_args(options),
                    )
            except _UPLOAD_ERRORS as exc:
                logger.warning(
                    "upload_failed key=%s error=%s",
                    remote_path,
                    exc,
                    extra={"extra": {"key": remote_path, "exception": repr(exc)}},
                )
                raise UploadError(
                    f"Failed to upload object '{remote_path}': {exc}"
                ) from exc
        logger.debug(
            "uploaded key=%s size=%s compressed_from=%s",
            remote_path,
            reader.bytes_out,
            reader.bytes_in,
        )
        return ObjectInfo(key=remote_path, size=reader.bytes_out)

    def upload_directory(self, remote_prefix: str, local_dir: str) -> list[str]:
        """Upload the regular files directly inside ``local_dir`` as public.

        Files go up one at a time in name order under
        ``remote_prefix/<name>``. Subdirectories are skipped. The first
        failure stops the walk; objects already written stay in the bucket.

        Returns:
            Keys written, in upload order.

        Raises:
            DirectoryUploadError: Naming the failing file, with the keys
                uploaded before it.
            OSError: If ``local_dir`` cannot be listed.
        """
        with os.scandir(local_dir) as it:
            entries = sorted(
                (entry for entry in it if entry.is_file()),
                key=lambda entry: entry.name,
            )

        uploaded: list[str] = []
        for entry in entries:
            local_path = os.path.join(local_dir, entry.name)
            remote_path = posixpath.join(remote_prefix, entry.name)
            try:
                self.upload_file(remote_path, local_path, Visibility.PUBLIC)
            except (UploadError, OSError) as exc:
                raise DirectoryUploadError(
                    f"upload of '{local_path}' as '{remote_path}' failed with '{exc}'",
                    local_path=local_path,
                    remote_path=remote_path,
                    uploaded_keys=uploaded,
                ) from exc
            uploaded.append(remote_path)
        return uploaded

    def download_to_file(self, local_path: str, remote_path: str) -> None:
        """Fetch an object into ``local_path``, creating parent directories.

        The file at ``local_path`` is only replaced once the whole object has
        been received; on failure it keeps its previous content.
        """
        with track_operation("get_object"):
            try:
                response = self._client.get_object(Bucket=self._bucket, Key=remote_path)
            except _TRANSPORT_ERRORS as exc:
                raise DownloadError(
                    f"Failed to download object '{remote_path}': {exc}"
                ) from exc

            body = response["Body"]
            try:
                directory = os.path.dirname(local_path)
                if directory:
                    os.makedirs(directory, exist_ok=True)
                write_atomically(local_path, body)
            except _TRANSPORT_ERRORS as exc:
                logger.warning(
                    "download_interrupted key=%s path=%s error=%s",
                    remote_path,
                    local_path,
                    exc,
                    extra={
                        "extra": {
                            "key": remote_path,
                            "path": local_path,
                            "exception": repr(exc),
                        }
                    },
                )
                raise DownloadError(
                    f"Download of '{remote_path}' to '{local_path}' was interrupted: {exc}"
                ) from exc
            finally:
                body.close()

    def list_objects(self, prefix: str = "") -> Iterator[ObjectInfo]:
        """Lazily yield every object under ``prefix``, recursively.

        Pages are fetched as the iterator is consumed. A failure raises
        ``ListError`` from the iterator, which is then exhausted.
        """
        paginator = self._client.get_paginator("list_objects_v2")
        pages = iter(paginator.paginate(Bucket=self._bucket, Prefix=prefix))
        while True:
            try:
                with track_operation("list_objects"):
                    page = next(pages, None)
            except _TRANSPORT_ERRORS as exc:
                raise ListError(
                    f"Failed to list objects with prefix '{prefix}': {exc}"
                ) from exc
            if page is None:
                return
            for item in page.get("Contents", ()):
                yield ObjectInfo(
                    key=item["Key"],
                    size=int(item.get("Size", 0)),
                    last_modified=item.get("LastModified"),
                    etag=item.get("ETag"),
                )

    def remove(self, remote_path: str) -> None:
        """Delete an object; a missing object is not an error."""
        try:
            with track_operation("delete_object"):
                self._client.delete_object(Bucket=self._bucket, Key=remote_path)
        except ClientError as exc:
            if _is_not_found(exc):
                return
            raise RemoveError(f"Failed to delete object '{remote_path}': {exc}") from exc
        except BotoCoreError as exc:
            raise RemoveError(f"Failed to delete object '{remote_path}': {exc}") from exc
