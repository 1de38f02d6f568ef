"""Tests for S3 storage client."""

import datetime
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from objstore.infra.storage.client import (
    BucketNotFoundError,
    ConfigError,
    DownloadError,
    ListError,
    ObjectInfo,
    PresenceState,
    RemoveError,
    StorageClient,
    StoreConnectionError,
    UploadError,
    Visibility,
)
from objstore.infra.storage.s3_client import S3StorageClient


def _client_error(code, status, operation="HeadObject"):
    return ClientError(
        {
            "Error": {"Code": code, "Message": code},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


class TestS3StorageClientConstruction:
    """Test the fail-fast bucket check and client wiring."""

    def test_builds_boto3_client_from_config(self, store_config):
        """Test the boto3 client gets endpoint, credentials and no retries."""
        with patch("objstore.infra.storage.s3_client.boto3.client") as boto_client:
            S3StorageClient(store_config)

        args, kwargs = boto_client.call_args
        assert args == ("s3",)
        assert kwargs["endpoint_url"] == "https://s3.example.com"
        assert kwargs["aws_access_key_id"] == "test-key"
        assert kwargs["aws_secret_access_key"] == "test-secret"
        assert kwargs["use_ssl"] is True
        assert kwargs["config"].retries == {"total_max_attempts": 1, "mode": "standard"}
        assert kwargs["config"].connect_timeout == store_config.connect_timeout
        boto_client.return_value.head_bucket.assert_called_once_with(
            Bucket="test-bucket"
        )

    def test_missing_config_raises(self):
        """Test that a None config is rejected before any network call."""
        with patch.object(S3StorageClient, "_build_client") as build:
            with pytest.raises(ConfigError):
                S3StorageClient(None)
        build.assert_not_called()

    def test_bucket_not_found(self, store_config):
        """Test that an absent bucket fails construction."""
        mock_client = MagicMock()
        mock_client.head_bucket.side_effect = _client_error("404", 404, "HeadBucket")
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            with pytest.raises(BucketNotFoundError, match="test-bucket"):
                S3StorageClient(store_config)

    def test_bucket_check_forbidden(self, store_config):
        """Test that an auth failure is a connection error, not a missing bucket."""
        mock_client = MagicMock()
        mock_client.head_bucket.side_effect = _client_error("403", 403, "HeadBucket")
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            with pytest.raises(StoreConnectionError):
                S3StorageClient(store_config)

    def test_bucket_check_unreachable(self, store_config):
        """Test that a network failure is a connection error."""
        mock_client = MagicMock()
        mock_client.head_bucket.side_effect = EndpointConnectionError(
            endpoint_url="https://s3.example.com"
        )
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            with pytest.raises(StoreConnectionError, match="s3.example.com"):
                S3StorageClient(store_config)


class TestS3StorageClient:
    """Test S3StorageClient operations against a mocked boto3 client."""

    @pytest.fixture
    def mock_s3(self):
        """Mock boto3 S3 client."""
        mock_client = MagicMock()
        with patch.object(S3StorageClient, "_build_client", return_value=mock_client):
            yield mock_client

    @pytest.fixture
    def client(self, mock_s3, store_config):
        """Create S3StorageClient with mocked boto3."""
        return S3StorageClient(store_config)

    def test_satisfies_protocol(self, client):
        assert isinstance(client, StorageClient)

    def test_url_base(self, client):
        assert client.url_base() == "https://test-bucket.s3.example.com/"

    def test_url_for_path(self, client, mock_s3):
        """Test URL construction is local and trims leading slashes."""
        assert client.url_for_path("/a/b.txt") == client.url_for_path("a/b.txt")
        assert (
            client.url_for_path("dir/my file.txt")
            == "https://test-bucket.s3.example.com/dir/my%20file.txt"
        )
        mock_s3.head_object.assert_not_called()

    def test_exists(self, client, mock_s3):
        assert client.exists("test/key") is True
        mock_s3.head_object.assert_called_once_with(
            Bucket="test-bucket", Key="test/key"
        )

    @pytest.mark.parametrize(
        "error",
        [
            _client_error("404", 404),
            _client_error("403", 403),
            EndpointConnectionError(endpoint_url="https://s3.example.com"),
        ],
    )
    def test_exists_collapses_errors_to_false(self, client, mock_s3, error):
        mock_s3.head_object.side_effect = error
        assert client.exists("test/key") is False

    def test_probe_distinguishes_absent_from_unknown(self, client, mock_s3):
        """Test that probe keeps a missing object apart from a failed check."""
        mock_s3.head_object.side_effect = _client_error("404", 404)
        absent = client.probe("test/key")
        assert absent.state is PresenceState.ABSENT
        assert absent.error is None
        assert not absent

        failure = _client_error("403", 403)
        mock_s3.head_object.side_effect = failure
        unknown = client.probe("test/key")
        assert unknown.state is PresenceState.UNKNOWN
        assert unknown.error is failure

        mock_s3.head_object.side_effect = None
        assert client.probe("test/key").state is PresenceState.PRESENT

    def test_upload_data_private(self, client, mock_s3):
        """Test a private upload sends exact length and content type, no ACL."""
        mock_s3.put_object.return_value = {"ETag": '"abc"'}

        info = client.upload_data("docs/readme.html", b"<p>hi</p>")

        assert info == ObjectInfo(key="docs/readme.html", size=9, etag='"abc"')
        mock_s3.put_object.assert_called_once_with(
            Bucket="test-bucket",
            Key="docs/readme.html",
            Body=b"<p>hi</p>",
            ContentLength=9,
            ContentType="text/html",
        )

    def test_upload_data_public_sets_acl(self, client, mock_s3):
        mock_s3.put_object.return_value = {}

        client.upload_data("img/logo.png", b"\x89PNG", Visibility.PUBLIC)

        call_args = mock_s3.put_object.call_args
        assert call_args[1]["ACL"] == "public-read"
        assert call_args[1]["ContentType"] == "image/png"

    def test_upload_data_unknown_extension_omits_content_type(self, client, mock_s3):
        mock_s3.put_object.return_value = {}

        client.upload_data("blobs/data.zzunknown", b"x")

        assert "ContentType" not in mock_s3.put_object.call_args[1]

    def test_upload_data_exception(self, client, mock_s3):
        """Test error handling when put_object fails."""
        mock_s3.put_object.side_effect = _client_error("AccessDenied", 403, "PutObject")

        with pytest.raises(UploadError, match="Failed to upload object 'a.txt'"):
            client.upload_data("a.txt", b"data")

    def test_upload_file_uses_file_size(self, client, mock_s3, tmp_path):
        """Test the file handle is streamed with its size as ContentLength."""
        local = tmp_path / "report.csv"
        local.write_bytes(b"a,b\n1,2\n")
        mock_s3.put_object.return_value = {"ETag": '"e"'}

        info = client.upload_file("reports/report.csv", str(local))

        assert info.size == 8
        call_args = mock_s3.put_object.call_args[1]
        assert call_args["ContentLength"] == 8
        assert call_args["ContentType"] == "text/csv"
        assert hasattr(call_args["Body"], "read")

    def test_upload_file_missing_local_file(self, client, mock_s3, tmp_path):
        with pytest.raises(FileNotFoundError):
            client.upload_file("a.txt", str(tmp_path / "missing.txt"))
        mock_s3.put_object.assert_not_called()

    def test_upload_file_compressed_defaults_public(self, client, mock_s3, tmp_path):
        local = tmp_path / "app.js"
        local.write_bytes(b"console.log('hi');\n" * 100)
        mock_s3.put_object.return_value = {}

        info = client.upload_file_compressed("static/app.js", str(local))

        call_args = mock_s3.put_object.call_args[1]
        assert call_args["ACL"] == "public-read"
        assert call_args["ContentType"] == "text/javascript"
        assert call_args["ContentLength"] == len(call_args["Body"]) == info.size
        assert info.size < local.stat().st_size

    def test_upload_file_compressed_streaming_exception(self, client, mock_s3, tmp_path):
        local = tmp_path / "app.css"
        local.write_bytes(b"body{}")
        mock_s3.upload_fileobj.side_effect = _client_error("SlowDown", 503, "PutObject")

        with pytest.raises(UploadError):
            client.upload_file_compressed("static/app.css", str(local), streaming=True)

    def test_download_get_object_exception(self, client, mock_s3, tmp_path):
        """Test no local file or directory is created when the fetch fails."""
        mock_s3.get_object.side_effect = _client_error("NoSuchKey", 404, "GetObject")
        target = tmp_path / "out" / "file.bin"

        with pytest.raises(DownloadError, match="missing/key"):
            client.download_to_file(str(target), "missing/key")

        assert not target.parent.exists()

    def test_list_objects(self, client, mock_s3):
        """Test listing walks every page with a recursive prefix query."""
        modified = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc)
        paginator = mock_s3.get_paginator.return_value
        paginator.paginate.return_value = [
            {"Contents": [{"Key": "p/a", "Size": 1, "LastModified": modified, "ETag": '"1"'}]},
            {"Contents": [{"Key": "p/b/c", "Size": 2}]},
            {"KeyCount": 0},
        ]

        result = list(client.list_objects("p/"))

        assert result == [
            ObjectInfo(key="p/a", size=1, last_modified=modified, etag='"1"'),
            ObjectInfo(key="p/b/c", size=2),
        ]
        mock_s3.get_paginator.assert_called_once_with("list_objects_v2")
        paginator.paginate.assert_called_once_with(Bucket="test-bucket", Prefix="p/")

    def test_list_objects_failure_partway(self, client, mock_s3):
        """Test a failing page surfaces as ListError after earlier items."""

        def pages():
            yield {"Contents": [{"Key": "p/a", "Size": 1}]}
            raise _client_error("InternalError", 500, "ListObjectsV2")

        mock_s3.get_paginator.return_value.paginate.return_value = pages()

        iterator = client.list_objects("p/")
        assert next(iterator).key == "p/a"
        with pytest.raises(ListError, match="p/"):
            next(iterator)
        with pytest.raises(StopIteration):
            next(iterator)

    def test_remove(self, client, mock_s3):
        client.remove("test/key")
        mock_s3.delete_object.assert_called_once_with(
            Bucket="test-bucket", Key="test/key"
        )

    def test_remove_missing_object_succeeds(self, client, mock_s3):
        mock_s3.delete_object.side_effect = _client_error("NoSuchKey", 404, "DeleteObject")
        client.remove("test/key")

    def test_remove_exception(self, client, mock_s3):
        """Test error handling when delete_object fails."""
        mock_s3.delete_object.side_effect = _client_error(
            "AccessDenied", 403, "DeleteObject"
        )

        with pytest.raises(RemoveError, match="Failed to delete object"):
            client.remove("test/key")
