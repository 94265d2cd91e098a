from datetime import timedelta
from unittest.mock import MagicMock, patch

import pytest
from boto3.exceptions import S3UploadFailedError
from botocore.exceptions import ClientError, EndpointConnectionError, NoCredentialsError

from docstore.constants import MIB
from docstore.errors import BackendUnavailableError, NotFoundError, PermissionDeniedError
from docstore.models.document import BackendKind, UploadPlan
from docstore.storage.s3 import S3Storage, build_s3_client


def _client_error(code: str, operation: str = "HeadObject") -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": code}}, operation)


class TestBuildS3ClientBoto3Missing:
    def test_raises_import_error_when_boto3_is_none(self):
        import docstore.storage.s3 as s3_module

        with patch.object(s3_module, "boto3", None):
            with pytest.raises(ImportError, match="boto3 is required"):
                build_s3_client(region="r", access_key_id="k", secret_access_key="s")


class TestBuildS3Client:
    @patch("docstore.storage.s3.boto3")
    def test_retry_and_timeouts_configured(self, mock_boto3):
        build_s3_client(
            region="eu-west-1",
            access_key_id="key",
            secret_access_key="secret",
            max_attempts=5,
            connect_timeout=2,
            read_timeout=30,
        )
        call_kwargs = mock_boto3.client.call_args[1]
        config = call_kwargs["config"]
        assert call_kwargs["service_name"] == "s3"
        assert call_kwargs["region_name"] == "eu-west-1"
        assert config.retries == {"max_attempts": 5, "mode": "standard"}
        assert config.connect_timeout == 2
        assert config.read_timeout == 30
        assert "endpoint_url" not in call_kwargs

    @patch("docstore.storage.s3.boto3")
    def test_endpoint_url_passed(self, mock_boto3):
        build_s3_client(
            region="r", access_key_id="k", secret_access_key="s", endpoint_url="https://minio.local"
        )
        assert mock_boto3.client.call_args[1]["endpoint_url"] == "https://minio.local"


class TestS3Storage:
    def setup_method(self):
        self.client = MagicMock()
        self.storage = S3Storage(self.client, bucket="my-bucket", region="us-east-1")

    def test_upload_small_file_single_thread(self):
        result = self.storage.upload("t1/nic/a.pdf", b"data", "application/pdf")

        assert result == "t1/nic/a.pdf"
        args, kwargs = self.client.upload_fileobj.call_args
        assert args[0].read() == b"data"
        assert args[1:] == ("my-bucket", "t1/nic/a.pdf")
        assert kwargs["ExtraArgs"] == {"ContentType": "application/pdf"}
        config = kwargs["Config"]
        assert config.max_concurrency == 1
        assert config.use_threads is False
        assert config.multipart_threshold == 4 * MIB

    def test_upload_uses_plan_concurrency(self):
        plan = UploadPlan(concurrency_degree=8, chunk_threshold=4 * MIB)
        self.storage.upload("t1/nic/big.pdf", b"x", "application/pdf", plan)

        config = self.client.upload_fileobj.call_args[1]["Config"]
        assert config.max_concurrency == 8
        assert config.use_threads is True
        assert config.multipart_chunksize == 4 * MIB

    def test_upload_transfer_failure(self):
        self.client.upload_fileobj.side_effect = S3UploadFailedError("boom")
        with pytest.raises(BackendUnavailableError):
            self.storage.upload("t1/nic/a.pdf", b"data", "application/pdf")

    def test_upload_connection_failure(self):
        self.client.upload_fileobj.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        with pytest.raises(BackendUnavailableError) as exc_info:
            self.storage.upload("t1/nic/a.pdf", b"data", "application/pdf")
        assert exc_info.value.key == "t1/nic/a.pdf"

    def test_upload_access_denied(self):
        self.client.upload_fileobj.side_effect = _client_error("AccessDenied", "PutObject")
        with pytest.raises(PermissionDeniedError):
            self.storage.upload("t1/nic/a.pdf", b"data", "application/pdf")

    def test_exists_true(self):
        assert self.storage.exists("t1/nic/a.pdf") is True
        self.client.head_object.assert_called_once_with(Bucket="my-bucket", Key="t1/nic/a.pdf")

    def test_exists_false_on_404(self):
        self.client.head_object.side_effect = _client_error("404")
        assert self.storage.exists("t1/nic/a.pdf") is False

    def test_exists_unreachable(self):
        self.client.head_object.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        with pytest.raises(BackendUnavailableError):
            self.storage.exists("t1/nic/a.pdf")

    def test_get_calls_get_object(self):
        body = MagicMock()
        body.read.return_value = b"file-contents"
        self.client.get_object.return_value = {"Body": body, "ContentType": "image/png"}

        stored = self.storage.get("t1/nic/a.png")

        self.client.get_object.assert_called_once_with(Bucket="my-bucket", Key="t1/nic/a.png")
        assert stored.content == b"file-contents"
        assert stored.content_type == "image/png"

    def test_get_missing(self):
        self.client.get_object.side_effect = _client_error("NoSuchKey", "GetObject")
        with pytest.raises(NotFoundError):
            self.storage.get("t1/nic/a.png")

    def test_delete_existing(self):
        assert self.storage.delete("t1/nic/a.pdf") is True
        self.client.delete_object.assert_called_once_with(Bucket="my-bucket", Key="t1/nic/a.pdf")

    def test_delete_missing(self):
        self.client.head_object.side_effect = _client_error("404")
        assert self.storage.delete("t1/nic/a.pdf") is False
        self.client.delete_object.assert_not_called()

    def test_issue_read_credential(self):
        self.client.generate_presigned_url.return_value = "https://presigned-url?X-Amz-Signature=abc"

        grant = self.storage.issue_read_credential("t1/nic/a.pdf", timedelta(minutes=15))

        self.client.generate_presigned_url.assert_called_once_with(
            "get_object",
            Params={
                "Bucket": "my-bucket",
                "Key": "t1/nic/a.pdf",
                "ResponseContentDisposition": "inline",
            },
            ExpiresIn=900,
        )
        assert grant.url == "https://presigned-url?X-Amz-Signature=abc"
        assert grant.backend == BackendKind.REMOTE
        assert grant.expires_at - grant.issued_at == timedelta(minutes=15)

    def test_issue_read_credential_sub_second_ttl(self):
        self.client.generate_presigned_url.return_value = "https://presigned-url?X-Amz-Signature=abc"

        self.storage.issue_read_credential("t1/nic/a.pdf", timedelta(milliseconds=500))

        assert self.client.generate_presigned_url.call_args.kwargs["ExpiresIn"] == 1

    def test_issue_read_credential_rounds_up(self):
        self.client.generate_presigned_url.return_value = "https://presigned-url"

        self.storage.issue_read_credential("t1/nic/a.pdf", timedelta(seconds=90.2))

        assert self.client.generate_presigned_url.call_args.kwargs["ExpiresIn"] == 91

    def test_issue_read_credential_without_credentials(self):
        self.client.generate_presigned_url.side_effect = NoCredentialsError()
        with pytest.raises(PermissionDeniedError):
            self.storage.issue_read_credential("t1/nic/a.pdf", timedelta(minutes=15))


class TestS3EnsureContainer:
    def test_existing_bucket(self):
        client = MagicMock()
        storage = S3Storage(client, bucket="b", region="us-east-1")

        storage.ensure_container()
        storage.ensure_container()

        client.head_bucket.assert_called_once_with(Bucket="b")
        client.create_bucket.assert_not_called()

    def test_creates_missing_bucket(self):
        client = MagicMock()
        client.head_bucket.side_effect = _client_error("404", "HeadBucket")
        storage = S3Storage(client, bucket="b", region="us-east-1")

        storage.ensure_container()

        client.create_bucket.assert_called_once_with(Bucket="b")

    def test_location_constraint_outside_us_east_1(self):
        client = MagicMock()
        client.head_bucket.side_effect = _client_error("404", "HeadBucket")
        storage = S3Storage(client, bucket="b", region="sa-east-1")

        storage.ensure_container()

        client.create_bucket.assert_called_once_with(
            Bucket="b", CreateBucketConfiguration={"LocationConstraint": "sa-east-1"}
        )

    def test_concurrent_creation_is_success(self):
        client = MagicMock()
        client.head_bucket.side_effect = _client_error("404", "HeadBucket")
        client.create_bucket.side_effect = _client_error("BucketAlreadyOwnedByYou", "CreateBucket")
        storage = S3Storage(client, bucket="b")

        storage.ensure_container()
        assert storage._container_ready is True

    def test_unreachable(self):
        client = MagicMock()
        client.head_bucket.side_effect = EndpointConnectionError(endpoint_url="https://s3")
        storage = S3Storage(client, bucket="b")

        with pytest.raises(BackendUnavailableError):
            storage.ensure_container()
        assert storage._container_ready is False
