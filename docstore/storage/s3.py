from __future__ import annotations

import io
import logging
import math
from datetime import datetime, timedelta, timezone

try:
    import boto3
    from boto3.exceptions import Boto3Error
    from boto3.s3.transfer import TransferConfig
    from botocore.config import Config
    from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError
except ImportError:  # pragma: no cover
    boto3 = None  # type: ignore[assignment]

from docstore.constants import CHUNK_THRESHOLD, DEFAULT_CONTENT_TYPE
from docstore.errors import (
    BackendUnavailableError,
    NotFoundError,
    PermissionDeniedError,
    StorageError,
)
from docstore.logging import redact_url
from docstore.models.document import AccessGrant, BackendKind, StoredObject, UploadPlan
from docstore.storage.base import StorageBackend
from docstore.storage.planner import plan_upload

logger = logging.getLogger(__name__)

_NOT_FOUND_CODES = {"404", "NoSuchKey", "NotFound", "NoSuchBucket"}
_DENIED_CODES = {
    "403",
    "AccessDenied",
    "Forbidden",
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "ExpiredToken",
}
_BUCKET_EXISTS_CODES = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}


def _error_code(exc: ClientError) -> str:
    return str(exc.response.get("Error", {}).get("Code", ""))


def build_s3_client(
    region: str,
    access_key_id: str,
    secret_access_key: str,
    endpoint_url: str = "",
    max_attempts: int = 3,
    connect_timeout: int = 5,
    read_timeout: int = 60,
):
    """Create the shared S3 client. boto3 clients are safe to reuse across threads."""
    if boto3 is None:
        raise ImportError(
            "boto3 is required for remote storage. "
            "Install it with: pip install boto3"
        )

    client_kwargs: dict = {
        "service_name": "s3",
        "region_name": region,
        "aws_access_key_id": access_key_id,
        "aws_secret_access_key": secret_access_key,
        "config": Config(
            retries={"max_attempts": max_attempts, "mode": "standard"},
            connect_timeout=connect_timeout,
            read_timeout=read_timeout,
            signature_version="s3v4",
        ),
    }
    if endpoint_url:
        client_kwargs["endpoint_url"] = endpoint_url

    return boto3.client(**client_kwargs)


class S3Storage(StorageBackend):
    kind = BackendKind.REMOTE

    def __init__(self, client, bucket: str, region: str = "") -> None:
        self.client = client
        self.bucket = bucket
        self.region = region
        self._container_ready = False

    def _translate(self, exc: Exception, key: str | None, action: str) -> StorageError:
        if isinstance(exc, ClientError):
            code = _error_code(exc)
            if code in _NOT_FOUND_CODES:
                return NotFoundError(key=key)
            if code in _DENIED_CODES:
                return PermissionDeniedError(f"S3 refused {action} ({code})", key=key)
            return BackendUnavailableError(f"S3 {action} failed ({code})", key=key, cause=exc)
        if isinstance(exc, NoCredentialsError):
            return PermissionDeniedError(f"S3 {action} failed: no credentials", key=key)
        return BackendUnavailableError(f"S3 {action} failed: {exc}", key=key, cause=exc)

    def ensure_container(self) -> None:
        if self._container_ready:
            return
        try:
            self.client.head_bucket(Bucket=self.bucket)
        except ClientError as exc:
            if _error_code(exc) not in _NOT_FOUND_CODES:
                raise self._translate(exc, None, "head_bucket") from exc
            self._create_bucket()
        except BotoCoreError as exc:
            raise self._translate(exc, None, "head_bucket") from exc
        self._container_ready = True
        logger.info("Bucket '%s' created or already exists", self.bucket)

    def _create_bucket(self) -> None:
        kwargs: dict = {"Bucket": self.bucket}
        if self.region and self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            self.client.create_bucket(**kwargs)
        except ClientError as exc:
            # Another worker won the race.
            if _error_code(exc) in _BUCKET_EXISTS_CODES:
                return
            raise self._translate(exc, None, "create_bucket") from exc
        except BotoCoreError as exc:
            raise self._translate(exc, None, "create_bucket") from exc

    def upload(self, key: str, data: bytes, content_type: str, plan: UploadPlan | None = None) -> str:
        plan = plan or plan_upload(len(data))
        transfer_config = TransferConfig(
            multipart_threshold=plan.chunk_threshold or CHUNK_THRESHOLD,
            multipart_chunksize=plan.chunk_threshold or CHUNK_THRESHOLD,
            max_concurrency=plan.concurrency_degree,
            use_threads=plan.concurrency_degree > 1,
        )
        try:
            self.client.upload_fileobj(
                io.BytesIO(data),
                self.bucket,
                key,
                ExtraArgs={"ContentType": content_type},
                Config=transfer_config,
            )
        except (ClientError, BotoCoreError, Boto3Error) as exc:
            raise self._translate(exc, key, "upload") from exc
        logger.info(
            "Uploaded %s to s3://%s/%s (%d bytes, concurrency=%d)",
            key,
            self.bucket,
            key,
            len(data),
            plan.concurrency_degree,
        )
        return key

    def exists(self, key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=key)
            return True
        except ClientError as exc:
            if _error_code(exc) in _NOT_FOUND_CODES:
                return False
            raise self._translate(exc, key, "head_object") from exc
        except BotoCoreError as exc:
            raise self._translate(exc, key, "head_object") from exc

    def get(self, key: str) -> StoredObject:
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
            content = response["Body"].read()
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, key, "get_object") from exc
        logger.debug("Downloaded %s from s3://%s (%d bytes)", key, self.bucket, len(content))
        return StoredObject(
            canonical_path=key,
            content=content,
            content_type=response.get("ContentType") or DEFAULT_CONTENT_TYPE,
        )

    def delete(self, key: str) -> bool:
        # delete_object succeeds on missing keys, so check first to report what happened.
        if not self.exists(key):
            logger.debug("Blob does not exist: %s", key)
            return False
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as exc:
            raise self._translate(exc, key, "delete_object") from exc
        logger.info("Blob deleted from s3://%s/%s", self.bucket, key)
        return True

    def issue_read_credential(self, key: str, ttl: timedelta) -> AccessGrant:
        issued_at = datetime.now(timezone.utc)
        try:
            url = self.client.generate_presigned_url(
                "get_object",
                Params={
                    "Bucket": self.bucket,
                    "Key": key,
                    "ResponseContentDisposition": "inline",
                },
                ExpiresIn=max(1, math.ceil(ttl.total_seconds())),
            )
        except (ClientError, BotoCoreError) as exc:
            raise PermissionDeniedError("Failed to generate read credential", key=key) from exc
        logger.debug("Generated presigned URL for %s: %s", key, redact_url(url))
        return AccessGrant(
            canonical_path=key,
            url=url,
            backend=self.kind,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        )
