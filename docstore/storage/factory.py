import logging
from datetime import timedelta

from docstore.settings import PROFILE_FALLBACK, PROFILE_LOCAL, PROFILE_REMOTE_REQUIRED, settings
from docstore.storage.local import LocalStorage

logger = logging.getLogger(__name__)


def get_local_storage() -> LocalStorage:
    return LocalStorage(settings.storage_local_path)


def get_remote_storage():
    from docstore.storage.s3 import S3Storage, build_s3_client

    if not settings.has_remote_credentials():
        raise ValueError("Remote storage requires DOCSTORE_S3_BUCKET and S3 credentials")

    client = build_s3_client(
        region=settings.s3_region,
        access_key_id=settings.s3_access_key_id,
        secret_access_key=settings.s3_secret_access_key,
        endpoint_url=settings.s3_endpoint_url,
        max_attempts=settings.s3_max_attempts,
        connect_timeout=settings.s3_connect_timeout,
        read_timeout=settings.s3_read_timeout,
    )
    return S3Storage(client, bucket=settings.s3_bucket, region=settings.s3_region)


def get_storage_service():
    from docstore.services.storage_service import StorageService

    profile = settings.storage_profile
    default_ttl = timedelta(seconds=settings.read_access_ttl)

    if profile == PROFILE_LOCAL:
        logger.info("Using storage profile: local")
        return StorageService(get_local_storage(), default_ttl=default_ttl)

    if profile == PROFILE_REMOTE_REQUIRED:
        logger.info("Using storage profile: remote-required bucket=%s", settings.s3_bucket)
        return StorageService(get_remote_storage(), default_ttl=default_ttl)

    if profile == PROFILE_FALLBACK:
        if not settings.has_remote_credentials():
            logger.warning("No S3 credentials configured, using legacy local-only storage")
            return StorageService(get_local_storage(), default_ttl=default_ttl)
        logger.info("Using storage profile: fallback bucket=%s", settings.s3_bucket)
        return StorageService(
            get_remote_storage(),
            fallback=get_local_storage(),
            mirror=settings.storage_mirror_local,
            default_ttl=default_ttl,
        )

    raise ValueError(f"Unsupported storage profile: {profile}")
