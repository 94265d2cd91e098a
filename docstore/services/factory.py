from datetime import timedelta

import httpx

from docstore.services.migration_service import MigrationService
from docstore.services.proxy_service import ProxyService
from docstore.services.storage_service import StorageService
from docstore.services.token_service import AccessTokenIssuer
from docstore.settings import settings
from docstore.storage.factory import get_storage_service


def get_token_issuer() -> AccessTokenIssuer:
    return AccessTokenIssuer(max_age=timedelta(seconds=settings.access_token_max_age))


def get_migration_service(storage: StorageService | None = None) -> MigrationService:
    return MigrationService(storage or get_storage_service(), max_workers=settings.migration_workers)


def get_proxy_service(storage: StorageService | None = None) -> ProxyService:
    return ProxyService(
        storage or get_storage_service(),
        get_token_issuer(),
        http_client=httpx.Client(timeout=settings.proxy_timeout),
        public_base_url=settings.public_base_url,
    )
