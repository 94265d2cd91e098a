import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

PROFILE_FALLBACK = "fallback"
PROFILE_REMOTE_REQUIRED = "remote-required"
PROFILE_LOCAL = "local"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="DOCSTORE_", extra="ignore")

    storage_profile: str = PROFILE_FALLBACK
    storage_local_path: str = "./uploads"
    storage_mirror_local: bool = False

    s3_bucket: str = "customer-documents"
    s3_region: str = "us-east-1"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_endpoint_url: str = ""
    s3_max_attempts: int = 3
    s3_connect_timeout: int = 5  # seconds
    s3_read_timeout: int = 60  # seconds

    read_access_ttl: int = 900  # 15 minutes in seconds
    access_token_max_age: int = 1800  # 30 minutes in seconds
    public_base_url: str = "http://localhost:8000"
    proxy_timeout: float = 30.0

    migration_workers: int = 4

    log_level: str = "INFO"
    log_json: bool = False

    def has_remote_credentials(self) -> bool:
        return bool(self.s3_bucket and self.s3_access_key_id and self.s3_secret_access_key)


settings = Settings()
