from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, model_validator


class BackendKind(str, Enum):
    REMOTE = "remote"
    LOCAL = "local"


class Capability(str, Enum):
    READ = "read"


class DocumentReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    tenant_id: str
    category: str
    file_name: str


class StoredLocation(BaseModel):
    canonical_path: str
    backend: BackendKind


class StoredObject(BaseModel):
    canonical_path: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class AccessGrant(BaseModel):
    canonical_path: str
    url: str
    backend: BackendKind
    issued_at: datetime
    expires_at: datetime
    capability: Capability = Capability.READ

    @model_validator(mode="after")
    def _check_window(self) -> AccessGrant:
        if self.expires_at <= self.issued_at:
            raise ValueError("expires_at must be after issued_at")
        return self

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return now < self.expires_at


class UploadPlan(BaseModel):
    concurrency_degree: int
    chunk_threshold: int


class PublicLink(BaseModel):
    token: str
    url: str
    expires_at: datetime
