from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta

from docstore.models.document import AccessGrant, BackendKind, StoredObject, UploadPlan


class StorageBackend(ABC):
    kind: BackendKind

    @abstractmethod
    def ensure_container(self) -> None:
        """Make sure the bucket/directory that holds documents exists. Idempotent."""
        ...

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str, plan: UploadPlan | None = None) -> str:
        """Store data under key, replacing any previous object. Returns the key."""
        ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    @abstractmethod
    def get(self, key: str) -> StoredObject:
        """Retrieve bytes and content type by key."""
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the object. Returns False when nothing was stored under key."""
        ...

    @abstractmethod
    def issue_read_credential(self, key: str, ttl: timedelta) -> AccessGrant:
        """Return a presigned URL (S3) or absolute file path (local) valid for ttl."""
        ...
