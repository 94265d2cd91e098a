"""Root conftest: in-memory remote backend and service fixtures."""

from __future__ import annotations

from datetime import datetime, timezone
from unittest.mock import MagicMock

import httpx
import pytest

from docstore.errors import BackendUnavailableError, NotFoundError
from docstore.models.document import AccessGrant, BackendKind, DocumentReference, StoredObject, UploadPlan
from docstore.services.storage_service import StorageService
from docstore.storage.base import StorageBackend
from docstore.storage.local import LocalStorage

BLOB_HOST = "https://blobs.test"


class InMemoryStorage(StorageBackend):
    """Remote backend double. Presigned URLs are served by ``blob_transport``."""

    kind = BackendKind.REMOTE

    def __init__(self, bucket: str = "customer-documents") -> None:
        self.bucket = bucket
        self.objects: dict[str, StoredObject] = {}
        self.plans: dict[str, UploadPlan | None] = {}
        self.container_calls = 0

    def ensure_container(self) -> None:
        self.container_calls += 1

    def upload(self, key, data, content_type, plan=None):
        self.objects[key] = StoredObject(canonical_path=key, content=data, content_type=content_type)
        self.plans[key] = plan
        return key

    def exists(self, key):
        return key in self.objects

    def get(self, key):
        if key not in self.objects:
            raise NotFoundError(key=key)
        return self.objects[key]

    def delete(self, key):
        return self.objects.pop(key, None) is not None

    def issue_read_credential(self, key, ttl):
        issued_at = datetime.now(timezone.utc)
        return AccessGrant(
            canonical_path=key,
            url=f"{BLOB_HOST}/{self.bucket}/{key}?se=signed&sp=r",
            backend=self.kind,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        )


def unavailable_backend() -> MagicMock:
    """A remote backend that fails every call as if the network were down."""
    backend = MagicMock(spec=StorageBackend)
    backend.kind = BackendKind.REMOTE
    error = BackendUnavailableError("connection refused")
    backend.ensure_container.side_effect = error
    backend.upload.side_effect = error
    backend.exists.side_effect = error
    backend.get.side_effect = error
    backend.delete.side_effect = error
    backend.issue_read_credential.side_effect = error
    return backend


@pytest.fixture()
def remote() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture()
def local(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture()
def storage_service(remote, local) -> StorageService:
    return StorageService(remote, fallback=local)


@pytest.fixture()
def blob_transport(remote) -> httpx.MockTransport:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params.get("sp") != "r":
            return httpx.Response(403)
        prefix = f"/{remote.bucket}/"
        key = request.url.path[len(prefix):]
        stored = remote.objects.get(key)
        if stored is None:
            return httpx.Response(404)
        return httpx.Response(200, content=stored.content, headers={"content-type": stored.content_type})

    return httpx.MockTransport(handler)


@pytest.fixture()
def http_client(blob_transport) -> httpx.Client:
    with httpx.Client(transport=blob_transport) as client:
        yield client


def _ref(**overrides) -> DocumentReference:
    defaults = dict(tenant_id="t1", category="nic_proof", file_name="a.pdf")
    defaults.update(overrides)
    return DocumentReference(**defaults)


@pytest.fixture()
def make_ref():
    return _ref
