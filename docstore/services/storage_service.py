from __future__ import annotations

import logging
from datetime import timedelta

from docstore.constants import DEFAULT_READ_TTL
from docstore.errors import BackendUnavailableError, NotFoundError, PermissionDeniedError, StorageError
from docstore.models.document import (
    AccessGrant,
    BackendKind,
    DocumentReference,
    StoredLocation,
    StoredObject,
)
from docstore.storage.base import StorageBackend
from docstore.storage.paths import encode_path
from docstore.storage.planner import plan_upload

logger = logging.getLogger(__name__)


class StorageService:
    """Front door for document storage.

    Writes go to ``primary``; when it fails and a ``fallback`` is configured the
    document is written there instead and the returned location says so. Reads
    and deletes walk primary then fallback. The two tiers are never reconciled
    automatically.
    """

    def __init__(
        self,
        primary: StorageBackend,
        fallback: StorageBackend | None = None,
        mirror: bool = False,
        default_ttl: timedelta = DEFAULT_READ_TTL,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.mirror = mirror and fallback is not None
        self.default_ttl = default_ttl
        self._ready = False

    @property
    def backends(self) -> list[StorageBackend]:
        if self.fallback is None:
            return [self.primary]
        return [self.primary, self.fallback]

    def ensure_ready(self) -> None:
        for backend in self.backends:
            backend.ensure_container()
        self._ready = True

    def put(self, ref: DocumentReference, content: bytes, content_type: str) -> StoredLocation:
        if not content:
            raise ValueError("content must not be empty")
        if not content_type:
            raise ValueError("content_type must not be empty")

        key = encode_path(ref)
        plan = plan_upload(len(content))

        try:
            if not self._ready:
                self.ensure_ready()
            self.primary.upload(key, content, content_type, plan)
        except StorageError as exc:
            if self.fallback is None:
                logger.error("Upload of %s failed and no fallback is configured: %s", key, exc)
                raise
            logger.warning("Upload of %s to %s failed (%s), writing fallback copy", key, self.primary.kind.value, exc)
            return self._put_fallback(key, content, content_type, exc)

        if self.mirror:
            self._mirror(key, content, content_type)

        logger.info("Stored %s on %s (%d bytes)", key, self.primary.kind.value, len(content))
        return StoredLocation(canonical_path=key, backend=self.primary.kind)

    def _put_fallback(
        self, key: str, content: bytes, content_type: str, primary_error: StorageError
    ) -> StoredLocation:
        assert self.fallback is not None
        try:
            self.fallback.upload(key, content, content_type)
        except StorageError as exc:
            logger.error("Fallback upload of %s failed: %s", key, exc)
            raise BackendUnavailableError(
                "Failed to upload document to any storage backend", key=key, cause=exc
            ) from primary_error
        logger.info("FALLBACK: stored %s on %s", key, self.fallback.kind.value)
        return StoredLocation(canonical_path=key, backend=self.fallback.kind)

    def _mirror(self, key: str, content: bytes, content_type: str) -> None:
        assert self.fallback is not None
        try:
            self.fallback.upload(key, content, content_type)
        except StorageError as exc:
            logger.warning("Mirror copy of %s failed: %s", key, exc)

    def get_read_access(self, ref: DocumentReference, ttl: timedelta | None = None) -> AccessGrant:
        ttl = self.default_ttl if ttl is None else ttl
        if ttl <= timedelta(0):
            raise ValueError("ttl must be positive")

        key = encode_path(ref)
        backend = self._find(key)
        grant = backend.issue_read_credential(key, ttl)
        logger.info("Issued %s read access for %s (ttl=%ss)", backend.kind.value, key, int(ttl.total_seconds()))
        return grant

    def read(self, ref: DocumentReference) -> StoredObject:
        key = encode_path(ref)
        return self._find(key).get(key)

    def locate(self, ref: DocumentReference) -> BackendKind | None:
        try:
            return self._find(encode_path(ref)).kind
        except NotFoundError:
            return None

    def _find(self, key: str) -> StorageBackend:
        unavailable: BackendUnavailableError | None = None
        denied: PermissionDeniedError | None = None
        for backend in self.backends:
            try:
                if backend.exists(key):
                    return backend
            except BackendUnavailableError as exc:
                logger.warning("Existence check of %s on %s failed: %s", key, backend.kind.value, exc)
                unavailable = exc
                continue
            except PermissionDeniedError as exc:
                # S3 answers 403 for a missing key when ListBucket is not granted.
                logger.warning("Existence check of %s on %s denied: %s", key, backend.kind.value, exc)
                denied = exc
                continue
            logger.debug("%s not found on %s", key, backend.kind.value)
        if denied is not None:
            raise denied
        if unavailable is not None:
            raise BackendUnavailableError(
                "Document not found on reachable backends", key=key, cause=unavailable
            ) from unavailable
        raise NotFoundError(key=key)

    def delete(self, ref: DocumentReference) -> bool:
        key = encode_path(ref)
        deleted = False
        unavailable: BackendUnavailableError | None = None
        denied: PermissionDeniedError | None = None

        for backend in self.backends:
            try:
                if backend.delete(key):
                    deleted = True
            except BackendUnavailableError as exc:
                logger.warning("Delete of %s on %s failed: %s", key, backend.kind.value, exc)
                unavailable = exc
            except PermissionDeniedError as exc:
                logger.warning("Delete of %s on %s denied: %s", key, backend.kind.value, exc)
                denied = exc

        if not deleted and denied is not None:
            raise denied
        if not deleted and unavailable is not None:
            raise BackendUnavailableError("Failed to delete document", key=key, cause=unavailable) from unavailable

        if deleted:
            logger.info("Deleted %s", key)
        else:
            logger.info("Nothing stored under %s, delete is a no-op", key)
        return deleted
