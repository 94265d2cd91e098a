from __future__ import annotations

import logging
from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from pathlib import Path

from docstore.constants import guess_content_type
from docstore.errors import BackendUnavailableError, InvalidReferenceError, NotFoundError
from docstore.models.document import AccessGrant, BackendKind, StoredObject, UploadPlan
from docstore.storage.base import StorageBackend

logger = logging.getLogger(__name__)


class LocalStorage(StorageBackend):
    kind = BackendKind.LOCAL

    def __init__(self, base_dir: str) -> None:
        self.base_dir = Path(base_dir)

    def _path(self, key: str) -> Path:
        base = self.base_dir.resolve()
        path = (base / key).resolve()
        if not path.is_relative_to(base) or path == base:
            raise InvalidReferenceError("Key escapes the local storage root", key=key)
        return path

    def ensure_container(self) -> None:
        # Directories are created on write.
        return None

    def upload(self, key: str, data: bytes, content_type: str, plan: UploadPlan | None = None) -> str:
        path = self._path(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            raise BackendUnavailableError("Local write failed", key=key, cause=exc) from exc
        logger.debug("Saved %s (%d bytes) to %s", key, len(data), path)
        return key

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def get(self, key: str) -> StoredObject:
        path = self._path(key)
        logger.debug("Reading %s from %s", key, path)
        try:
            content = path.read_bytes()
        except FileNotFoundError:
            raise NotFoundError(key=key) from None
        except OSError as exc:
            raise BackendUnavailableError("Local read failed", key=key, cause=exc) from exc
        return StoredObject(canonical_path=key, content=content, content_type=guess_content_type(key))

    def delete(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise BackendUnavailableError("Local delete failed", key=key, cause=exc) from exc
        logger.info("Local file deleted: %s", path)
        return True

    def issue_read_credential(self, key: str, ttl: timedelta) -> AccessGrant:
        resolved = self._path(key)
        issued_at = datetime.now(timezone.utc)
        logger.debug("Resolved local reference for %s: %s", key, resolved)
        return AccessGrant(
            canonical_path=key,
            url=str(resolved),
            backend=self.kind,
            issued_at=issued_at,
            expires_at=issued_at + ttl,
        )

    def iter_paths(self) -> Iterator[str]:
        """Yield canonical paths (tenant/category/file) of every stored file."""
        if not self.base_dir.is_dir():
            return
        for path in sorted(self.base_dir.glob("*/*/*")):
            if path.is_file():
                yield path.relative_to(self.base_dir).as_posix()
