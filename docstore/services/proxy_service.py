from __future__ import annotations

import logging
from pathlib import Path
from urllib.parse import quote

import httpx

from docstore.constants import DEFAULT_CONTENT_TYPE, guess_content_type
from docstore.errors import (
    BackendUnavailableError,
    NotFoundError,
    PermissionDeniedError,
)
from docstore.logging import redact_url
from docstore.models.document import AccessGrant, BackendKind, DocumentReference, PublicLink
from docstore.services.storage_service import StorageService
from docstore.services.token_service import AccessTokenIssuer

logger = logging.getLogger(__name__)

PUBLIC_ROUTE = "/api/documents/public"


class ProxyService:
    """Serves document bytes to callers without handing out backend URLs.

    The bucket is private, so every read goes through a party holding the
    signing material: this service resolves a grant and fetches the bytes itself.
    """

    def __init__(
        self,
        storage: StorageService,
        token_issuer: AccessTokenIssuer,
        http_client: httpx.Client | None = None,
        public_base_url: str = "",
        timeout: float = 30.0,
    ) -> None:
        self.storage = storage
        self.token_issuer = token_issuer
        self.http_client = http_client or httpx.Client(timeout=timeout)
        self.public_base_url = public_base_url.rstrip("/")

    def serve(self, ref: DocumentReference) -> tuple[str, bytes]:
        grant = self.storage.get_read_access(ref)
        if grant.backend == BackendKind.LOCAL:
            return self._read_local(grant)
        return self._fetch_remote(grant)

    def serve_public(self, token: str, ref: DocumentReference) -> tuple[str, bytes]:
        if not self.token_issuer.validate(token):
            raise PermissionDeniedError("Invalid or expired access token")
        return self.serve(ref)

    def public_link(self, ref: DocumentReference) -> PublicLink:
        token = self.token_issuer.issue()
        expires_at = self.token_issuer.expires_at(token)
        assert expires_at is not None
        segments = "/".join(quote(s, safe="") for s in (ref.tenant_id, ref.category, ref.file_name))
        url = f"{self.public_base_url}{PUBLIC_ROUTE}/{token}/{segments}"
        logger.info("Generated public link for %s/%s/%s", ref.tenant_id, ref.category, ref.file_name)
        return PublicLink(token=token, url=url, expires_at=expires_at)

    def _read_local(self, grant: AccessGrant) -> tuple[str, bytes]:
        try:
            content = Path(grant.url).read_bytes()
        except FileNotFoundError:
            raise NotFoundError(key=grant.canonical_path) from None
        except OSError as exc:
            raise BackendUnavailableError(
                "Error reading local document", key=grant.canonical_path, cause=exc
            ) from exc
        logger.info("Served local document %s (%d bytes)", grant.canonical_path, len(content))
        return guess_content_type(grant.canonical_path), content

    def _fetch_remote(self, grant: AccessGrant) -> tuple[str, bytes]:
        logger.debug("Proxying content from %s", redact_url(grant.url))
        try:
            response = self.http_client.get(grant.url)
        except httpx.HTTPError as exc:
            raise BackendUnavailableError(
                "Error retrieving document content", key=grant.canonical_path, cause=exc
            ) from exc

        if response.status_code == 404:
            raise NotFoundError(key=grant.canonical_path)
        if response.status_code in (401, 403):
            raise PermissionDeniedError("Backend refused the read credential", key=grant.canonical_path)
        if response.is_error:
            raise BackendUnavailableError(
                f"Error fetching document: {response.status_code} {response.reason_phrase}",
                key=grant.canonical_path,
            )

        content_type = response.headers.get("content-type") or DEFAULT_CONTENT_TYPE
        logger.info(
            "Proxied document %s, size: %d bytes, content-type: %s",
            grant.canonical_path,
            len(response.content),
            content_type,
        )
        return content_type, response.content
