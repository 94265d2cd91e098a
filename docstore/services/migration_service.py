from __future__ import annotations

import logging
import threading
from collections.abc import Mapping
from concurrent.futures import ThreadPoolExecutor

from docstore.errors import StorageError
from docstore.models.document import DocumentReference
from docstore.models.migration import MigrationOutcome, MigrationRecord, MigrationReport
from docstore.services.storage_service import StorageService
from docstore.storage.paths import encode_path, parse_stored_reference, validate_reference

logger = logging.getLogger(__name__)


class MigrationService:
    """Re-files documents from a placeholder tenant prefix under a real tenant id.

    Each document is copied independently: a failure is recorded in the report
    and the batch carries on. Originals are left in place as a backup.
    """

    def __init__(self, storage: StorageService, max_workers: int = 4) -> None:
        self.storage = storage
        self.max_workers = max(1, max_workers)

    def migrate(
        self,
        old_prefix: str,
        new_tenant_id: str,
        documents: Mapping[str, object],
        cancel: threading.Event | None = None,
    ) -> MigrationReport:
        if not old_prefix:
            raise ValueError("old_prefix is required")
        if not new_tenant_id:
            raise ValueError("new_tenant_id is required")

        logger.info(
            "Migrating %d document(s) from %s to %s", len(documents), old_prefix, new_tenant_id
        )
        items = list(documents.items())

        if self.max_workers == 1 or len(items) <= 1:
            records = [self._migrate_one(old_prefix, new_tenant_id, k, v, cancel) for k, v in items]
        else:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = [
                    pool.submit(self._migrate_one, old_prefix, new_tenant_id, k, v, cancel)
                    for k, v in items
                ]
                records = [f.result() for f in futures]

        report = MigrationReport(old_prefix=old_prefix, new_tenant_id=new_tenant_id, records=records)
        logger.info(
            "Document migration completed: %d succeeded, %d failed",
            len(report.succeeded),
            len(report.failed),
        )
        return report

    def _migrate_one(
        self,
        old_prefix: str,
        new_tenant_id: str,
        document_key: str,
        reference: object,
        cancel: threading.Event | None,
    ) -> MigrationRecord:
        if cancel is not None and cancel.is_set():
            return MigrationRecord(
                document_key=document_key, outcome=MigrationOutcome.FAILED, reason="cancelled"
            )
        if not isinstance(reference, str) or not reference:
            logger.error("Skipping %s: reference is not a non-empty string", document_key)
            return MigrationRecord(
                document_key=document_key,
                outcome=MigrationOutcome.FAILED,
                reason="reference must be a non-empty string",
            )

        source_path = ""
        destination_path = ""
        try:
            source = parse_stored_reference(reference, old_prefix)
            source_path = encode_path(source)
            target = DocumentReference(
                tenant_id=new_tenant_id, category=source.category, file_name=source.file_name
            )
            validate_reference(target)
            destination_path = encode_path(target)

            stored = self.storage.read(source)
            location = self.storage.put(target, stored.content, stored.content_type)
        except (StorageError, ValueError) as exc:
            logger.error("Error migrating document %s (%s): %s", document_key, reference, exc)
            return MigrationRecord(
                document_key=document_key,
                source_path=source_path,
                destination_path=destination_path,
                outcome=MigrationOutcome.FAILED,
                reason=str(exc),
            )

        logger.info("Migrated %s: %s -> %s (%s)", document_key, source_path, destination_path, location.backend.value)
        return MigrationRecord(
            document_key=document_key,
            source_path=source_path,
            destination_path=location.canonical_path,
            outcome=MigrationOutcome.SUCCESS,
        )
