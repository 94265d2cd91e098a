from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class MigrationOutcome(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"


class MigrationRecord(BaseModel):
    document_key: str
    source_path: str = ""
    destination_path: str = ""
    outcome: MigrationOutcome
    reason: str = ""


class MigrationReport(BaseModel):
    old_prefix: str
    new_tenant_id: str
    records: list[MigrationRecord] = []

    @property
    def succeeded(self) -> list[MigrationRecord]:
        return [r for r in self.records if r.outcome == MigrationOutcome.SUCCESS]

    @property
    def failed(self) -> list[MigrationRecord]:
        return [r for r in self.records if r.outcome == MigrationOutcome.FAILED]

    @property
    def locations(self) -> dict[str, str]:
        """New canonical path per document key; failed keys are absent."""
        return {r.document_key: r.destination_path for r in self.succeeded}
