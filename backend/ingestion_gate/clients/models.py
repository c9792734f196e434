"""Wire models of the downstream services.

Field names are snake_case in Python and camelCase on the wire; every model
accepts both forms when parsing and dumps camelCase with ``by_alias=True``.
Unknown fields sent by the services are ignored, except in the free-form
task parameters and layer metadata, where they are kept.

Example:
    Parsing a job queue answer:
        >>> from ingestion_gate.clients.models import Job
        >>> job = Job.model_validate(
        ...     {"id": "j1", "resourceId": "p1", "status": "Failed"}
        ... )
        >>> job.status
        <OperationStatus.FAILED: 'Failed'>
"""

from __future__ import annotations

import enum
from typing import Any

import pydantic
from pydantic import alias_generators

from ingestion_gate.core import models


class OperationStatus(enum.StrEnum):
    PENDING = "Pending"
    IN_PROGRESS = "In-Progress"
    COMPLETED = "Completed"
    FAILED = "Failed"
    EXPIRED = "Expired"
    ABORTED = "Aborted"
    SUSPENDED = "Suspended"


RETRYABLE_STATUSES = frozenset({OperationStatus.FAILED, OperationStatus.SUSPENDED})
ACTIVE_STATUSES = (
    OperationStatus.PENDING,
    OperationStatus.IN_PROGRESS,
    OperationStatus.FAILED,
    OperationStatus.SUSPENDED,
)


class WireModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        alias_generator=alias_generators.to_camel,
        populate_by_name=True,
    )


class Checksum(WireModel):
    algorithm: str
    checksum: str
    file_name: str

    @classmethod
    def from_fingerprint(cls, fingerprint: models.FileFingerprint) -> Checksum:
        return cls(
            algorithm=fingerprint.algorithm,
            checksum=fingerprint.checksum,
            file_name=fingerprint.file_name,
        )

    def to_fingerprint(self) -> models.FileFingerprint:
        return models.FileFingerprint(
            algorithm=self.algorithm,
            checksum=self.checksum,
            file_name=self.file_name,
        )


class ValidationTaskParameters(WireModel):
    """Parameters of the validation task of an ingestion job.

    Attributes:
        is_valid: Verdict of the last validation run, None before the first.
        report: Free-form validation report left by the workers.
        checksums: Fingerprints of the metadata shapefile sidecars.
    """

    model_config = pydantic.ConfigDict(extra="allow")

    is_valid: bool | None = None
    report: dict[str, Any] | None = None
    checksums: list[Checksum] = []

    def fingerprints(self) -> list[models.FileFingerprint]:
        return [checksum.to_fingerprint() for checksum in self.checksums]


class Task(WireModel):
    id: str
    job_id: str | None = None
    type: str
    status: OperationStatus
    parameters: dict[str, Any] = {}
    attempts: int = 0
    percentage: int | None = None


class Job(WireModel):
    id: str
    resource_id: str | None = None
    version: str | None = None
    type: str | None = None
    status: OperationStatus
    domain: str | None = None
    product_name: str | None = None
    product_type: str | None = None
    internal_id: str | None = None
    percentage: int | None = None
    parameters: dict[str, Any] = {}
    tasks: list[Task] | None = None


class CreateJobResponse(WireModel):
    id: str
    task_ids: list[str]


class FindJobsCriteria(WireModel):
    resource_id: str
    product_type: str
    is_cleaned: bool = False
    should_return_tasks: bool = False
    statuses: list[OperationStatus] = list(ACTIVE_STATUSES)
    types: list[str] = []


class LayerMetadata(WireModel):
    model_config = pydantic.ConfigDict(extra="allow")

    id: str | None = None
    product_id: str
    product_type: str
    product_sub_type: str | None = None
    product_version: str | None = None
    product_name: str | None = None
    tile_output_format: str | None = None
    display_path: str | None = None


class CatalogEntry(WireModel):
    id: str
    metadata: LayerMetadata
