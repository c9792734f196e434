"""Error taxonomy shared by the validators, the orchestrator and the API.

Every error carries a human-readable message naming the offending file or
entity. The API layer maps each family to an HTTP status code (see
``ingestion_gate.main``); nothing here knows about HTTP.

Families:
    - NotFoundError: missing file, job, task or catalog entry.
    - ConflictError: duplicate layer or catalog entry, competing job,
      no-op retry.
    - UnsupportedEntityError: structurally invalid container, invalid raster
      metadata, uncorrelated footprint.
    - InvalidJobStatusError: job not in a retry-eligible status.
    - ChecksumError: I/O or digest failure while fingerprinting.
    - ValidationError: generic geometry or schema violation.
    - ServiceError: a downstream service answered with an unexpected error.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib


class IngestionGateError(Exception):
    """Base class for all errors raised by the gateway."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class NotFoundError(IngestionGateError):
    pass


class SourceFileNotFoundError(NotFoundError):
    """A declared input file does not exist under the source mount."""

    def __init__(
        self,
        file_name: str | pathlib.Path,
        path: str | pathlib.Path | None = None,
    ) -> None:
        if path is not None:
            message = f"File '{file_name}' does not exist in path {path}"
        else:
            message = f"File {file_name} does not exist"
        super().__init__(message)


class ConflictError(IngestionGateError):
    pass


class UnsupportedEntityError(IngestionGateError):
    pass


class ContainerError(UnsupportedEntityError):
    """A raster container could not be read or is structurally invalid."""


class MissingIndexError(ContainerError):
    pass


class UnsupportedGridError(ContainerError):
    pass


class UnsupportedTileSizeError(ContainerError):
    pass


class RasterInfoError(UnsupportedEntityError):
    """Raster metadata could not be read or violates the configured limits."""


class CorrelationError(UnsupportedEntityError):
    """The combined raster extent could not be turned into a coverage."""


class InvalidJobStatusError(IngestionGateError):
    def __init__(self, job_id: str, status: str) -> None:
        super().__init__(
            f"Cannot retry job with id: {job_id} because its status is "
            f"{status}, only Failed or Suspended jobs can be retried"
        )


class ChecksumError(IngestionGateError):
    pass


class ValidationError(IngestionGateError):
    pass


class FootprintNotContainedError(ValidationError):
    def __init__(self, detail: str | None = None) -> None:
        message = "footprint not contained by combined extent"
        super().__init__(f"{message}: {detail}" if detail else message)


class ServiceError(IngestionGateError):
    """A downstream HTTP service failed in a way the caller cannot recover."""

    def __init__(self, service: str, message: str) -> None:
        super().__init__(f"{service}: {message}")
        self.service = service
