"""One pass/fail decision over the declared source files of a layer.

The pipeline runs, in order and stopping at the first failure: an existence
check of every declared file (containers and shapefile sidecars), raster
metadata extraction and validation, and container structure validation.

Two entry points share the pipeline:

    - validate() propagates typed errors and returns the extracted raster
      infos so the ingestion flow can correlate them with the footprint.
    - validate_and_report() turns unsupported-entity failures into a
      ValidationOutcome for the stand-alone "validate sources" operation.
      Missing files still propagate as SourceFileNotFoundError.

Example:
    Validate the sources of a layer:
        >>> from ingestion_gate.services.source_validation import (
        ...     SourceValidationPipeline,
        ... )
        >>> pipeline = SourceValidationPipeline(settings, extractor, validator)
        >>> outcome = await pipeline.validate_and_report(input_files)
        >>> outcome.to_dict()
        {'isValid': True, 'message': 'Sources are valid'}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import concurrency

from ingestion_gate.core import errors, models
from ingestion_gate.utils import paths

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

    from ingestion_gate.core import config
    from ingestion_gate.services import container_structure, raster_metadata

logger = logging.getLogger(__name__)

VALID_SOURCES_MESSAGE = "Sources are valid"


def _first_missing(
    files: list[models.ResolvedPath],
) -> models.ResolvedPath | None:
    for file in files:
        if not file.absolute.is_file():
            return file
    return None


class SourceValidationPipeline:
    """Compose existence, raster metadata and container structure checks."""

    def __init__(
        self,
        settings: config.Settings,
        extractor: raster_metadata.RasterMetadataExtractor,
        structure_validator: container_structure.ContainerStructureValidator,
    ) -> None:
        self.settings = settings
        self.extractor = extractor
        self.structure_validator = structure_validator

    async def validate_files_exist(
        self, files: Iterable[models.ResolvedPath]
    ) -> None:
        """Raise SourceFileNotFoundError for the first file that is missing."""
        missing = await concurrency.run_in_threadpool(_first_missing, list(files))
        if missing is not None:
            logger.warning(
                "source file does not exist", extra={"file_path": missing.absolute}
            )
            raise errors.SourceFileNotFoundError(
                missing.relative, self.settings.layer_source_dir
            )

    async def validate(
        self, input_files: models.InputFilePaths
    ) -> list[models.RasterInfo]:
        """Run the whole pipeline and return the extracted raster infos.

        Raises:
            SourceFileNotFoundError: if a declared file is missing.
            RasterInfoError: if raster metadata is unreadable or out of limits.
            ContainerError: if a container is structurally invalid.
        """
        await self.validate_files_exist(
            paths.declared_files(
                input_files, self.settings.validation.shapefile_extensions
            )
        )

        container_paths = [path.absolute for path in input_files.gpkg_files]
        raster_infos = await self.extractor.extract_many(container_paths)
        self.extractor.validate(raster_infos)
        await self._validate_structure(container_paths)
        logger.info("sources are valid: %d containers", len(container_paths))
        return raster_infos

    async def validate_and_report(
        self, input_files: models.InputFilePaths
    ) -> models.ValidationOutcome:
        """Run the pipeline and report unsupported sources as an outcome."""
        try:
            await self.validate(input_files)
        except errors.UnsupportedEntityError as err:
            logger.info("sources are invalid: %s", err.message)
            return models.ValidationOutcome(is_valid=False, message=err.message)
        return models.ValidationOutcome(is_valid=True, message=VALID_SOURCES_MESSAGE)

    async def get_info(
        self, gpkg_files: Iterable[models.ResolvedPath]
    ) -> list[models.RasterInfo]:
        """Check the containers exist and return their raster infos unvalidated."""
        files = list(gpkg_files)
        await self.validate_files_exist(files)
        return await self.extractor.extract_many(path.absolute for path in files)

    async def _validate_structure(self, container_paths: list[pathlib.Path]) -> None:
        await concurrency.run_in_threadpool(
            self.structure_validator.validate, container_paths
        )
