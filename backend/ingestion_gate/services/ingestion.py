"""Ingestion orchestration: new layers, layer updates and job retries.

IngestionManager turns a validated request into a job on the job queue. New
and update requests go through the same validation: source pipeline, product
footprint correlation, then cross-system conflict checks against the map
server, the catalog and the job queue. Only when everything passes are the
metadata shapefile sidecars fingerprinted and the job created.

A retry resets a Failed or Suspended job back to Pending. When the previous
validation passed, the job is simply reset. Otherwise the sidecars are
fingerprinted again; a completed validation whose sidecars did not change is
refused, anything else is resubmitted with the merged fingerprint list.

Example:
    Submit a new layer:
        >>> from ingestion_gate.api.dependencies import build_ingestion_manager
        >>> manager = build_ingestion_manager(get_settings())
        >>> response_id = await manager.new_layer(request)
        >>> response_id.to_dict()
        {'jobId': '...', 'taskId': '...'}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pydantic

from ingestion_gate.api import schemas
from ingestion_gate.clients import models as client_models
from ingestion_gate.core import errors, models
from ingestion_gate.utils import paths

if TYPE_CHECKING:
    from collections.abc import Sequence

    from ingestion_gate.clients import (
        catalog,
        job_manager,
        map_server,
        validation_entities,
    )
    from ingestion_gate.core import config
    from ingestion_gate.services import fingerprint as fingerprint_service
    from ingestion_gate.services import geometry, source_validation
    from ingestion_gate.services import product_reader as product_reader_service

logger = logging.getLogger(__name__)

INITIAL_PRODUCT_VERSION = "1.0"


def fingerprints_changed(
    existing: Sequence[models.FileFingerprint],
    new: Sequence[models.FileFingerprint],
) -> bool:
    """Whether any new digest is absent from the existing ones.

    Example:
        >>> old = [FileFingerprint("XXH64", "a", "x.shp")]
        >>> fingerprints_changed(old, [FileFingerprint("XXH64", "a", "x.shp")])
        False
    """
    known = {fingerprint.checksum for fingerprint in existing}
    return any(fingerprint.checksum not in known for fingerprint in new)


def merge_fingerprints(
    existing: Sequence[models.FileFingerprint],
    new: Sequence[models.FileFingerprint],
) -> list[models.FileFingerprint]:
    """Keep existing fingerprints in order and append unseen digests.

    The result is always a superset of ``existing``.
    """
    merged = list(existing)
    known = {fingerprint.checksum for fingerprint in existing}
    for fingerprint in new:
        if fingerprint.checksum not in known:
            merged.append(fingerprint)
            known.add(fingerprint.checksum)
    return merged


def next_product_version(product_version: str | None) -> str:
    """Increment a catalog product version, e.g. "1.0" becomes "2.0"."""
    try:
        return f"{float(product_version) + 1:.1f}"  # type: ignore[arg-type]
    except (TypeError, ValueError) as err:
        raise errors.ValidationError(
            f"Invalid product version in catalog: {product_version}"
        ) from err


class IngestionManager:
    """Validate ingestion requests and drive jobs on the job queue."""

    def __init__(
        self,
        settings: config.Settings,
        pipeline: source_validation.SourceValidationPipeline,
        product_reader: product_reader_service.ProductShapefileReader,
        correlator: geometry.GeometryCorrelator,
        fingerprinter: fingerprint_service.ContentFingerprinter,
        job_manager_client: job_manager.JobManagerClientProtocol,
        catalog_client: catalog.CatalogClientProtocol,
        map_server_client: map_server.MapServerClientProtocol,
        validation_entity_client: validation_entities.ValidationEntityClientProtocol,
    ) -> None:
        self.settings = settings
        self.pipeline = pipeline
        self.product_reader = product_reader
        self.correlator = correlator
        self.fingerprinter = fingerprinter
        self.job_manager_client = job_manager_client
        self.catalog_client = catalog_client
        self.map_server_client = map_server_client
        self.validation_entity_client = validation_entity_client

    @property
    def _jobs(self) -> config.JobManagerSettings:
        return self.settings.job_manager

    def _resolve(self, input_files: schemas.InputFiles) -> models.InputFilePaths:
        return paths.resolve_input_files(
            self.settings.layer_source_dir,
            input_files.gpkg_files_path,
            input_files.metadata_shapefile_path,
            input_files.product_shapefile_path,
        )

    async def new_layer(self, request: schemas.NewLayerRequest) -> models.ResponseId:
        """Validate a new layer and create its ingestion job.

        Args:
            request: New layer request with relative input paths.

        Returns:
            Ids of the created job and of its validation task.

        Raises:
            NotFoundError: if a declared file is missing.
            UnsupportedEntityError: if a source is invalid.
            ValidationError: if the footprint is unreadable or not covered.
            ConflictError: if the layer exists or a competing job is active.
        """
        metadata = request.metadata
        product_type = str(metadata.product_type)
        input_files = self._resolve(request.input_files)
        logger.info(
            "started validation on new layer request %s %s",
            metadata.product_id,
            product_type,
        )

        await self._validate_input_files(input_files)
        layer_name = paths.map_serving_layer_name(metadata.product_id, product_type)
        await self._validate_layer_not_served(layer_name)
        await self._validate_not_in_catalog(metadata.product_id, product_type)
        await self._validate_no_parallel_jobs(metadata.product_id, product_type)
        logger.info(
            "finished validation of new layer, all checks have passed",
            extra={"layer_name": layer_name},
        )

        checksums = await self._metadata_fingerprints(input_files)
        parameters = self._job_parameters(request, input_files)
        parameters["additionalParams"] = {
            "jobTrackerServiceURL": self.settings.services.job_tracker_url,
        }
        payload = {
            "resourceId": metadata.product_id,
            "version": INITIAL_PRODUCT_VERSION,
            "type": self._jobs.ingestion_new_job_type,
            "status": client_models.OperationStatus.PENDING.value,
            "parameters": parameters,
            "productName": metadata.product_name,
            "productType": product_type,
            "domain": self._jobs.job_domain,
            "tasks": [self._validation_task(checksums)],
        }
        return await self._create_job(payload)

    async def update_layer(
        self, catalog_id: str, request: schemas.UpdateLayerRequest
    ) -> models.ResponseId:
        """Validate an update of a cataloged layer and create its job.

        The job type is swap-update when the layer's product type and sub
        type are listed as swap types, plain update otherwise.

        Raises:
            NotFoundError: if the catalog entry, the served layer or a declared
                file is missing.
            ConflictError: if several catalog entries match or a competing job
                is active.
        """
        layer = await self._get_layer_metadata(catalog_id)
        input_files = self._resolve(request.input_files)
        logger.info("started validation on update layer request %s", catalog_id)

        await self._validate_input_files(input_files)
        layer_name = paths.map_serving_layer_name(layer.product_id, layer.product_type)
        await self._validate_layer_served(layer_name)
        await self._validate_no_parallel_jobs(layer.product_id, layer.product_type)
        logger.info(
            "finished validation of update layer, all checks have passed",
            extra={"layer_name": layer_name},
        )

        is_swap = any(
            swap.product_type == layer.product_type
            and swap.product_sub_type == layer.product_sub_type
            for swap in self._jobs.supported_swap_types
        )
        job_type = (
            self._jobs.ingestion_swap_update_job_type
            if is_swap
            else self._jobs.ingestion_update_job_type
        )

        checksums = await self._metadata_fingerprints(input_files)
        parameters = self._job_parameters(request, input_files)
        additional_params: dict[str, Any] = {
            "tileOutputFormat": layer.tile_output_format,
            "jobTrackerServiceURL": self.settings.services.job_tracker_url,
        }
        if not is_swap:
            additional_params["displayPath"] = layer.display_path
        parameters["additionalParams"] = additional_params

        payload = {
            "resourceId": layer.product_id,
            "version": next_product_version(layer.product_version),
            "internalId": catalog_id,
            "type": job_type,
            "status": client_models.OperationStatus.PENDING.value,
            "parameters": parameters,
            "productName": layer.product_name,
            "productType": layer.product_type,
            "domain": self._jobs.job_domain,
            "tasks": [self._validation_task(checksums)],
        }
        return await self._create_job(payload)

    async def retry_ingestion(self, job_id: str) -> None:
        """Reset a failed or suspended job back to Pending.

        Raises:
            InvalidJobStatusError: if the job is not Failed or Suspended.
            NotFoundError: if the job has no validation task or a file is
                missing.
            ConflictError: if a completed validation is retried without any
                metadata shapefile change.
        """
        logger.info("starting retry layer process", extra={"job_id": job_id})
        job = await self.job_manager_client.get_job(job_id)
        if job.status not in client_models.RETRYABLE_STATUSES:
            logger.warning(
                "job status %s is not retryable", job.status, extra={"job_id": job_id}
            )
            raise errors.InvalidJobStatusError(job_id, job.status)

        task = await self._get_validation_task(job_id)
        try:
            task_parameters = client_models.ValidationTaskParameters.model_validate(
                task.parameters
            )
        except pydantic.ValidationError as err:
            raise errors.ValidationError(
                f"Invalid validation task parameters for job: {job_id}"
            ) from err

        await self.validation_entity_client.delete_validation_entity(
            job.resource_id or "", job.product_type or ""
        )

        if task_parameters.is_valid is True:
            await self._soft_reset(job_id, task)
        else:
            await self._hard_reset(job, task, task_parameters)

    async def _soft_reset(self, job_id: str, task: client_models.Task) -> None:
        logger.info(
            "validation completed without errors, resetting job",
            extra={"job_id": job_id, "task_id": task.id},
        )
        pending = client_models.OperationStatus.PENDING.value
        await self.job_manager_client.update_task(
            job_id, task.id, {"status": pending, "attempts": 0, "percentage": 0}
        )
        await self.job_manager_client.update_job(
            job_id, {"status": pending, "percentage": 0}
        )

    async def _hard_reset(
        self,
        job: client_models.Job,
        task: client_models.Task,
        task_parameters: client_models.ValidationTaskParameters,
    ) -> None:
        logger.info(
            "validation has errors, checking for shapefile changes",
            extra={"job_id": job.id, "task_id": task.id},
        )
        try:
            job_input_files = schemas.InputFiles.model_validate(
                job.parameters.get("inputFiles")
            )
        except pydantic.ValidationError as err:
            raise errors.ValidationError(
                f"Invalid input files in parameters of job: {job.id}"
            ) from err

        input_files = self._resolve(job_input_files)
        await self.pipeline.validate_files_exist(
            paths.declared_files(
                input_files, self.settings.validation.shapefile_extensions
            )
        )
        existing = task_parameters.fingerprints()
        new = await self._metadata_fingerprints(input_files)

        if task.status is client_models.OperationStatus.COMPLETED and not (
            fingerprints_changed(existing, new)
        ):
            message = (
                f"job id: {job.id} could not be retried, due to the detection "
                "that not a single metadata shapefile has been changed"
            )
            logger.warning(message, extra={"job_id": job.id})
            raise errors.ConflictError(message)

        merged = merge_fingerprints(existing, new)
        updated_parameters = task_parameters.model_copy(
            update={
                "checksums": [
                    client_models.Checksum.from_fingerprint(fingerprint)
                    for fingerprint in merged
                ]
            }
        )
        logger.info(
            "resetting job and task with %d checksums",
            len(merged),
            extra={"job_id": job.id, "task_id": task.id},
        )
        pending = client_models.OperationStatus.PENDING.value
        await self.job_manager_client.update_task(
            job.id,
            task.id,
            {
                "parameters": updated_parameters.model_dump(
                    mode="json", by_alias=True
                ),
                "status": pending,
                "attempts": 0,
            },
        )
        await self.job_manager_client.update_job(job.id, {"status": pending})

    async def _validate_input_files(self, input_files: models.InputFilePaths) -> None:
        raster_infos = await self.pipeline.validate(input_files)
        if input_files.product_shapefile is None:
            raise errors.ValidationError("product shapefile path is required")
        footprint = await self.product_reader.read(input_files.product_shapefile.absolute)
        self.correlator.validate(raster_infos, footprint)
        logger.debug("validated geometries")

    async def _metadata_fingerprints(
        self, input_files: models.InputFilePaths
    ) -> list[models.FileFingerprint]:
        if input_files.metadata_shapefile is None:
            raise errors.ValidationError("metadata shapefile path is required")
        return await self.fingerprinter.fingerprint_many(
            paths.shapefile_bundle(
                input_files.metadata_shapefile,
                self.settings.validation.shapefile_extensions,
            )
        )

    def _job_parameters(
        self,
        request: schemas.NewLayerRequest | schemas.UpdateLayerRequest,
        input_files: models.InputFilePaths,
    ) -> dict[str, Any]:
        parameters = request.model_dump(mode="json", by_alias=True, exclude_none=True)
        parameters["inputFiles"] = input_files.relative()
        return parameters

    def _validation_task(
        self, checksums: list[models.FileFingerprint]
    ) -> dict[str, Any]:
        return {
            "type": self._jobs.validation_task_type,
            "parameters": {
                "checksums": [fingerprint.to_dict() for fingerprint in checksums]
            },
        }

    async def _create_job(self, payload: dict[str, Any]) -> models.ResponseId:
        created = await self.job_manager_client.create_job(payload)
        if not created.task_ids:
            raise errors.ServiceError(
                "JobManager", f"job {created.id} was created without tasks"
            )
        response_id = models.ResponseId(job_id=created.id, task_id=created.task_ids[0])
        logger.info(
            "ingestion job and validation task were created",
            extra={"job_id": response_id.job_id, "task_id": response_id.task_id},
        )
        return response_id

    async def _get_layer_metadata(
        self, catalog_id: str
    ) -> client_models.LayerMetadata:
        entries = await self.catalog_client.find_by_id(catalog_id)
        if not entries:
            raise errors.NotFoundError(f"there isn't a layer with id of {catalog_id}")
        if len(entries) > 1:
            raise errors.ConflictError(
                f"found more than one layer with id of {catalog_id}, "
                "please check the catalog layers"
            )
        return entries[0].metadata

    async def _get_validation_task(self, job_id: str) -> client_models.Task:
        tasks = await self.job_manager_client.get_tasks_for_job(job_id)
        for task in tasks:
            if task.type == self._jobs.validation_task_type:
                return task
        message = (
            f"Cannot retry job with id: {job_id} because no validation task "
            "was found"
        )
        logger.error(message, extra={"job_id": job_id})
        raise errors.NotFoundError(message)

    async def _validate_layer_not_served(self, layer_name: str) -> None:
        if await self.map_server_client.exists(layer_name):
            raise errors.ConflictError(
                f"Failed to create new ingestion job for layer: {layer_name}, "
                "already exists on the map server"
            )

    async def _validate_layer_served(self, layer_name: str) -> None:
        if not await self.map_server_client.exists(layer_name):
            raise errors.NotFoundError(
                f"Failed to create update job for layer: {layer_name}, "
                "layer doesn't exist on the map server"
            )

    async def _validate_not_in_catalog(self, product_id: str, product_type: str) -> None:
        if await self.catalog_client.exists(product_id, product_type):
            raise errors.ConflictError(
                f"ProductId: {product_id} ProductType: {product_type}, "
                "already exists in catalog"
            )

    async def _validate_no_parallel_jobs(
        self, product_id: str, product_type: str
    ) -> None:
        criteria = client_models.FindJobsCriteria(
            resource_id=product_id,
            product_type=product_type,
            types=list(self._jobs.forbidden_job_types),
        )
        jobs = await self.job_manager_client.find_jobs(criteria)
        if jobs:
            raise errors.ConflictError(
                f"ProductId: {product_id} productType: {product_type}, there is "
                "at least one conflicting job already running for that layer"
            )
