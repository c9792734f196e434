"""Explicit composition of the gateway components.

build_ingestion_manager() wires validators, readers, the fingerprinter and
the httpx service clients from one Settings instance. The application factory
builds the manager once and keeps it on ``app.state``; route handlers receive
it through the FastAPI dependencies below, which tests override with
``app.dependency_overrides``.

Example:
    Build the components outside of FastAPI:
        >>> from ingestion_gate.api.dependencies import build_ingestion_manager
        >>> from ingestion_gate.core.config import get_settings
        >>> manager = build_ingestion_manager(get_settings())
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import fastapi

from ingestion_gate.clients import (
    base,
    catalog,
    job_manager,
    map_server,
    validation_entities,
)
from ingestion_gate.services import (
    container_structure,
    fingerprint,
    geometry,
    ingestion,
    product_reader,
    raster_metadata,
    source_validation,
)

if TYPE_CHECKING:
    from ingestion_gate.core import config


def build_source_pipeline(
    settings: config.Settings,
) -> source_validation.SourceValidationPipeline:
    return source_validation.SourceValidationPipeline(
        settings,
        raster_metadata.RasterMetadataExtractor(settings.validation),
        container_structure.ContainerStructureValidator(
            settings.validation.tile_size
        ),
    )


def build_ingestion_manager(settings: config.Settings) -> ingestion.IngestionManager:
    """Compose an IngestionManager from settings.

    Args:
        settings: Application settings.

    Returns:
        IngestionManager backed by httpx service clients.
    """
    return ingestion.IngestionManager(
        settings=settings,
        pipeline=build_source_pipeline(settings),
        product_reader=product_reader.ProductShapefileReader(),
        correlator=geometry.GeometryCorrelator(
            settings.validation.extent_buffer_meters
        ),
        fingerprinter=fingerprint.ContentFingerprinter(
            settings.fingerprint_algorithm
        ),
        job_manager_client=job_manager.HttpJobManagerClient(
            settings.job_manager.url, settings.http
        ),
        catalog_client=catalog.HttpCatalogClient(
            settings.services.catalog_url, settings.http
        ),
        map_server_client=map_server.HttpMapServerClient(
            settings.services.map_server_url, settings.http
        ),
        validation_entity_client=validation_entities.HttpValidationEntityClient(
            settings.services.validation_entity_url, settings.http
        ),
    )


async def close_ingestion_manager(manager: ingestion.IngestionManager) -> None:
    """Close the httpx clients held by a manager."""
    for client in (
        manager.job_manager_client,
        manager.catalog_client,
        manager.map_server_client,
        manager.validation_entity_client,
    ):
        if isinstance(client, base.HttpServiceClient):
            await client.close()


def get_ingestion_manager(request: fastapi.Request) -> ingestion.IngestionManager:
    return request.app.state.ingestion_manager


def get_source_pipeline(
    request: fastapi.Request,
) -> source_validation.SourceValidationPipeline:
    return request.app.state.ingestion_manager.pipeline
