"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings cover the
layer source mount, raster validation limits, job queue vocabulary, the
downstream service URLs and the HTTP client behaviour.

Settings are frozen once constructed; every component receives the same
instance through its constructor and never mutates it.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from ingestion_gate.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.validation.tile_size)

    Nested values are overridden with a double underscore:
        >>> LAYER_SOURCE_DIR=/mnt/layerSources
        >>> VALIDATION__CRS=[4326]
        >>> JOB_MANAGER__URL=http://job-manager:8080
"""

from __future__ import annotations

import functools
import pathlib

import pydantic
import pydantic_settings

# Degrees per pixel of a 256px tile at zoom 0 on a 2x1 geographic grid.
_ZOOM_ZERO_RESOLUTION_DEG = 180 / 256
_MAX_ZOOM_LEVEL = 22


def zoom_level_to_resolution_deg(zoom_level: int) -> float:
    """Return the pixel resolution in degrees for a zoom level."""
    return _ZOOM_ZERO_RESOLUTION_DEG / 2**zoom_level


class PixelSizeRange(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    min: float = zoom_level_to_resolution_deg(_MAX_ZOOM_LEVEL)
    max: float = zoom_level_to_resolution_deg(0)


class ValidationSettings(pydantic.BaseModel):
    """Limits a source raster must satisfy to be accepted.

    Attributes:
        crs: Allowed EPSG codes.
        file_formats: Allowed GDAL driver short names (case-insensitive).
        tile_size: Required tile width and height in pixels.
        extent_buffer_meters: Tolerance added around the combined raster
            extent before testing the product footprint.
        pixel_size_range: Inclusive pixel size range in degrees.
        shapefile_extensions: Sidecar files making up a shapefile bundle.
    """

    model_config = pydantic.ConfigDict(frozen=True)

    crs: list[int] = [4326]
    file_formats: list[str] = ["GPKG"]
    tile_size: int = 256
    extent_buffer_meters: float = 50.0
    pixel_size_range: PixelSizeRange = PixelSizeRange()
    shapefile_extensions: list[str] = [".cpg", ".dbf", ".prj", ".shp", ".shx"]


class SwapType(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    product_type: str
    product_sub_type: str


class JobManagerSettings(pydantic.BaseModel):
    """Job queue endpoint and the job/task vocabulary used on it."""

    model_config = pydantic.ConfigDict(frozen=True)

    url: str = "http://localhost:8081"
    job_domain: str = "RASTER"
    ingestion_new_job_type: str = "Ingestion_New"
    ingestion_update_job_type: str = "Ingestion_Update"
    ingestion_swap_update_job_type: str = "Ingestion_Swap_Update"
    validation_task_type: str = "validation"
    forbidden_job_types: list[str] = [
        "Ingestion_New",
        "Ingestion_Update",
        "Ingestion_Swap_Update",
        "Export",
    ]
    supported_swap_types: list[SwapType] = [
        SwapType(product_type="RasterVectorBest", product_sub_type="testSubType"),
    ]


class ServicesSettings(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    catalog_url: str = "http://localhost:8082"
    map_server_url: str = "http://localhost:8083"
    validation_entity_url: str = "http://localhost:8084"
    job_tracker_url: str = "http://localhost:8085"


class HttpSettings(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(frozen=True)

    retries: int = 3
    timeout_seconds: float = 30.0


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    The instance is immutable after construction.

    Attributes:
        layer_source_dir: Mount all relative input paths are resolved against.
        validation: Raster and container validation limits.
        job_manager: Job queue URL and job/task types.
        services: URLs of the catalog, map server, validation entity
            service and job tracker.
        http: Retry count and timeout shared by the service clients.
        fingerprint_algorithm: Digest used for sidecar fingerprints.
        log_level: Root log level.
        allow_origins: List of allowed CORS origins (["*"] allows all).
    """

    layer_source_dir: pathlib.Path = pathlib.Path("/layerSources")
    validation: ValidationSettings = ValidationSettings()
    job_manager: JobManagerSettings = JobManagerSettings()
    services: ServicesSettings = ServicesSettings()
    http: HttpSettings = HttpSettings()
    fingerprint_algorithm: str = "XXH64"
    log_level: str = "INFO"
    allow_origins: list[str] = ["*"]

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        frozen=True,
    )


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Subsequent calls return the same
    cached instance.

    Returns:
        Settings instance with all configuration values populated.
    """
    return Settings()
