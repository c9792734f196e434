"""Raster metadata extraction and validation for source containers.

Containers are opened with rio-tiler's Reader (rasterio and GDAL underneath).
The driver short name, EPSG code, pixel width and WGS84 footprint of every
container are collected into RasterInfo values, then checked against the
configured CRS allow-list, format allow-list and pixel size range.

Example:
    Extract and validate the containers of a layer:
        >>> from ingestion_gate.core.config import get_settings
        >>> from ingestion_gate.services.raster_metadata import (
        ...     RasterMetadataExtractor,
        ... )
        >>> extractor = RasterMetadataExtractor(get_settings().validation)
        >>> infos = await extractor.extract_many(
        ...     [Path("/layerSources/layer/a.gpkg")]
        ... )
        >>> extractor.validate(infos)
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

import rasterio.errors
import rio_tiler.errors as rio_tiler_errors
import rio_tiler.io as rio_tiler_io
from fastapi import concurrency
from shapely import geometry

from ingestion_gate.core import errors, models
from ingestion_gate.utils import concurrency as gate_concurrency

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable

    from ingestion_gate.core import config

logger = logging.getLogger(__name__)

PIXEL_SIZE_TOLERANCE = 1e-9

_READ_ERRORS = (
    rasterio.errors.RasterioError,
    rio_tiler_errors.RioTilerError,
    OSError,
    ValueError,
)


def read_raster_info(container_path: pathlib.Path) -> models.RasterInfo:
    """Read the raster metadata of one container synchronously.

    Args:
        container_path: Absolute path of the container.

    Returns:
        RasterInfo describing the container.

    Raises:
        RasterInfoError: if the file cannot be opened or has no EPSG code.
    """
    try:
        with rio_tiler_io.Reader(input=str(container_path)) as src:
            epsg = src.crs.to_epsg() if src.crs is not None else None
            file_format = src.dataset.driver
            pixel_size = src.transform.a
            extent = geometry.box(*src.geographic_bounds)
    except _READ_ERRORS as err:
        logger.error(
            "failed to read raster info: %s",
            err,
            extra={"file_path": container_path},
        )
        raise errors.RasterInfoError(
            f"Failed to get raster info for file: {container_path}"
        ) from err

    if epsg is None:
        raise errors.RasterInfoError(
            f"Unable to determine EPSG code of file: {container_path}"
        )

    return models.RasterInfo(
        crs=int(epsg),
        pixel_size=float(pixel_size),
        file_format=str(file_format),
        extent_polygon=extent,
        file_path=container_path,
    )


class RasterMetadataExtractor:
    """Collect and validate RasterInfo for a set of containers."""

    def __init__(self, validation: config.ValidationSettings) -> None:
        self.validation = validation

    async def extract(self, container_path: pathlib.Path) -> models.RasterInfo:
        return await concurrency.run_in_threadpool(read_raster_info, container_path)

    async def extract_many(
        self, container_paths: Iterable[pathlib.Path]
    ) -> list[models.RasterInfo]:
        """Extract every container concurrently; the first failure wins."""
        return await gate_concurrency.gather_fail_fast(
            self.extract(path) for path in container_paths
        )

    def validate(self, raster_infos: Iterable[models.RasterInfo]) -> None:
        """Check every RasterInfo against the configured limits.

        Raises:
            RasterInfoError: on the first CRS, format or pixel size violation,
                naming the value and the file.
        """
        for info in raster_infos:
            self._validate_crs(info)
            self._validate_file_format(info)
            self._validate_pixel_size(info)

    def _validate_crs(self, info: models.RasterInfo) -> None:
        if info.crs not in self.validation.crs:
            raise errors.RasterInfoError(
                f"Unsupported crs: {info.crs}, must have valid crs: "
                f"{self.validation.crs} in file: {info.file_path}"
            )

    def _validate_file_format(self, info: models.RasterInfo) -> None:
        allowed = {file_format.upper() for file_format in self.validation.file_formats}
        if info.file_format.upper() not in allowed:
            raise errors.RasterInfoError(
                f"Unsupported file format: {info.file_format}, must have valid "
                f"file format: {self.validation.file_formats} in file: "
                f"{info.file_path}"
            )

    def _validate_pixel_size(self, info: models.RasterInfo) -> None:
        if not pixel_size_in_range(
            info.pixel_size,
            self.validation.pixel_size_range.min,
            self.validation.pixel_size_range.max,
        ):
            raise errors.RasterInfoError(
                f"Unsupported pixel size: {info.pixel_size}, must be between "
                f"{self.validation.pixel_size_range.min} and "
                f"{self.validation.pixel_size_range.max} in file: {info.file_path}"
            )


def pixel_size_in_range(pixel_size: float, minimum: float, maximum: float) -> bool:
    """Inclusive range check with a relative tolerance at both bounds.

    Example:
        >>> pixel_size_in_range(0.5, 0.1, 0.5)
        True
        >>> pixel_size_in_range(0.6, 0.1, 0.5)
        False
    """
    if math.isclose(pixel_size, minimum, rel_tol=PIXEL_SIZE_TOLERANCE):
        return True
    if math.isclose(pixel_size, maximum, rel_tol=PIXEL_SIZE_TOLERANCE):
        return True
    return minimum < pixel_size < maximum
