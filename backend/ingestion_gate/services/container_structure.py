"""Structural validation of GeoPackage tile containers.

Each container must carry a tile index on (tile_column, tile_row, zoom_level),
use a 2x1 geographic tiling grid and hold tiles of a single, configured size.
Containers are checked one after the other; each one is opened read-only and
closed before the next is opened. Validation stops at the first invalid file.

Example:
    Validate the containers of a layer:
        >>> from ingestion_gate.services.container_structure import (
        ...     ContainerStructureValidator,
        ... )
        >>> validator = ContainerStructureValidator(tile_size=256)
        >>> validator.validate([Path("/layerSources/layer/a.gpkg")])
"""

from __future__ import annotations

import logging
import math
from typing import TYPE_CHECKING

from ingestion_gate.core import errors, models
from ingestion_gate.utils import geopackage

if TYPE_CHECKING:
    import pathlib
    from collections.abc import Iterable


logger = logging.getLogger(__name__)


def matrix_ratio(matrix_width: int | None, matrix_height: int | None) -> int | None:
    """Round width/height half-up; None when the matrix is empty or degenerate."""
    if not matrix_width or not matrix_height:
        return None
    return math.floor(matrix_width / matrix_height + 0.5)


def classify_grid(
    matrix_width: int | None, matrix_height: int | None
) -> models.ContainerGrid:
    """Map maximal matrix dimensions to a ContainerGrid.

    Example:
        >>> classify_grid(400, 200)
        <ContainerGrid.TWO_ON_ONE: '2X1'>
        >>> classify_grid(3, 1)
        <ContainerGrid.NOT_SUPPORTED: 'NOT_SUPPORTED'>
    """
    ratio = matrix_ratio(matrix_width, matrix_height)
    if ratio is None:
        return models.ContainerGrid.NOT_SUPPORTED
    return models.MATRIX_RATIO_TO_GRID.get(ratio, models.ContainerGrid.NOT_SUPPORTED)


class ContainerStructureValidator:
    """Check index, grid and tile size of every container file."""

    def __init__(self, tile_size: int) -> None:
        self.tile_size = tile_size

    def validate(self, container_paths: Iterable[pathlib.Path]) -> None:
        """Validate containers in order, failing on the first invalid one.

        Args:
            container_paths: Absolute paths of the container files.

        Raises:
            MissingIndexError: if a container lacks the tile index.
            UnsupportedGridError: if a container grid is not 2x1.
            UnsupportedTileSizeError: if tiles are mixed or of the wrong size.
            ContainerError: if a container cannot be read.
        """
        for path in container_paths:
            logger.debug("validating container", extra={"file_path": path})
            with geopackage.GeoPackageReader(path) as gpkg:
                table_name = gpkg.tile_table_name()
                self._validate_index(gpkg, table_name)
                self._validate_grid(gpkg, table_name)
                self._validate_tile_size(gpkg, table_name)
            logger.debug("container is valid", extra={"file_path": path})

    def _validate_index(
        self, gpkg: geopackage.GeoPackageReader, table_name: str
    ) -> None:
        if not gpkg.has_tile_index(table_name):
            message = f"GPKG index does not exist in file: {gpkg.path}"
            logger.warning(message)
            raise errors.MissingIndexError(message)

    def _validate_grid(
        self, gpkg: geopackage.GeoPackageReader, table_name: str
    ) -> None:
        width, height = gpkg.max_matrix_size(table_name)
        grid = classify_grid(width, height)
        if grid is not models.ContainerGrid.TWO_ON_ONE:
            message = (
                f"Geopackage name: {gpkg.path} grid type {grid.value} "
                f"(matrix ratio {matrix_ratio(width, height)}) is not supported "
                f"(grid should be {models.ContainerGrid.TWO_ON_ONE.value})"
            )
            logger.warning(message)
            raise errors.UnsupportedGridError(message)

    def _validate_tile_size(
        self, gpkg: geopackage.GeoPackageReader, table_name: str
    ) -> None:
        tile_sizes = gpkg.tile_sizes(table_name)
        if len(tile_sizes) != 1:
            message = (
                f"Geopackage name: {gpkg.path} must have a single tile size, "
                f"found {len(tile_sizes)}"
            )
            logger.warning(message)
            raise errors.UnsupportedTileSizeError(message)

        (tile_size,) = tile_sizes
        if tile_size.width != self.tile_size or tile_size.height != self.tile_size:
            message = (
                f"Geopackage name: {gpkg.path} tile size "
                f"{tile_size.width}x{tile_size.height} is not supported "
                f"(tile size should be {self.tile_size})"
            )
            logger.warning(message)
            raise errors.UnsupportedTileSizeError(message)
