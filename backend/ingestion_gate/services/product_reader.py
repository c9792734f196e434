"""Reading the product footprint out of the product shapefile bundle."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import geopandas as gpd
from fastapi import concurrency
from shapely import geometry

from ingestion_gate.core import errors

if TYPE_CHECKING:
    import pathlib

logger = logging.getLogger(__name__)

ProductGeometry = geometry.Polygon | geometry.MultiPolygon


class ProductShapefileReader:
    """Return the single Polygon or MultiPolygon a product shapefile holds."""

    def read_sync(self, shapefile_path: pathlib.Path) -> ProductGeometry:
        """Read the product footprint.

        Args:
            shapefile_path: Absolute path of the product .shp file.

        Returns:
            The footprint geometry in WGS84.

        Raises:
            ValidationError: if the file cannot be read, holds anything other
                than one feature, or its geometry is not a (Multi)Polygon.
        """
        try:
            frame = gpd.read_file(shapefile_path)
        except (OSError, RuntimeError, ValueError) as err:
            logger.error(
                "failed to read product shapefile: %s",
                err,
                extra={"file_path": shapefile_path},
            )
            raise errors.ValidationError(
                f"Failed to read product shapefile: {shapefile_path}"
            ) from err

        if len(frame) > 1:
            raise errors.ValidationError(
                "product shapefile contains more than a single feature"
            )
        if len(frame) == 0:
            raise errors.ValidationError("product shapefile contains no features")

        if frame.crs is not None and frame.crs.to_epsg() != 4326:
            frame = frame.to_crs(4326)

        footprint = frame.geometry.iloc[0]
        if not isinstance(footprint, (geometry.Polygon, geometry.MultiPolygon)):
            geom_type = footprint.geom_type if footprint is not None else None
            raise errors.ValidationError(
                f"product geometry must be a Polygon or MultiPolygon, got {geom_type}"
            )
        logger.debug(
            "read product footprint %s",
            footprint.geom_type,
            extra={"file_path": shapefile_path},
        )
        return footprint

    async def read(self, shapefile_path: pathlib.Path) -> ProductGeometry:
        return await concurrency.run_in_threadpool(self.read_sync, shapefile_path)
