"""Spatial correlation between raster extents and the product footprint.

The extents of every container are unioned into a single coverage, widened by
a tolerance in meters, and the product footprint must lie inside the result.
Buffering happens in a local azimuthal equidistant projection centered on the
coverage, so the tolerance is a true ground distance at any latitude.

Example:
    Check a footprint against the extracted raster infos:
        >>> from ingestion_gate.services.geometry import GeometryCorrelator
        >>> correlator = GeometryCorrelator(extent_buffer_meters=50.0)
        >>> correlator.validate(infos, footprint)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import pyproj
import pyproj.exceptions
import shapely
import shapely.errors
from shapely import geometry, ops

from ingestion_gate.core import errors

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from shapely.geometry.base import BaseGeometry

    from ingestion_gate.core import models

logger = logging.getLogger(__name__)

WGS84 = pyproj.CRS.from_epsg(4326)
WORLD_BOUNDS = geometry.box(-180.0, -90.0, 180.0, 90.0)
# The inverse azimuthal equidistant projection is undefined near the antipode.
MAX_LOCAL_RADIUS_METERS = 19_900_000.0


def combine_extents(raster_infos: Iterable[models.RasterInfo]) -> BaseGeometry:
    """Union the extent polygons of every container into one coverage."""
    return ops.unary_union([info.extent_polygon for info in raster_infos])


def buffer_meters(geom: BaseGeometry, distance: float) -> BaseGeometry:
    """Buffer a WGS84 geometry outward by a distance in meters.

    The result always covers ``geom`` and is clipped to the longitude and
    latitude range of the world, so coverages touching the antimeridian or a
    pole stay valid.

    Args:
        geom: Geometry in longitude/latitude.
        distance: Buffer distance in meters.

    Returns:
        Buffered geometry in longitude/latitude.

    Raises:
        CorrelationError: if the projection fails or the result is empty or
            invalid.
    """
    if geom.is_empty:
        raise errors.CorrelationError("Cannot buffer an empty raster extent")

    center = geom.centroid
    try:
        local = pyproj.CRS.from_proj4(
            f"+proj=aeqd +lat_0={center.y} +lon_0={center.x} "
            "+datum=WGS84 +units=m +no_defs"
        )
        to_local = pyproj.Transformer.from_crs(WGS84, local, always_xy=True)
        to_wgs84 = pyproj.Transformer.from_crs(local, WGS84, always_xy=True)
        projected = shapely.transform(geom, to_local.transform, interleaved=False)
        local_buffer = projected.buffer(distance).intersection(
            geometry.Point(0.0, 0.0).buffer(MAX_LOCAL_RADIUS_METERS)
        )
        unprojected = shapely.transform(
            local_buffer,
            _unwrapped_inverse(to_wgs84, center.x),
            interleaved=False,
        )
        buffered = (
            shapely.make_valid(unprojected).union(geom).intersection(WORLD_BOUNDS)
        )
    except (pyproj.exceptions.ProjError, shapely.errors.GEOSException) as err:
        logger.error("failed to buffer raster extent: %s", err)
        raise errors.CorrelationError(
            "Failed to buffer the combined raster extent"
        ) from err

    if buffered.is_empty or not buffered.is_valid:
        raise errors.CorrelationError(
            "Buffering the combined raster extent produced an invalid geometry"
        )
    return buffered


def _unwrapped_inverse(
    to_wgs84: pyproj.Transformer, center_lon: float
) -> Callable[[Any, Any], tuple[Any, Any]]:
    """Inverse projection keeping longitudes within 180 degrees of the center.

    Points buffered past the antimeridian come back as e.g. 180.0005 instead
    of -179.9995, so rings stay continuous until they are clipped.
    """

    def inverse(x: Any, y: Any) -> tuple[Any, Any]:
        lon, lat = to_wgs84.transform(x, y)
        return (lon - center_lon + 180.0) % 360.0 - 180.0 + center_lon, lat

    return inverse


class GeometryCorrelator:
    """Require the product footprint to lie within the raster coverage."""

    def __init__(self, extent_buffer_meters: float) -> None:
        self.extent_buffer_meters = extent_buffer_meters

    def validate(
        self,
        raster_infos: Iterable[models.RasterInfo],
        footprint: geometry.Polygon | geometry.MultiPolygon,
    ) -> None:
        """Check the footprint against the buffered union of raster extents.

        A MultiPolygon is rejected as soon as one of its parts falls outside.

        Raises:
            CorrelationError: if the coverage cannot be buffered.
            FootprintNotContainedError: if the footprint is not contained.
        """
        extent = combine_extents(raster_infos)
        buffered_extent = buffer_meters(extent, self.extent_buffer_meters)

        if isinstance(footprint, geometry.MultiPolygon):
            for index, part in enumerate(footprint.geoms):
                if not _is_contained(part, extent, buffered_extent):
                    logger.warning(
                        "footprint part %d is outside the raster extent", index
                    )
                    raise errors.FootprintNotContainedError(
                        f"polygon part {index} is outside the extent"
                    )
            return

        if not _is_contained(footprint, extent, buffered_extent):
            logger.warning("footprint is outside the raster extent")
            raise errors.FootprintNotContainedError()


def _is_contained(
    polygon: BaseGeometry,
    extent: BaseGeometry,
    buffered_extent: BaseGeometry,
) -> bool:
    return buffered_extent.contains(polygon) or extent.contains(polygon)
