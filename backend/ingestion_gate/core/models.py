"""Domain data models used across validation and orchestration.

This module defines the value types flowing between the validators and the
orchestrator. Request and wire schemas live in ``ingestion_gate.api.schemas``
and ``ingestion_gate.clients.models``; the types here are plain dataclasses
with no transport concerns.

Example:
    Pairing a relative input path with its resolved form:
        >>> from pathlib import Path
        >>> from ingestion_gate.core.models import ResolvedPath
        >>> path = ResolvedPath(
        ...     relative="layer/a.gpkg",
        ...     absolute=Path("/layerSources/layer/a.gpkg"),
        ... )

    Describing one container's raster metadata:
        >>> from shapely.geometry import box
        >>> info = RasterInfo(
        ...     crs=4326,
        ...     pixel_size=0.0000429,
        ...     file_format="GPKG",
        ...     extent_polygon=box(34.0, 31.0, 35.0, 32.0),
        ...     file_path=Path("/layerSources/layer/a.gpkg"),
        ... )
"""

from __future__ import annotations

import dataclasses
import enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import pathlib

    from shapely.geometry import Polygon


class ContainerGrid(enum.StrEnum):
    """Global tiling topology of a container, from its matrix ratio."""

    ONE_ON_ONE = "1X1"
    TWO_ON_ONE = "2X1"
    NOT_SUPPORTED = "NOT_SUPPORTED"


MATRIX_RATIO_TO_GRID: dict[int, ContainerGrid] = {
    1: ContainerGrid.ONE_ON_ONE,
    2: ContainerGrid.TWO_ON_ONE,
}


@dataclasses.dataclass(frozen=True)
class TileSize:
    width: int
    height: int


@dataclasses.dataclass(frozen=True)
class RasterInfo:
    """Raster metadata of a single container file.

    Attributes:
        crs: EPSG code of the raster.
        pixel_size: Pixel width taken from the geo-transform.
        file_format: GDAL driver short name, e.g. "GPKG".
        extent_polygon: Geographic (WGS84) extent of the raster.
        file_path: Absolute path of the container the values came from.
    """

    crs: int
    pixel_size: float
    file_format: str
    extent_polygon: Polygon
    file_path: pathlib.Path


@dataclasses.dataclass(frozen=True)
class FileFingerprint:
    """Content digest of one file.

    Attributes:
        algorithm: Digest algorithm name, e.g. "XXH64".
        checksum: Hexadecimal digest.
        file_name: Path of the file relative to the source mount.
    """

    algorithm: str
    checksum: str
    file_name: str

    def to_dict(self) -> dict[str, str]:
        return {
            "algorithm": self.algorithm,
            "checksum": self.checksum,
            "fileName": self.file_name,
        }


@dataclasses.dataclass(frozen=True)
class ValidationOutcome:
    is_valid: bool
    message: str

    def to_dict(self) -> dict[str, object]:
        return {"isValid": self.is_valid, "message": self.message}


@dataclasses.dataclass(frozen=True)
class ResolvedPath:
    """One input path in both of its forms.

    The relative form is what gets persisted in the job; the absolute form is
    what gets opened. Callers pick one form per operation.
    """

    relative: str
    absolute: pathlib.Path


@dataclasses.dataclass(frozen=True)
class InputFilePaths:
    """Container files plus the two shapefile bundles of one layer.

    The shapefile bundles are optional only for the stand-alone source
    validation, which may be asked about container files alone.
    """

    gpkg_files: tuple[ResolvedPath, ...]
    metadata_shapefile: ResolvedPath | None = None
    product_shapefile: ResolvedPath | None = None

    def relative(self) -> dict[str, object]:
        """Return the wire form of the input files, relative paths only."""
        result: dict[str, object] = {
            "gpkgFilesPath": [path.relative for path in self.gpkg_files],
        }
        if self.metadata_shapefile is not None:
            result["metadataShapefilePath"] = self.metadata_shapefile.relative
        if self.product_shapefile is not None:
            result["productShapefilePath"] = self.product_shapefile.relative
        return result


@dataclasses.dataclass(frozen=True)
class ResponseId:
    job_id: str
    task_id: str

    def to_dict(self) -> dict[str, str]:
        return {"jobId": self.job_id, "taskId": self.task_id}
