"""Request and response schemas of the HTTP API.

Bodies are camelCase on the wire and snake_case in Python. Schema violations
are rejected by FastAPI with 422 before any handler code runs.
"""

from __future__ import annotations

import enum
from typing import Annotated

import pydantic
from pydantic import alias_generators

from ingestion_gate.core import models

PRODUCT_ID_PATTERN = r"^[A-Za-z][A-Za-z0-9_]{0,37}$"
CLASSIFICATION_PATTERN = r"^([0-9]|[1-9][0-9]|100)$"
GPKG_PATTERN = r"^.+\.[Gg][Pp][Kk][Gg]$"
SHAPEFILE_PATTERN = r"^.+\.[Ss][Hh][Pp]$"


class ProductType(enum.StrEnum):
    ORTHOPHOTO = "Orthophoto"
    ORTHOPHOTO_HISTORY = "OrthophotoHistory"
    ORTHOPHOTO_BEST = "OrthophotoBest"
    RASTER_MAP = "RasterMap"
    RASTER_MAP_BEST = "RasterMapBest"
    RASTER_AID = "RasterAid"
    RASTER_AID_BEST = "RasterAidBest"
    RASTER_VECTOR = "RasterVector"
    RASTER_VECTOR_BEST = "RasterVectorBest"


class Transparency(enum.StrEnum):
    TRANSPARENT = "TRANSPARENT"
    OPAQUE = "OPAQUE"


class ApiModel(pydantic.BaseModel):
    model_config = pydantic.ConfigDict(
        alias_generator=alias_generators.to_camel,
        populate_by_name=True,
    )


GpkgPath = Annotated[str, pydantic.StringConstraints(pattern=GPKG_PATTERN)]
ShapefilePath = Annotated[str, pydantic.StringConstraints(pattern=SHAPEFILE_PATTERN)]


class InputFiles(ApiModel):
    gpkg_files_path: list[GpkgPath] = pydantic.Field(min_length=1)
    metadata_shapefile_path: ShapefilePath
    product_shapefile_path: ShapefilePath


class SourceFiles(ApiModel):
    """Files of the stand-alone validation; shapefiles are optional there."""

    gpkg_files_path: list[GpkgPath] = pydantic.Field(min_length=1)
    metadata_shapefile_path: ShapefilePath | None = None
    product_shapefile_path: ShapefilePath | None = None


class GpkgFiles(ApiModel):
    gpkg_files_path: list[GpkgPath] = pydantic.Field(min_length=1)


class NewLayerMetadata(ApiModel):
    product_id: str = pydantic.Field(pattern=PRODUCT_ID_PATTERN)
    product_name: str = pydantic.Field(min_length=1)
    product_type: ProductType
    product_sub_type: str | None = None
    srs: str = pydantic.Field(default="4326", pattern=r"^4326$")
    srs_name: str = "WGS84GEO"
    transparency: Transparency
    region: list[str] = pydantic.Field(min_length=1)
    classification: str = pydantic.Field(pattern=CLASSIFICATION_PATTERN)
    producer_name: str | None = None
    scale: int | None = pydantic.Field(default=None, ge=0, le=100_000_000)
    description: str | None = None


class UpdateLayerMetadata(ApiModel):
    classification: str = pydantic.Field(pattern=CLASSIFICATION_PATTERN)
    description: str | None = None


class NewLayerRequest(ApiModel):
    metadata: NewLayerMetadata
    input_files: InputFiles
    ingestion_resolution: float = pydantic.Field(gt=0, le=0.703125)
    callback_urls: list[pydantic.AnyUrl] | None = None


class UpdateLayerRequest(ApiModel):
    metadata: UpdateLayerMetadata
    input_files: InputFiles
    ingestion_resolution: float = pydantic.Field(gt=0, le=0.703125)
    callback_urls: list[pydantic.AnyUrl] | None = None


class ValidationOutcomeResponse(ApiModel):
    is_valid: bool
    message: str

    @classmethod
    def from_outcome(
        cls, outcome: models.ValidationOutcome
    ) -> ValidationOutcomeResponse:
        return cls(is_valid=outcome.is_valid, message=outcome.message)


class ResponseIdResponse(ApiModel):
    job_id: str
    task_id: str

    @classmethod
    def from_response_id(cls, response_id: models.ResponseId) -> ResponseIdResponse:
        return cls(job_id=response_id.job_id, task_id=response_id.task_id)


class RasterInfoResponse(ApiModel):
    crs: int
    pixel_size: float
    file_format: str
    extent_polygon: dict[str, object]
    gpkg_file_path: str
