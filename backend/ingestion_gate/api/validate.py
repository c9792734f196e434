"""Stand-alone source validation and source info endpoints.

Example:
    Validate containers before submitting a layer:
        >>> response = client.post(
        ...     "/ingestion/validate/gpkgs",
        ...     json={"gpkgFilesPath": ["layer/a.gpkg"]},
        ... )
        >>> response.json()
        {'isValid': True, 'message': 'Sources are valid'}
"""

from __future__ import annotations

import fastapi
from shapely import geometry

from ingestion_gate.api import dependencies, schemas
from ingestion_gate.services import source_validation
from ingestion_gate.utils import paths

router = fastapi.APIRouter(tags=["validation"])


@router.post(
    "/ingestion/validate/gpkgs",
    response_model=schemas.ValidationOutcomeResponse,
)
async def validate_sources(
    body: schemas.SourceFiles,
    pipeline: source_validation.SourceValidationPipeline = fastapi.Depends(  # noqa: B008
        dependencies.get_source_pipeline
    ),
) -> schemas.ValidationOutcomeResponse:
    """Validate container files, and shapefile bundles when given.

    Unsupported sources are reported in the body with ``isValid`` false;
    missing files answer 404.
    """
    input_files = paths.resolve_input_files(
        pipeline.settings.layer_source_dir,
        body.gpkg_files_path,
        body.metadata_shapefile_path,
        body.product_shapefile_path,
    )
    outcome = await pipeline.validate_and_report(input_files)
    return schemas.ValidationOutcomeResponse.from_outcome(outcome)


@router.post("/info/gpkgs", response_model=list[schemas.RasterInfoResponse])
async def get_sources_info(
    body: schemas.GpkgFiles,
    pipeline: source_validation.SourceValidationPipeline = fastapi.Depends(  # noqa: B008
        dependencies.get_source_pipeline
    ),
) -> list[schemas.RasterInfoResponse]:
    """Report the raster metadata of container files without validating it."""
    gpkg_files = [
        paths.resolve_path(pipeline.settings.layer_source_dir, path)
        for path in body.gpkg_files_path
    ]
    infos = await pipeline.get_info(gpkg_files)
    return [
        schemas.RasterInfoResponse(
            crs=info.crs,
            pixel_size=info.pixel_size,
            file_format=info.file_format,
            extent_polygon=geometry.mapping(info.extent_polygon),
            gpkg_file_path=gpkg_file.relative,
        )
        for info, gpkg_file in zip(infos, gpkg_files, strict=True)
    ]
