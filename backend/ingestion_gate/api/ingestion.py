"""Layer ingestion endpoints: new layer, layer update and job retry.

Example:
    Submit a new layer:
        >>> response = client.post("/ingestion", json=new_layer_body)
        >>> response.json()
        {'jobId': '...', 'taskId': '...'}

    Retry a failed job:
        >>> client.put(f"/ingestion/{job_id}/retry").status_code
        200
"""

from __future__ import annotations

import fastapi

from ingestion_gate.api import dependencies, schemas
from ingestion_gate.services import ingestion

router = fastapi.APIRouter(prefix="/ingestion", tags=["ingestion"])


@router.post("", response_model=schemas.ResponseIdResponse)
async def new_layer(
    body: schemas.NewLayerRequest,
    manager: ingestion.IngestionManager = fastapi.Depends(  # noqa: B008
        dependencies.get_ingestion_manager
    ),
) -> schemas.ResponseIdResponse:
    response_id = await manager.new_layer(body)
    return schemas.ResponseIdResponse.from_response_id(response_id)


@router.put("/{catalog_id}", response_model=schemas.ResponseIdResponse)
async def update_layer(
    catalog_id: str,
    body: schemas.UpdateLayerRequest,
    manager: ingestion.IngestionManager = fastapi.Depends(  # noqa: B008
        dependencies.get_ingestion_manager
    ),
) -> schemas.ResponseIdResponse:
    response_id = await manager.update_layer(catalog_id, body)
    return schemas.ResponseIdResponse.from_response_id(response_id)


@router.put("/{job_id}/retry", status_code=200)
async def retry_ingestion(
    job_id: str,
    manager: ingestion.IngestionManager = fastapi.Depends(  # noqa: B008
        dependencies.get_ingestion_manager
    ),
) -> None:
    """Reset a Failed or Suspended ingestion job back to Pending."""
    await manager.retry_ingestion(job_id)
