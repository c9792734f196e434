"""Client of the service holding per-product validation entities.

The entity left behind by a previous validation run is deleted before a job
is retried. Deleting an entity that does not exist is not an error.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

from ingestion_gate.clients import base

if TYPE_CHECKING:
    import httpx

    from ingestion_gate.core import config

logger = logging.getLogger(__name__)


class ValidationEntityClientProtocol(Protocol):
    async def delete_validation_entity(
        self, product_id: str, product_type: str
    ) -> None: ...


class HttpValidationEntityClient(base.HttpServiceClient):
    def __init__(
        self,
        base_url: str,
        http: config.HttpSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("ValidationEntities", base_url, http, transport)

    async def delete_validation_entity(
        self, product_id: str, product_type: str
    ) -> None:
        response = await self.request(
            "DELETE",
            "/polygonParts/validate",
            params={"productId": product_id, "productType": product_type},
            passthrough_statuses=(404,),
        )
        if response.status_code == 404:
            logger.debug(
                "no validation entity for %s %s", product_id, product_type
            )
