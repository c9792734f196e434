"""Layer catalog client."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

from ingestion_gate.clients import base
from ingestion_gate.clients import models as client_models

if TYPE_CHECKING:
    import httpx

    from ingestion_gate.core import config


class CatalogClientProtocol(Protocol):
    async def find_by_id(self, catalog_id: str) -> list[client_models.CatalogEntry]: ...

    async def find_by_criteria(
        self, product_id: str, product_type: str
    ) -> list[client_models.CatalogEntry]: ...

    async def exists(self, product_id: str, product_type: str) -> bool: ...


class HttpCatalogClient(base.HttpServiceClient):
    """Query catalog records through ``POST /records/find``."""

    def __init__(
        self,
        base_url: str,
        http: config.HttpSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("Catalog", base_url, http, transport)

    async def _find(self, body: dict[str, object]) -> list[client_models.CatalogEntry]:
        response = await self.request("POST", "/records/find", json=body)
        return [
            client_models.CatalogEntry.model_validate(record)
            for record in response.json()
        ]

    async def find_by_id(self, catalog_id: str) -> list[client_models.CatalogEntry]:
        return await self._find({"id": catalog_id})

    async def find_by_criteria(
        self, product_id: str, product_type: str
    ) -> list[client_models.CatalogEntry]:
        return await self._find(
            {"metadata": {"productId": product_id, "productType": product_type}}
        )

    async def exists(self, product_id: str, product_type: str) -> bool:
        return len(await self.find_by_criteria(product_id, product_type)) > 0
