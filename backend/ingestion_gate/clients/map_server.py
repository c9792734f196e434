"""Map server client, used only to ask whether a layer is already served."""

from __future__ import annotations

import urllib.parse
from typing import TYPE_CHECKING, Protocol

from ingestion_gate.clients import base

if TYPE_CHECKING:
    import httpx

    from ingestion_gate.core import config


class MapServerClientProtocol(Protocol):
    async def exists(self, layer_name: str) -> bool: ...


class HttpMapServerClient(base.HttpServiceClient):
    def __init__(
        self,
        base_url: str,
        http: config.HttpSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("MapServer", base_url, http, transport)

    async def exists(self, layer_name: str) -> bool:
        """Return False when the map server answers 404 for the layer."""
        response = await self.request(
            "GET",
            f"/layer/{urllib.parse.quote(layer_name, safe='')}",
            passthrough_statuses=(404,),
        )
        return response.status_code != 404
