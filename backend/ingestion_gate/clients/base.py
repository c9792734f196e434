"""Shared httpx plumbing for the downstream service clients.

Every client owns one lazily created ``httpx.AsyncClient`` pointed at its
service. Connection failures are retried by the transport; HTTP error
statuses and transport failures surface as ServiceError, except for the
statuses a caller declares it handles itself (typically 404).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from ingestion_gate.core import errors

if TYPE_CHECKING:
    from collections.abc import Container

    from ingestion_gate.core import config

logger = logging.getLogger(__name__)


class HttpServiceClient:
    """Base class of the httpx service clients.

    Args:
        name: Service name used in log lines and error messages.
        base_url: Root URL of the service.
        http: Retry and timeout settings.
        transport: Optional transport override, e.g. httpx.MockTransport.
    """

    def __init__(
        self,
        name: str,
        base_url: str,
        http: config.HttpSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.name = name
        self.base_url = base_url.rstrip("/")
        self.http = http
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.http.timeout_seconds),
                transport=self._transport
                or httpx.AsyncHTTPTransport(retries=self.http.retries),
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        passthrough_statuses: Container[int] = (),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and fail on unexpected statuses.

        Args:
            method: HTTP method.
            path: Path relative to the base URL.
            passthrough_statuses: Error statuses returned to the caller
                instead of raised.
            **kwargs: Passed through to httpx.

        Returns:
            The response, successful or with a passthrough status.

        Raises:
            ServiceError: on transport failure or an unexpected error status.
        """
        try:
            response = await self._get_client().request(method, path, **kwargs)
        except httpx.HTTPError as err:
            logger.error("%s %s %s failed: %s", self.name, method, path, err)
            raise errors.ServiceError(
                self.name, f"request {method} {path} failed"
            ) from err

        if response.is_error and response.status_code not in passthrough_statuses:
            logger.error(
                "%s %s %s answered %d: %s",
                self.name,
                method,
                path,
                response.status_code,
                response.text,
            )
            raise errors.ServiceError(
                self.name,
                f"request {method} {path} answered {response.status_code}",
            )
        return response
