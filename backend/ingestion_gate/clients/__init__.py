"""Clients of the downstream services.

Each client is declared as a ``typing.Protocol`` and implemented over
``httpx.AsyncClient``. The orchestrator depends on the protocols only, so
tests substitute in-memory fakes.

Example:
    Use a client directly:
        >>> from ingestion_gate.clients import map_server
        >>> client = map_server.HttpMapServerClient(url, settings.http)
        >>> await client.exists("layer-Orthophoto")
"""
