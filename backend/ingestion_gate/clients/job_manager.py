"""Job queue client.

The job queue owns ingestion jobs and their tasks. The gateway creates jobs,
reads them back on retry, looks for competing jobs and resets job and task
status through the queue's update contract.

Example:
    Create a job and read it back:
        >>> from ingestion_gate.clients.job_manager import HttpJobManagerClient
        >>> client = HttpJobManagerClient(settings.job_manager.url, settings.http)
        >>> created = await client.create_job(payload)
        >>> job = await client.get_job(created.id)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

from ingestion_gate.clients import base
from ingestion_gate.clients import models as client_models
from ingestion_gate.core import errors

if TYPE_CHECKING:
    import httpx

    from ingestion_gate.core import config

logger = logging.getLogger(__name__)


class JobManagerClientProtocol(Protocol):
    async def create_job(
        self, payload: dict[str, Any]
    ) -> client_models.CreateJobResponse: ...

    async def get_job(self, job_id: str) -> client_models.Job: ...

    async def get_tasks_for_job(self, job_id: str) -> list[client_models.Task]: ...

    async def update_job(self, job_id: str, patch: dict[str, Any]) -> None: ...

    async def update_task(
        self, job_id: str, task_id: str, patch: dict[str, Any]
    ) -> None: ...

    async def find_jobs(
        self, criteria: client_models.FindJobsCriteria
    ) -> list[client_models.Job]: ...


class HttpJobManagerClient(base.HttpServiceClient):
    """httpx implementation of JobManagerClientProtocol."""

    def __init__(
        self,
        base_url: str,
        http: config.HttpSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__("JobManager", base_url, http, transport)

    async def create_job(
        self, payload: dict[str, Any]
    ) -> client_models.CreateJobResponse:
        response = await self.request("POST", "/jobs", json=payload)
        return client_models.CreateJobResponse.model_validate(response.json())

    async def get_job(self, job_id: str) -> client_models.Job:
        response = await self.request(
            "GET",
            f"/jobs/{job_id}",
            params={"shouldReturnTasks": "false"},
            passthrough_statuses=(404,),
        )
        if response.status_code == 404:
            raise errors.NotFoundError(f"Job with id: {job_id} was not found")
        return client_models.Job.model_validate(response.json())

    async def get_tasks_for_job(self, job_id: str) -> list[client_models.Task]:
        response = await self.request(
            "GET", f"/jobs/{job_id}/tasks", passthrough_statuses=(404,)
        )
        if response.status_code == 404:
            raise errors.NotFoundError(f"Job with id: {job_id} was not found")
        return [client_models.Task.model_validate(task) for task in response.json()]

    async def update_job(self, job_id: str, patch: dict[str, Any]) -> None:
        await self.request("PUT", f"/jobs/{job_id}", json=patch)

    async def update_task(
        self, job_id: str, task_id: str, patch: dict[str, Any]
    ) -> None:
        await self.request("PUT", f"/jobs/{job_id}/tasks/{task_id}", json=patch)

    async def find_jobs(
        self, criteria: client_models.FindJobsCriteria
    ) -> list[client_models.Job]:
        response = await self.request(
            "POST",
            "/jobs/find",
            json=criteria.model_dump(mode="json", by_alias=True),
        )
        return [client_models.Job.model_validate(job) for job in response.json()]
