"""Shared-tier restore jobs data source (read only)."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from .client import REMOTE_CALL_ERRORS, AtlasClient
from .errors import ResourceOperationError, StateDecodeError, format_validation_errors
from .models import SharedTierRestoreJobsState, SharedTierRestoreJobState, TenantRestore

logger = logging.getLogger(__name__)

DATA_SOURCE_NAME = "shared tier restore jobs"


def _flatten(job: TenantRestore) -> SharedTierRestoreJobState:
    return SharedTierRestoreJobState(
        job_id=job.id,
        status=job.status,
        target_project_id=job.target_project_id,
        target_deployment_item_name=job.target_deployment_item_name,
        snapshot_url=job.snapshot_url,
        snapshot_id=job.snapshot_id,
        snapshot_finished_date=job.snapshot_finished_date,
        restore_scheduled_date=job.restore_scheduled_date,
        restore_finished_date=job.restore_finished_date,
        delivery_type=job.delivery_type,
        expiration_date=job.expiration_date,
    )


class SharedTierRestoreJobsDataSource:
    """Lists restore jobs of an M2/M5 cluster."""

    def __init__(self, client: AtlasClient) -> None:
        self._client = client

    def read(
        self, query: Mapping[str, Any] | SharedTierRestoreJobsState
    ) -> SharedTierRestoreJobsState:
        if not isinstance(query, SharedTierRestoreJobsState):
            try:
                query = SharedTierRestoreJobsState.model_validate(query)
            except ValidationError as e:
                raise StateDecodeError(
                    DATA_SOURCE_NAME, "\n" + format_validation_errors(e)
                ) from e

        try:
            page = self._client.list_shared_tier_restore_jobs(
                query.project_id, query.cluster_name
            )
        except REMOTE_CALL_ERRORS as e:
            raise ResourceOperationError(
                "getting", DATA_SOURCE_NAME, query.cluster_name, e
            ) from e

        logger.debug(
            "Listed restore jobs",
            extra={"cluster_name": query.cluster_name, "total_count": page.total_count},
        )
        return query.model_copy(
            update={
                # Data sources have no durable remote identity
                "id": uuid.uuid4().hex,
                "results": [_flatten(job) for job in page.results],
                "total_count": page.total_count,
            }
        )
