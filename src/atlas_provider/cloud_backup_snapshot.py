"""On-demand cloud backup snapshot resource.

Taking a snapshot is asynchronous on the Atlas side. Creation therefore
waits twice: first for the cluster to be IDLE (Atlas refuses snapshots
while a cluster is changing), then for the snapshot itself to finish.
Every input forces a new snapshot, so update only accepts an unchanged plan.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime
from typing import Any

from .client import REMOTE_CALL_ERRORS, is_not_found
from .config import WaitConfig
from .errors import AtlasProviderError
from .handler_base import ResourceHandler
from .identifiers import split_snapshot_import_id
from .models import (
    CloudBackupSnapshotState,
    CloudProviderSnapshot,
    Cluster,
    SnapshotMemberState,
    StateModel,
)
from .waiter import STATUS_DELETED, RefreshFunc, StateChangeWaiter

logger = logging.getLogger(__name__)

CLUSTER_PENDING_STATES = ("CREATING", "UPDATING", "REPAIRING", "REPEATING")
CLUSTER_TARGET_STATES = ("IDLE",)

SNAPSHOT_PENDING_STATES = ("queued", "inProgress")
SNAPSHOT_TARGET_STATES = ("completed", "failed")
SNAPSHOT_FAILED = "failed"

SECONDS_PER_DAY = 24 * 60 * 60


class SnapshotFailedError(AtlasProviderError):
    """Raised when Atlas reports a snapshot as failed."""

    def __init__(self, snapshot_id: str) -> None:
        self.snapshot_id = snapshot_id
        super().__init__(f"snapshot {snapshot_id} failed")


def _retention_days(snapshot: CloudProviderSnapshot) -> int:
    """Retention of an existing snapshot, derived from its timestamps if needed."""
    if snapshot.retention_in_days:
        return snapshot.retention_in_days
    if snapshot.created_at and snapshot.expires_at:
        try:
            created = datetime.fromisoformat(snapshot.created_at)
            expires = datetime.fromisoformat(snapshot.expires_at)
        except ValueError:
            logger.warning(
                "Unparseable snapshot timestamps",
                extra={"snapshot_id": snapshot.id},
            )
        else:
            return max(1, round((expires - created).total_seconds() / SECONDS_PER_DAY))
    return 1


class CloudBackupSnapshotHandler(ResourceHandler[CloudBackupSnapshotState]):
    """Create/read/delete/import for cluster backup snapshots."""

    resource_name = "cloud backup snapshot"
    state_model = CloudBackupSnapshotState
    id_keys = ("cluster_name", "project_id", "snapshot_id")

    def requires_replace(
        self, plan: CloudBackupSnapshotState, state: CloudBackupSnapshotState
    ) -> bool:
        return plan.requires_replace(state)

    # -------------------------------------------------------------------------
    # Waits
    # -------------------------------------------------------------------------

    def _waiter(
        self,
        wait: WaitConfig,
        *,
        pending: tuple[str, ...],
        target: tuple[str, ...],
        refresh: RefreshFunc,
        description: str,
    ) -> StateChangeWaiter:
        return StateChangeWaiter(
            pending=pending,
            target=target,
            refresh=refresh,
            timeout_seconds=wait.timeout_seconds,
            poll_interval_seconds=wait.poll_interval_seconds,
            delay_seconds=wait.delay_seconds,
            description=description,
            sleep=self._sleep,
        )

    def _cluster_refresh(self, project_id: str, cluster_name: str) -> RefreshFunc:
        def refresh() -> tuple[Cluster | None, str]:
            try:
                cluster = self._client.get_cluster(project_id, cluster_name)
            except REMOTE_CALL_ERRORS as e:
                if is_not_found(e):
                    return None, STATUS_DELETED
                raise
            return cluster, cluster.state_name or ""

        return refresh

    def _snapshot_refresh(
        self, project_id: str, cluster_name: str, snapshot_id: str
    ) -> RefreshFunc:
        def refresh() -> tuple[CloudProviderSnapshot | None, str]:
            try:
                snapshot = self._client.get_snapshot(project_id, cluster_name, snapshot_id)
            except REMOTE_CALL_ERRORS as e:
                if is_not_found(e):
                    return None, STATUS_DELETED
                raise
            if snapshot.status == SNAPSHOT_FAILED:
                raise SnapshotFailedError(snapshot_id)
            return snapshot, snapshot.status or ""

        return refresh

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def create(self, plan: Mapping[str, Any] | StateModel) -> CloudBackupSnapshotState:
        plan = self.decode(plan, plan=True)
        project_id, cluster_name = plan.project_id, plan.cluster_name

        try:
            _, cluster_status = self._waiter(
                self._config.cluster_wait,
                pending=CLUSTER_PENDING_STATES,
                target=CLUSTER_TARGET_STATES,
                refresh=self._cluster_refresh(project_id, cluster_name),
                description=f"cluster {cluster_name} to become IDLE",
            ).wait()
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("creating", cluster_name, e) from e
        if cluster_status == STATUS_DELETED:
            raise self.operation_error("creating", cluster_name, "cluster not found")

        try:
            snapshot = self._client.create_snapshot(
                project_id, cluster_name, plan.description, plan.retention_in_days
            )
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("creating", cluster_name, e) from e

        snapshot_id = snapshot.id or ""
        logger.info(
            "Requested snapshot",
            extra={"cluster_name": cluster_name, "snapshot_id": snapshot_id},
        )

        try:
            _, snapshot_status = self._waiter(
                self._config.snapshot_wait,
                pending=SNAPSHOT_PENDING_STATES,
                target=SNAPSHOT_TARGET_STATES,
                refresh=self._snapshot_refresh(project_id, cluster_name, snapshot_id),
                description=f"snapshot {snapshot_id} to complete",
            ).wait()
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("creating", snapshot_id, e) from e
        if snapshot_status == STATUS_DELETED:
            raise self.operation_error("creating", snapshot_id, "snapshot disappeared")

        current = plan.model_copy(
            update={
                "id": self.encode_id(
                    cluster_name=cluster_name, project_id=project_id, snapshot_id=snapshot_id
                )
            }
        )
        state = self.read(current)
        if state is None:
            raise self.operation_error("creating", snapshot_id, "snapshot not found after create")
        return state

    def read(self, state: Mapping[str, Any] | StateModel) -> CloudBackupSnapshotState | None:
        state = self.decode(state)
        ids = self.decode_id(state)

        try:
            snapshot = self._client.get_snapshot(
                ids["project_id"], ids["cluster_name"], ids["snapshot_id"]
            )
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(ids["snapshot_id"])
                return None
            raise self.operation_error("getting", ids["snapshot_id"], e) from e

        return self._to_state(snapshot, state)

    def update(
        self,
        plan: Mapping[str, Any] | StateModel,
        state: Mapping[str, Any] | StateModel,
    ) -> CloudBackupSnapshotState:
        """Return ``state`` unchanged when no input differs.

        Any input change has to go through delete and create instead.
        """
        plan = self.decode(plan, plan=True)
        state = self.decode(state)
        if not plan.requires_replace(state):
            return state
        raise self.operation_error(
            "updating",
            state.snapshot_id or state.cluster_name,
            "snapshots cannot be changed in place, every attribute forces replacement",
        )

    def delete(self, state: Mapping[str, Any] | StateModel) -> None:
        state = self.decode(state)
        ids = self.decode_id(state)

        try:
            self._client.delete_snapshot(
                ids["project_id"], ids["cluster_name"], ids["snapshot_id"]
            )
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(ids["snapshot_id"])
                return
            raise self.operation_error("deleting", ids["snapshot_id"], e) from e

        logger.info("Deleted snapshot", extra={"snapshot_id": ids["snapshot_id"]})

    def import_state(self, import_id: str) -> CloudBackupSnapshotState:
        """Import from ``{project_id}-{cluster_name}-{snapshot_id}``."""
        parts = split_snapshot_import_id(import_id)
        project_id = parts["project_id"]
        cluster_name = parts["cluster_name"]
        snapshot_id = parts["snapshot_id"]

        try:
            snapshot = self._client.get_snapshot(project_id, cluster_name, snapshot_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("importing", snapshot_id, e) from e

        current = self.decode(
            {
                "id": self.encode_id(
                    cluster_name=cluster_name, project_id=project_id, snapshot_id=snapshot_id
                ),
                "project_id": project_id,
                "cluster_name": cluster_name,
                "description": snapshot.description or "",
                "retention_in_days": _retention_days(snapshot),
            }
        )
        return self._to_state(snapshot, current)

    @staticmethod
    def _to_state(
        snapshot: CloudProviderSnapshot, current: CloudBackupSnapshotState
    ) -> CloudBackupSnapshotState:
        members = None
        if snapshot.members is not None:
            members = [
                SnapshotMemberState(
                    cloud_provider=m.cloud_provider,
                    id=m.id,
                    replica_set_name=m.replica_set_name,
                )
                for m in snapshot.members
            ]

        return current.model_copy(
            update={
                "snapshot_id": snapshot.id,
                "description": snapshot.description
                if snapshot.description is not None
                else current.description,
                "created_at": snapshot.created_at,
                "expires_at": snapshot.expires_at,
                "master_key_uuid": snapshot.master_key_uuid,
                "mongod_version": snapshot.mongod_version,
                "snapshot_type": snapshot.snapshot_type,
                "status": snapshot.status,
                "storage_size_bytes": snapshot.storage_size_bytes,
                "type": snapshot.type,
                "cloud_provider": snapshot.cloud_provider,
                "members": members,
                "replica_set_name": snapshot.replica_set_name,
                "snapshot_ids": snapshot.snapshot_ids,
            }
        )
