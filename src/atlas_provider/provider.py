"""Provider: dispatches resource documents to their handlers.

The provider plays the role an orchestration engine normally would:
it looks up prior state, decides between create, update and replace,
calls the handler and persists whatever the handler returns.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .alert_configuration import AlertConfigurationHandler
from .client import AtlasClient
from .cloud_backup_snapshot import CloudBackupSnapshotHandler
from .config import ProviderConfig
from .errors import AtlasProviderError
from .handler_base import ResourceHandler
from .models import SharedTierRestoreJobsState, StateModel
from .project import ProjectHandler
from .restore_jobs import SharedTierRestoreJobsDataSource
from .spec_loader import (
    KIND_ALERT_CONFIGURATION,
    KIND_CLOUD_BACKUP_SNAPSHOT,
    KIND_PROJECT,
    ResourceSpec,
)
from .state_store import StateStore

logger = logging.getLogger(__name__)


class ApplyAction(str, Enum):
    """What apply did to a resource."""

    CREATED = "created"
    UPDATED = "updated"
    REPLACED = "replaced"
    READ = "read"


@dataclass(frozen=True)
class ApplyResult:
    address: str
    action: ApplyAction
    state: StateModel


class UnknownResourceError(AtlasProviderError):
    """Raised for a kind without a handler or an address without state."""

    pass


class Provider:
    """Runs handler operations against Atlas and keeps local state."""

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: AtlasClient | None = None,
        store: StateStore | None = None,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        sleep = sleep or time.sleep
        self._config = config
        self._client = client or AtlasClient(config)
        self._store = store or StateStore(config.state_dir)
        self._alert_configurations = AlertConfigurationHandler(
            self._client, config, sleep=sleep
        )
        self._handlers: dict[str, ResourceHandler[Any]] = {
            KIND_ALERT_CONFIGURATION: self._alert_configurations,
            KIND_CLOUD_BACKUP_SNAPSHOT: CloudBackupSnapshotHandler(
                self._client, config, sleep=sleep
            ),
            KIND_PROJECT: ProjectHandler(self._client, config, sleep=sleep),
        }
        self._restore_jobs = SharedTierRestoreJobsDataSource(self._client)

    @property
    def store(self) -> StateStore:
        return self._store

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> Provider:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def handler_for(self, kind: str) -> ResourceHandler[Any]:
        handler = self._handlers.get(kind)
        if handler is None:
            raise UnknownResourceError(
                f"No resource handler for kind '{kind}'. Valid kinds: {sorted(self._handlers)}"
            )
        return handler

    def _save(self, kind: str, name: str, state: StateModel) -> None:
        self._store.save(kind, name, state.model_dump(mode="json"))

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def apply(self, resource: ResourceSpec) -> ApplyResult:
        """Bring one resource in line with its document.

        Creates when there is no prior state or the remote object is gone,
        replaces when a force-new attribute changed, updates otherwise.
        """
        if resource.is_data_source:
            state = self.read_data_source(resource.spec)
            self._save(resource.kind, resource.name, state)
            return ApplyResult(resource.address, ApplyAction.READ, state)

        handler = self.handler_for(resource.kind)
        plan = handler.decode(resource.spec, plan=True)
        prior = self._store.load(resource.kind, resource.name)

        current = handler.read(prior) if prior is not None else None

        if current is None:
            action = ApplyAction.CREATED
            state = handler.create(plan)
        elif handler.requires_replace(plan, current):
            logger.info(
                "Replacing resource",
                extra={"address": resource.address},
            )
            action = ApplyAction.REPLACED
            handler.delete(current)
            self._store.remove(resource.kind, resource.name)
            state = handler.create(plan)
        else:
            action = ApplyAction.UPDATED
            state = handler.update(plan, current)

        self._save(resource.kind, resource.name, state)
        logger.info(
            "Applied resource",
            extra={"address": resource.address, "action": action.value},
        )
        return ApplyResult(resource.address, action, state)

    def refresh(self, kind: str, name: str) -> StateModel | None:
        """Re-read one resource, dropping its state if it is gone remotely."""
        handler = self.handler_for(kind)
        prior = self._store.load(kind, name)
        if prior is None:
            raise UnknownResourceError(f"No state for {kind}.{name}")

        state = handler.read(prior)
        if state is None:
            self._store.remove(kind, name)
        else:
            self._save(kind, name, state)
        return state

    def destroy(self, kind: str, name: str) -> bool:
        """Delete the remote object and its state. False if nothing was tracked."""
        handler = self.handler_for(kind)
        prior = self._store.load(kind, name)
        if prior is None:
            return False

        handler.delete(prior)
        self._store.remove(kind, name)
        logger.info("Destroyed resource", extra={"address": f"{kind}.{name}"})
        return True

    def import_resource(self, kind: str, name: str, import_id: str) -> StateModel:
        """Adopt an existing remote object under a local name."""
        handler = self.handler_for(kind)
        self._store.path_for(kind, name)

        state = handler.import_state(import_id)
        self._save(kind, name, state)
        logger.info(
            "Imported resource",
            extra={"address": f"{kind}.{name}", "import_id": import_id},
        )
        return state

    def list_alert_configurations(self, project_id: str) -> list[tuple[str, str]]:
        """Import ids and event types of the alert configurations in a project."""
        return self._alert_configurations.list_import_ids(project_id)

    def read_data_source(
        self, query: SharedTierRestoreJobsState | dict[str, Any] | StateModel
    ) -> SharedTierRestoreJobsState:
        if isinstance(query, StateModel) and not isinstance(query, SharedTierRestoreJobsState):
            query = query.model_dump()
        return self._restore_jobs.read(query)
