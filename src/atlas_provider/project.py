"""Atlas project resource."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .client import REMOTE_CALL_ERRORS, is_not_found
from .handler_base import ResourceHandler
from .identifiers import IdentifierFormatError
from .models import Project, ProjectState, StateModel

logger = logging.getLogger(__name__)


class ProjectHandler(ResourceHandler[ProjectState]):
    """CRUD for /groups. Only the name can change in place."""

    resource_name = "project"
    state_model = ProjectState
    id_keys = ("project_id",)

    def requires_replace(self, plan: ProjectState, state: ProjectState) -> bool:
        return plan.org_id != state.org_id

    def create(self, plan: Mapping[str, Any] | StateModel) -> ProjectState:
        plan = self.decode(plan, plan=True)

        try:
            project = self._client.create_project(plan.name, plan.org_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("creating", plan.name, e) from e

        logger.info(
            "Created project",
            extra={"project_id": project.id, "project_name": plan.name},
        )
        return self._to_state(project, plan)

    def read(self, state: Mapping[str, Any] | StateModel) -> ProjectState | None:
        state = self.decode(state)
        project_id = self.decode_id(state)["project_id"]

        try:
            project = self._client.get_project(project_id)
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(project_id)
                return None
            raise self.operation_error("getting", project_id, e) from e

        return self._to_state(project, state)

    def update(
        self,
        plan: Mapping[str, Any] | StateModel,
        state: Mapping[str, Any] | StateModel,
    ) -> ProjectState:
        plan = self.decode(plan, plan=True)
        state = self.decode(state)
        project_id = self.decode_id(state)["project_id"]

        if plan.org_id != state.org_id:
            raise self.operation_error(
                "updating", project_id, "org_id cannot be changed in place"
            )

        if plan.name == state.name:
            return state

        try:
            project = self._client.update_project(project_id, plan.name)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("updating", project_id, e) from e

        return self._to_state(project, state)

    def delete(self, state: Mapping[str, Any] | StateModel) -> None:
        state = self.decode(state)
        project_id = self.decode_id(state)["project_id"]

        try:
            self._client.delete_project(project_id)
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(project_id)
                return
            raise self.operation_error("deleting", project_id, e) from e

        logger.info("Deleted project", extra={"project_id": project_id})

    def import_state(self, import_id: str) -> ProjectState:
        """Import by the bare project id."""
        if not import_id:
            raise IdentifierFormatError("import format error", "{project_id}")

        try:
            project = self._client.get_project(import_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("importing", import_id, e) from e

        return self.decode(
            {
                "id": self.encode_id(project_id=import_id),
                "name": project.name,
                "org_id": project.org_id,
                "cluster_count": project.cluster_count,
                "created": project.created,
            }
        )

    def _to_state(self, project: Project, current: ProjectState) -> ProjectState:
        return current.model_copy(
            update={
                "id": self.encode_id(project_id=project.id or ""),
                "name": project.name or current.name,
                "org_id": project.org_id or current.org_id,
                "cluster_count": project.cluster_count,
                "created": project.created,
            }
        )
