"""Alert configuration resource.

Alert configurations live under a project and are addressed by the pair
(project_id, alert_configuration_id). Notification secrets are write-only
on the Atlas side, so every response goes through merge.py before it
becomes state.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .client import REMOTE_CALL_ERRORS, is_not_found
from .handler_base import ResourceHandler
from .identifiers import split_import_id
from .merge import (
    merge_alert_configuration,
    to_alert_configuration,
    to_matcher_list,
    to_metric_threshold,
    to_notification_list,
    to_threshold,
)
from .models import AlertConfigurationState, StateModel

logger = logging.getLogger(__name__)

IMPORT_PARTS = ("project_id", "alert_configuration_id")


class AlertConfigurationHandler(ResourceHandler[AlertConfigurationState]):
    """CRUD for /groups/{project_id}/alertConfigs."""

    resource_name = "alert configuration"
    state_model = AlertConfigurationState
    id_keys = ("id", "project_id")

    def create(self, plan: Mapping[str, Any] | StateModel) -> AlertConfigurationState:
        plan = self.decode(plan, plan=True)
        request = to_alert_configuration(plan)

        try:
            created = self._client.create_alert_configuration(plan.project_id, request)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("creating", plan.project_id, e) from e

        current = plan.model_copy(
            update={"id": self.encode_id(id=created.id or "", project_id=plan.project_id)}
        )
        logger.info(
            "Created alert configuration",
            extra={"project_id": plan.project_id, "alert_configuration_id": created.id},
        )
        return merge_alert_configuration(created, current)

    def read(self, state: Mapping[str, Any] | StateModel) -> AlertConfigurationState | None:
        state = self.decode(state)
        ids = self.decode_id(state)

        try:
            remote = self._client.get_alert_configuration(ids["project_id"], ids["id"])
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(ids["id"])
                return None
            raise self.operation_error("getting", ids["id"], e) from e

        return merge_alert_configuration(remote, state)

    def update(
        self,
        plan: Mapping[str, Any] | StateModel,
        state: Mapping[str, Any] | StateModel,
    ) -> AlertConfigurationState:
        """Send only the fields that changed, plus the full notification list.

        Notifications are always resent because the stored copy on the
        Atlas side has obfuscated secrets. When the only change is the
        enabled flag the dedicated enable call is used instead of a PUT.
        """
        plan = self.decode(plan, plan=True)
        state = self.decode(state)
        ids = self.decode_id(state)
        project_id, alert_id = ids["project_id"], ids["id"]

        try:
            request = self._client.get_alert_configuration(project_id, alert_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("getting", alert_id, e) from e

        # Read-only on the server side
        request.group_id = None
        request.created = None
        request.updated = None

        changed: set[str] = set()
        if plan.enabled != state.enabled:
            request.enabled = plan.enabled
            changed.add("enabled")
        if plan.event_type != state.event_type:
            request.event_type_name = plan.event_type
            changed.add("event_type")
        if plan.metric_threshold_config != state.metric_threshold_config:
            request.metric_threshold = to_metric_threshold(plan.metric_threshold_config)
            changed.add("metric_threshold_config")
        if plan.threshold_config != state.threshold_config:
            request.threshold = to_threshold(plan.threshold_config)
            changed.add("threshold_config")
        if plan.matcher != state.matcher:
            request.matchers = to_matcher_list(plan.matcher)
            changed.add("matcher")
        if plan.notification != state.notification:
            changed.add("notification")

        request.notifications = to_notification_list(plan.notification)

        current = plan.model_copy(update={"id": state.id, "project_id": state.project_id})

        try:
            if changed == {"enabled"} and plan.enabled is not None:
                logger.info(
                    "Toggling alert configuration",
                    extra={"alert_configuration_id": alert_id, "enabled": plan.enabled},
                )
                updated = self._client.enable_alert_configuration(
                    project_id, alert_id, plan.enabled
                )
            else:
                logger.info(
                    "Updating alert configuration",
                    extra={"alert_configuration_id": alert_id, "changed": sorted(changed)},
                )
                updated = self._client.update_alert_configuration(project_id, alert_id, request)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("updating", alert_id, e) from e

        return merge_alert_configuration(updated, current)

    def delete(self, state: Mapping[str, Any] | StateModel) -> None:
        state = self.decode(state)
        ids = self.decode_id(state)

        try:
            self._client.delete_alert_configuration(ids["project_id"], ids["id"])
        except REMOTE_CALL_ERRORS as e:
            if is_not_found(e):
                self.log_gone(ids["id"])
                return
            raise self.operation_error("deleting", ids["id"], e) from e

        logger.info("Deleted alert configuration", extra={"alert_configuration_id": ids["id"]})

    def import_state(self, import_id: str) -> AlertConfigurationState:
        """Import from ``{project_id}-{alert_configuration_id}``.

        Only the identifiers come from the import id; everything else is
        read back from Atlas, so secrets stay unset until the next apply.
        """
        parts = split_import_id(import_id, IMPORT_PARTS)
        project_id = parts["project_id"]
        alert_id = parts["alert_configuration_id"]

        try:
            remote = self._client.get_alert_configuration(project_id, alert_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("importing", alert_id, e) from e

        current = self.decode(
            {
                "id": self.encode_id(id=alert_id, project_id=project_id),
                "project_id": project_id,
                "event_type": remote.event_type_name,
            }
        )
        return merge_alert_configuration(remote, current)

    def list_import_ids(self, project_id: str) -> list[tuple[str, str]]:
        """``(import_id, event_type)`` for every alert configuration of a project."""
        try:
            alerts = self._client.list_alert_configurations(project_id)
        except REMOTE_CALL_ERRORS as e:
            raise self.operation_error("listing", project_id, e) from e

        return [
            (f"{project_id}-{alert.id}", alert.event_type_name or "")
            for alert in alerts
            if alert.id
        ]
