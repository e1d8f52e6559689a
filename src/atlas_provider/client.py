"""Thin client for the MongoDB Atlas Admin API.

Each method performs exactly one HTTP call and returns the decoded
pydantic record. Non-2xx responses raise AtlasAPIError carrying the HTTP
status, so callers can tell "not found" apart from real failures.

Retries, pagination helpers and rate-limit handling are intentionally
left to the caller: the handlers make a single call per operation.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests

from .config import ProviderConfig
from .errors import AtlasProviderError
from .models import (
    AlertConfiguration,
    CloudProviderSnapshot,
    Cluster,
    PaginatedTenantRestore,
    Project,
)
from .security import get_digest_auth

logger = logging.getLogger(__name__)

USER_AGENT = "atlas-provider/0.1.0"
HTTP_NOT_FOUND = 404


class AtlasAPIError(AtlasProviderError):
    """Raised when the Atlas API answers with a non-2xx status."""

    def __init__(
        self,
        status_code: int,
        error_code: str | None = None,
        detail: str | None = None,
        method: str = "",
        path: str = "",
    ) -> None:
        self.status_code = status_code
        self.error_code = error_code
        self.detail = detail
        self.method = method
        self.path = path
        message = f"{method} {path}: HTTP {status_code}"
        if error_code:
            message += f" ({error_code})"
        if detail:
            message += f" {detail}"
        super().__init__(message.strip())

    @property
    def is_not_found(self) -> bool:
        """True if the remote resource does not exist."""
        return self.status_code == HTTP_NOT_FOUND


# Everything a single Atlas call can fail with
REMOTE_CALL_ERRORS = (AtlasAPIError, requests.RequestException)


def is_not_found(error: Exception) -> bool:
    return isinstance(error, AtlasAPIError) and error.is_not_found


def _segment(value: str) -> str:
    """Quote a path segment supplied by the user (cluster names etc.)."""
    return quote(value, safe="")


class AtlasClient:
    """Atlas Admin API client authenticated with a programmatic API key."""

    def __init__(self, config: ProviderConfig, session: requests.Session | None = None) -> None:
        self._base_url = config.base_url.rstrip("/")
        self._timeout = config.request_timeout_seconds
        self._session = session or requests.Session()
        self._session.auth = get_digest_auth(config)
        self._session.headers.update(
            {
                "Accept": "application/json",
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            }
        )

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> AtlasClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and decode the JSON answer.

        Raises:
            AtlasAPIError: On any non-2xx status.
            requests.RequestException: On transport failures.
        """
        url = f"{self._base_url}{path}"
        logger.debug("Atlas API request", extra={"method": method, "path": path})

        response = self._session.request(
            method,
            url,
            json=body,
            params=params,
            timeout=self._timeout,
        )

        if not response.ok:
            error_code: str | None = None
            detail: str | None = response.text or None
            try:
                payload = response.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                error_code = payload.get("errorCode")
                detail = payload.get("detail") or detail
            logger.debug(
                "Atlas API error",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error_code,
                },
            )
            raise AtlasAPIError(response.status_code, error_code, detail, method, path)

        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # -------------------------------------------------------------------------
    # Alert configurations
    # -------------------------------------------------------------------------

    def list_alert_configurations(self, project_id: str) -> list[AlertConfiguration]:
        data = self._request("GET", f"/groups/{_segment(project_id)}/alertConfigs")
        return [AlertConfiguration.model_validate(item) for item in data.get("results", [])]

    def get_alert_configuration(self, project_id: str, alert_id: str) -> AlertConfiguration:
        data = self._request(
            "GET", f"/groups/{_segment(project_id)}/alertConfigs/{_segment(alert_id)}"
        )
        return AlertConfiguration.model_validate(data)

    def create_alert_configuration(
        self, project_id: str, alert: AlertConfiguration
    ) -> AlertConfiguration:
        data = self._request(
            "POST", f"/groups/{_segment(project_id)}/alertConfigs", body=alert.to_request()
        )
        return AlertConfiguration.model_validate(data)

    def update_alert_configuration(
        self, project_id: str, alert_id: str, alert: AlertConfiguration
    ) -> AlertConfiguration:
        data = self._request(
            "PUT",
            f"/groups/{_segment(project_id)}/alertConfigs/{_segment(alert_id)}",
            body=alert.to_request(),
        )
        return AlertConfiguration.model_validate(data)

    def enable_alert_configuration(
        self, project_id: str, alert_id: str, enabled: bool
    ) -> AlertConfiguration:
        """Toggle only the enabled flag (PUT with just that field is rejected)."""
        data = self._request(
            "PATCH",
            f"/groups/{_segment(project_id)}/alertConfigs/{_segment(alert_id)}",
            body={"enabled": enabled},
        )
        return AlertConfiguration.model_validate(data)

    def delete_alert_configuration(self, project_id: str, alert_id: str) -> None:
        self._request(
            "DELETE", f"/groups/{_segment(project_id)}/alertConfigs/{_segment(alert_id)}"
        )

    # -------------------------------------------------------------------------
    # Clusters and cloud backup snapshots
    # -------------------------------------------------------------------------

    def get_cluster(self, project_id: str, cluster_name: str) -> Cluster:
        data = self._request(
            "GET", f"/groups/{_segment(project_id)}/clusters/{_segment(cluster_name)}"
        )
        return Cluster.model_validate(data)

    def _snapshots_path(self, project_id: str, cluster_name: str) -> str:
        return (
            f"/groups/{_segment(project_id)}/clusters/{_segment(cluster_name)}/backup/snapshots"
        )

    def get_snapshot(
        self, project_id: str, cluster_name: str, snapshot_id: str
    ) -> CloudProviderSnapshot:
        path = f"{self._snapshots_path(project_id, cluster_name)}/{_segment(snapshot_id)}"
        return CloudProviderSnapshot.model_validate(self._request("GET", path))

    def create_snapshot(
        self, project_id: str, cluster_name: str, description: str, retention_in_days: int
    ) -> CloudProviderSnapshot:
        data = self._request(
            "POST",
            self._snapshots_path(project_id, cluster_name),
            body={"description": description, "retentionInDays": retention_in_days},
        )
        return CloudProviderSnapshot.model_validate(data)

    def delete_snapshot(self, project_id: str, cluster_name: str, snapshot_id: str) -> None:
        path = f"{self._snapshots_path(project_id, cluster_name)}/{_segment(snapshot_id)}"
        self._request("DELETE", path)

    def list_shared_tier_restore_jobs(
        self, project_id: str, cluster_name: str
    ) -> PaginatedTenantRestore:
        data = self._request(
            "GET",
            f"/groups/{_segment(project_id)}/clusters/{_segment(cluster_name)}"
            "/backup/tenant/restores",
        )
        return PaginatedTenantRestore.model_validate(data or {})

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    def create_project(self, name: str, org_id: str) -> Project:
        data = self._request("POST", "/groups", body={"name": name, "orgId": org_id})
        return Project.model_validate(data)

    def get_project(self, project_id: str) -> Project:
        return Project.model_validate(self._request("GET", f"/groups/{_segment(project_id)}"))

    def update_project(self, project_id: str, name: str) -> Project:
        data = self._request("PATCH", f"/groups/{_segment(project_id)}", body={"name": name})
        return Project.model_validate(data)

    def delete_project(self, project_id: str) -> None:
        self._request("DELETE", f"/groups/{_segment(project_id)}")
