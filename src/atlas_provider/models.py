"""Pydantic models for Atlas API payloads and provider state.

Two shapes exist for every entity:
1. Remote records mirror the Admin API JSON (camelCase aliases). Secrets
   may be missing or obfuscated when read back.
2. State records mirror the declarative schema (snake_case). ``None``
   means "not set", which the merge logic relies on.
"""

from __future__ import annotations

from typing import Annotated, Any, ClassVar

from pydantic import BaseModel, Field, ValidationInfo, field_validator

# =============================================================================
# Remote records (Atlas Admin API)
# =============================================================================


class ApiModel(BaseModel):
    """Base for API payloads: tolerate unknown fields, accept either name."""

    model_config = {"extra": "ignore", "populate_by_name": True}

    def to_request(self) -> dict[str, Any]:
        """Serialize for a request body, dropping unset fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class Matcher(ApiModel):
    field_name: str | None = Field(None, alias="fieldName")
    operator: str | None = None
    value: str | None = None


class MetricThreshold(ApiModel):
    metric_name: str | None = Field(None, alias="metricName")
    operator: str | None = None
    threshold: float = 0.0
    units: str | None = None
    mode: str | None = None


class Threshold(ApiModel):
    operator: str | None = None
    units: str | None = None
    threshold: float = 0.0


class Notification(ApiModel):
    """One notification target of an alert configuration."""

    api_token: str | None = Field(None, alias="apiToken")
    channel_name: str | None = Field(None, alias="channelName")
    datadog_api_key: str | None = Field(None, alias="datadogApiKey")
    datadog_region: str | None = Field(None, alias="datadogRegion")
    delay_min: int | None = Field(None, alias="delayMin")
    email_address: str | None = Field(None, alias="emailAddress")
    email_enabled: bool | None = Field(None, alias="emailEnabled")
    interval_min: int | None = Field(None, alias="intervalMin")
    mobile_number: str | None = Field(None, alias="mobileNumber")
    ops_genie_api_key: str | None = Field(None, alias="opsGenieApiKey")
    ops_genie_region: str | None = Field(None, alias="opsGenieRegion")
    service_key: str | None = Field(None, alias="serviceKey")
    sms_enabled: bool | None = Field(None, alias="smsEnabled")
    team_id: str | None = Field(None, alias="teamId")
    team_name: str | None = Field(None, alias="teamName")
    notifier_id: str | None = Field(None, alias="notifierId")
    type_name: str | None = Field(None, alias="typeName")
    username: str | None = None
    victor_ops_api_key: str | None = Field(None, alias="victorOpsApiKey")
    victor_ops_routing_key: str | None = Field(None, alias="victorOpsRoutingKey")
    roles: list[str] | None = None
    microsoft_teams_webhook_url: str | None = Field(None, alias="microsoftTeamsWebhookUrl")
    webhook_secret: str | None = Field(None, alias="webhookSecret")
    webhook_url: str | None = Field(None, alias="webhookUrl")


class AlertConfiguration(ApiModel):
    """Alert configuration as returned by /groups/{id}/alertConfigs."""

    id: str | None = None
    group_id: str | None = Field(None, alias="groupId")
    event_type_name: str | None = Field(None, alias="eventTypeName")
    created: str | None = None
    updated: str | None = None
    enabled: bool | None = None
    matchers: list[Matcher] | None = None
    metric_threshold: MetricThreshold | None = Field(None, alias="metricThreshold")
    threshold: Threshold | None = None
    notifications: list[Notification] | None = None


class Cluster(ApiModel):
    name: str | None = None
    state_name: str | None = Field(None, alias="stateName")


class SnapshotMember(ApiModel):
    cloud_provider: str | None = Field(None, alias="cloudProvider")
    id: str | None = None
    replica_set_name: str | None = Field(None, alias="replicaSetName")


class CloudProviderSnapshot(ApiModel):
    """Cloud backup snapshot of a dedicated cluster."""

    id: str | None = None
    created_at: str | None = Field(None, alias="createdAt")
    description: str | None = None
    expires_at: str | None = Field(None, alias="expiresAt")
    master_key_uuid: str | None = Field(None, alias="masterKeyUUID")
    mongod_version: str | None = Field(None, alias="mongodVersion")
    snapshot_type: str | None = Field(None, alias="snapshotType")
    status: str | None = None
    storage_size_bytes: int | None = Field(None, alias="storageSizeBytes")
    type: str | None = None
    cloud_provider: str | None = Field(None, alias="cloudProvider")
    members: list[SnapshotMember] | None = None
    replica_set_name: str | None = Field(None, alias="replicaSetName")
    snapshot_ids: list[str] | None = Field(None, alias="snapshotIds")
    retention_in_days: int | None = Field(None, alias="retentionInDays")


class Project(ApiModel):
    id: str | None = None
    name: str | None = None
    org_id: str | None = Field(None, alias="orgId")
    cluster_count: int | None = Field(None, alias="clusterCount")
    created: str | None = None


class TenantRestore(ApiModel):
    """Restore job of a shared-tier (M2/M5) cluster."""

    id: str | None = None
    status: str | None = None
    target_project_id: str | None = Field(None, alias="targetProjectId")
    target_deployment_item_name: str | None = Field(None, alias="targetDeploymentItemName")
    snapshot_url: str | None = Field(None, alias="snapshotUrl")
    snapshot_id: str | None = Field(None, alias="snapshotId")
    snapshot_finished_date: str | None = Field(None, alias="snapshotFinishedDate")
    restore_scheduled_date: str | None = Field(None, alias="restoreScheduledDate")
    restore_finished_date: str | None = Field(None, alias="restoreFinishedDate")
    delivery_type: str | None = Field(None, alias="deliveryType")
    expiration_date: str | None = Field(None, alias="expirationDate")


class PaginatedTenantRestore(ApiModel):
    results: list[TenantRestore] = Field(default_factory=list)
    total_count: int = Field(0, alias="totalCount")


# =============================================================================
# State records: alert configuration
# =============================================================================

PAGER_DUTY = "PAGER_DUTY"
OPS_GENIE = "OPS_GENIE"
VICTOR_OPS = "VICTOR_OPS"

NOTIFICATION_TYPE_NAMES = frozenset(
    {
        "EMAIL",
        "SMS",
        PAGER_DUTY,
        "SLACK",
        "DATADOG",
        OPS_GENIE,
        VICTOR_OPS,
        "WEBHOOK",
        "USER",
        "TEAM",
        "GROUP",
        "ORG",
        "MICROSOFT_TEAMS",
    }
)

THRESHOLD_UNITS = frozenset(
    {
        "RAW",
        "BITS",
        "BYTES",
        "KILOBITS",
        "KILOBYTES",
        "MEGABITS",
        "MEGABYTES",
        "GIGABITS",
        "GIGABYTES",
        "TERABYTES",
        "PETABYTES",
        "MILLISECONDS",
        "SECONDS",
        "MINUTES",
        "HOURS",
        "DAYS",
    }
)

REGIONS = frozenset({"US", "EU"})


# Desired-state documents are validated with this context. Enum and
# cardinality checks only apply to them, never to records built from API
# responses or loaded from state.
PLAN_CONTEXT = {"plan": True}


def is_plan(info: ValidationInfo) -> bool:
    return bool(info.context and info.context.get("plan"))


class StateModel(BaseModel):
    """Base for state records."""

    model_config = {"extra": "ignore", "validate_assignment": True}


class MatcherState(StateModel):
    field_name: str | None = None
    operator: str | None = None
    value: str | None = None


class MetricThresholdConfigState(StateModel):
    metric_name: str | None = None
    operator: str | None = None
    threshold: float | None = None
    units: str | None = None
    mode: str | None = None

    @field_validator("operator")
    @classmethod
    def validate_operator(cls, v: str | None, info: ValidationInfo) -> str | None:
        if is_plan(info) and v is not None and v not in {"GREATER_THAN", "LESS_THAN"}:
            raise ValueError("operator must be one of GREATER_THAN, LESS_THAN")
        return v


class ThresholdConfigState(StateModel):
    operator: str | None = None
    threshold: float | None = None
    units: str | None = None

    @field_validator("units")
    @classmethod
    def validate_units(cls, v: str | None, info: ValidationInfo) -> str | None:
        if is_plan(info) and v is not None and v not in THRESHOLD_UNITS:
            raise ValueError(f"units must be one of {sorted(THRESHOLD_UNITS)}")
        return v


class NotificationState(StateModel):
    """Notification block of an alert configuration.

    Sensitive fields are never returned by the API in clear text, so the
    only authoritative copy lives in state.
    """

    # Sensitive
    api_token: str | None = None
    datadog_api_key: str | None = None
    ops_genie_api_key: str | None = None
    service_key: str | None = None
    victor_ops_api_key: str | None = None
    victor_ops_routing_key: str | None = None
    webhook_url: str | None = None
    webhook_secret: str | None = None
    microsoft_teams_webhook_url: str | None = None

    # Optional
    channel_name: str | None = None
    datadog_region: str | None = None
    email_address: str | None = None
    mobile_number: str | None = None
    ops_genie_region: str | None = None
    team_id: str | None = None
    type_name: str | None = None
    username: str | None = None
    roles: list[str] | None = None

    # Computed (optional input)
    team_name: str | None = None
    notifier_id: str | None = None
    interval_min: int | None = None
    delay_min: int | None = None
    email_enabled: bool | None = None
    sms_enabled: bool | None = None

    @field_validator("type_name")
    @classmethod
    def validate_type_name(cls, v: str | None, info: ValidationInfo) -> str | None:
        if is_plan(info) and v is not None and v not in NOTIFICATION_TYPE_NAMES:
            raise ValueError(f"type_name must be one of {sorted(NOTIFICATION_TYPE_NAMES)}")
        return v

    @field_validator("datadog_region", "ops_genie_region")
    @classmethod
    def validate_region(cls, v: str | None, info: ValidationInfo) -> str | None:
        if is_plan(info) and v is not None and v not in REGIONS:
            raise ValueError("region must be one of US, EU")
        return v


SENSITIVE_NOTIFICATION_FIELDS: tuple[str, ...] = (
    "api_token",
    "datadog_api_key",
    "ops_genie_api_key",
    "service_key",
    "victor_ops_api_key",
    "victor_ops_routing_key",
    "webhook_url",
    "webhook_secret",
    "microsoft_teams_webhook_url",
)

# Optional without a default: only refreshed when already present in state
OPTIONAL_NOTIFICATION_FIELDS: tuple[str, ...] = (
    "channel_name",
    "datadog_region",
    "email_address",
    "mobile_number",
    "ops_genie_region",
    "team_id",
    "type_name",
    "username",
)


class AlertConfigurationState(StateModel):
    """Desired/state record of an alert configuration."""

    id: str | None = None
    project_id: Annotated[str, Field(min_length=1)]
    alert_configuration_id: str | None = None
    event_type: Annotated[str, Field(min_length=1)]
    created: str | None = None
    updated: str | None = None
    enabled: bool | None = None
    matcher: list[MatcherState] = Field(default_factory=list)
    metric_threshold_config: Annotated[
        list[MetricThresholdConfigState], Field(max_length=1)
    ] = Field(default_factory=list)
    threshold_config: Annotated[list[ThresholdConfigState], Field(max_length=1)] = Field(
        default_factory=list
    )
    notification: list[NotificationState] = Field(default_factory=list, validate_default=True)

    @field_validator("notification")
    @classmethod
    def validate_notification(
        cls, v: list[NotificationState], info: ValidationInfo
    ) -> list[NotificationState]:
        if is_plan(info) and not v:
            raise ValueError("at least one notification is required")
        return v


# =============================================================================
# State records: backups, projects, restore jobs
# =============================================================================


class SnapshotMemberState(StateModel):
    cloud_provider: str | None = None
    id: str | None = None
    replica_set_name: str | None = None


class CloudBackupSnapshotState(StateModel):
    """Desired/state record of an on-demand cloud backup snapshot."""

    # Inputs: any change forces a new snapshot
    id: str | None = None
    project_id: Annotated[str, Field(min_length=1)]
    cluster_name: Annotated[str, Field(min_length=1)]
    description: str
    retention_in_days: Annotated[int, Field(ge=1)]

    # Computed
    snapshot_id: str | None = None
    created_at: str | None = None
    expires_at: str | None = None
    master_key_uuid: str | None = None
    mongod_version: str | None = None
    snapshot_type: str | None = None
    status: str | None = None
    storage_size_bytes: int | None = None
    type: str | None = None
    cloud_provider: str | None = None
    members: list[SnapshotMemberState] | None = None
    replica_set_name: str | None = None
    snapshot_ids: list[str] | None = None

    REPLACE_FIELDS: ClassVar[tuple[str, ...]] = (
        "project_id",
        "cluster_name",
        "description",
        "retention_in_days",
    )

    def requires_replace(self, other: CloudBackupSnapshotState) -> bool:
        """True if any force-new input differs from ``other``."""
        return any(getattr(self, name) != getattr(other, name) for name in self.REPLACE_FIELDS)


class ProjectState(StateModel):
    """Desired/state record of an Atlas project."""

    id: str | None = None
    name: Annotated[str, Field(min_length=1, max_length=64)]
    org_id: Annotated[str, Field(min_length=1)]
    cluster_count: int | None = None
    created: str | None = None


class SharedTierRestoreJobState(StateModel):
    job_id: str | None = None
    status: str | None = None
    target_project_id: str | None = None
    target_deployment_item_name: str | None = None
    snapshot_url: str | None = None
    snapshot_id: str | None = None
    snapshot_finished_date: str | None = None
    restore_scheduled_date: str | None = None
    restore_finished_date: str | None = None
    delivery_type: str | None = None
    expiration_date: str | None = None


class SharedTierRestoreJobsState(StateModel):
    """Inputs and results of the shared-tier restore jobs data source."""

    id: str | None = None
    project_id: Annotated[str, Field(min_length=1)]
    cluster_name: Annotated[str, Field(min_length=1)]
    results: list[SharedTierRestoreJobState] = Field(default_factory=list)
    total_count: int = 0
