"""Reconcile API responses into alert configuration state.

The Atlas API is not a faithful echo of what was sent:

- secrets (tokens, keys, webhook URLs) are write-only and come back
  omitted or obfuscated;
- optional fields the user never set come back as empty strings;
- ids, timestamps and flags are computed by the server.

Merge rules for list blocks (notifications, matchers):

1. If the API returns a different number of items than state holds, the
   list was changed out of band (or is being imported). Every item is
   rebuilt from the API response; blanks become None and secrets are
   left unset.
2. Otherwise items are merged by position. Secrets keep their state
   value, optional fields are refreshed only when state already has a
   value, and computed fields are always overwritten.

Rule 1 is a heuristic: an external edit that keeps the list length is
merged positionally and can attach a secret to the wrong item. Matching
items on a server-issued identity would fix that, but notifications do
not carry one for every type.

The module also builds request payloads from plan records.
"""

from __future__ import annotations

from collections.abc import Sequence

from .errors import AtlasProviderError
from .models import (
    OPS_GENIE,
    OPTIONAL_NOTIFICATION_FIELDS,
    PAGER_DUTY,
    SENSITIVE_NOTIFICATION_FIELDS,
    VICTOR_OPS,
    AlertConfiguration,
    AlertConfigurationState,
    Matcher,
    MatcherState,
    MetricThreshold,
    MetricThresholdConfigState,
    Notification,
    NotificationState,
    Threshold,
    ThresholdConfigState,
)

# Integrations that manage their own re-notification cadence
INTERVAL_UNSUPPORTED_TYPES = frozenset({PAGER_DUTY, OPS_GENIE, VICTOR_OPS})


class NotificationConfigError(AtlasProviderError):
    """Raised when a notification block is internally inconsistent."""

    pass


def null_if_empty(value: str | None) -> str | None:
    """Map the API's empty string to an absent value."""
    return value if value else None


# =============================================================================
# Plan -> request
# =============================================================================


def to_notification_list(notifications: Sequence[NotificationState]) -> list[Notification]:
    """Build request notifications from plan blocks.

    Raises:
        NotificationConfigError: If interval_min is set for an integration
            that does not support it.
    """
    result: list[Notification] = []
    for item in notifications:
        type_name = item.type_name or ""
        if (item.interval_min or 0) > 0 and type_name.upper() in INTERVAL_UNSUPPORTED_TYPES:
            raise NotificationConfigError(
                "'interval_min' doesn't need to be set if type_name is "
                "'PAGER_DUTY', 'OPS_GENIE' or 'VICTOR_OPS'"
            )

        result.append(
            Notification(
                api_token=item.api_token,
                channel_name=item.channel_name,
                datadog_api_key=item.datadog_api_key,
                datadog_region=item.datadog_region,
                delay_min=item.delay_min or 0,
                email_address=item.email_address,
                email_enabled=item.email_enabled,
                interval_min=item.interval_min or None,
                mobile_number=item.mobile_number,
                ops_genie_api_key=item.ops_genie_api_key,
                ops_genie_region=item.ops_genie_region,
                service_key=item.service_key,
                sms_enabled=item.sms_enabled,
                team_id=item.team_id,
                notifier_id=item.notifier_id,
                type_name=item.type_name,
                username=item.username,
                victor_ops_api_key=item.victor_ops_api_key,
                victor_ops_routing_key=item.victor_ops_routing_key,
                roles=item.roles,
                microsoft_teams_webhook_url=item.microsoft_teams_webhook_url,
                webhook_secret=item.webhook_secret,
                webhook_url=item.webhook_url,
            )
        )
    return result


def to_threshold(configs: Sequence[ThresholdConfigState]) -> Threshold | None:
    if not configs:
        return None
    config = configs[0]
    return Threshold(
        operator=config.operator,
        units=config.units,
        threshold=config.threshold or 0.0,
    )


def to_metric_threshold(configs: Sequence[MetricThresholdConfigState]) -> MetricThreshold | None:
    if not configs:
        return None
    config = configs[0]
    return MetricThreshold(
        metric_name=config.metric_name,
        operator=config.operator,
        threshold=config.threshold or 0.0,
        units=config.units,
        mode=config.mode,
    )


def to_matcher_list(matchers: Sequence[MatcherState]) -> list[Matcher]:
    return [
        Matcher(field_name=m.field_name, operator=m.operator, value=m.value) for m in matchers
    ]


def to_alert_configuration(plan: AlertConfigurationState) -> AlertConfiguration:
    """Build a create request from a plan record."""
    return AlertConfiguration(
        event_type_name=plan.event_type,
        enabled=plan.enabled,
        matchers=to_matcher_list(plan.matcher),
        metric_threshold=to_metric_threshold(plan.metric_threshold_config),
        threshold=to_threshold(plan.threshold_config),
        notifications=to_notification_list(plan.notification),
    )


# =============================================================================
# Response -> state
# =============================================================================


def _computed_notification_fields(api: Notification) -> dict[str, object]:
    return {
        "team_name": api.team_name,
        "roles": api.roles,
        "notifier_id": api.notifier_id,
        "interval_min": api.interval_min or 0,
        "delay_min": api.delay_min or 0,
        "email_enabled": bool(api.email_enabled),
        "sms_enabled": bool(api.sms_enabled),
    }


def merge_notifications(
    api_items: Sequence[Notification] | None,
    state_items: Sequence[NotificationState],
) -> list[NotificationState]:
    """Merge API notifications into state following the module rules."""
    api_items = api_items or []

    if len(api_items) != len(state_items):
        return [
            NotificationState(
                **{
                    name: null_if_empty(getattr(api, name))
                    for name in OPTIONAL_NOTIFICATION_FIELDS
                },
                **_computed_notification_fields(api),
            )
            for api in api_items
        ]

    merged: list[NotificationState] = []
    for api, current in zip(api_items, state_items, strict=True):
        fields: dict[str, object] = {}

        # Secrets never come back in clear text
        for name in SENSITIVE_NOTIFICATION_FIELDS:
            fields[name] = null_if_empty(getattr(current, name))

        for name in OPTIONAL_NOTIFICATION_FIELDS:
            if getattr(current, name) is not None:
                fields[name] = null_if_empty(getattr(api, name))

        fields.update(_computed_notification_fields(api))
        merged.append(NotificationState(**fields))

    return merged


def merge_matchers(
    api_items: Sequence[Matcher] | None,
    state_items: Sequence[MatcherState],
) -> list[MatcherState]:
    api_items = api_items or []

    if len(api_items) != len(state_items):
        return [
            MatcherState(
                field_name=null_if_empty(api.field_name),
                operator=null_if_empty(api.operator),
                value=null_if_empty(api.value),
            )
            for api in api_items
        ]

    merged = []
    for api, current in zip(api_items, state_items, strict=True):
        item = MatcherState()
        if current.field_name is not None:
            item.field_name = null_if_empty(api.field_name)
        if current.operator is not None:
            item.operator = null_if_empty(api.operator)
        if current.value is not None:
            item.value = null_if_empty(api.value)
        merged.append(item)
    return merged


def merge_metric_threshold(
    api: MetricThreshold | None,
    state_items: Sequence[MetricThresholdConfigState],
) -> list[MetricThresholdConfigState]:
    if api is None:
        return []

    if not state_items:
        return [
            MetricThresholdConfigState(
                metric_name=null_if_empty(api.metric_name),
                operator=null_if_empty(api.operator),
                threshold=api.threshold,
                units=null_if_empty(api.units),
                mode=null_if_empty(api.mode),
            )
        ]

    current = state_items[0]
    merged = MetricThresholdConfigState(threshold=api.threshold)
    if current.metric_name is not None:
        merged.metric_name = null_if_empty(api.metric_name)
    if current.operator is not None:
        merged.operator = null_if_empty(api.operator)
    if current.units is not None:
        merged.units = null_if_empty(api.units)
    if current.mode is not None:
        merged.mode = null_if_empty(api.mode)
    return [merged]


def merge_threshold(
    api: Threshold | None,
    state_items: Sequence[ThresholdConfigState],
) -> list[ThresholdConfigState]:
    if api is None:
        return []

    if not state_items:
        return [
            ThresholdConfigState(
                operator=null_if_empty(api.operator),
                threshold=api.threshold,
                units=null_if_empty(api.units),
            )
        ]

    current = state_items[0]
    merged = ThresholdConfigState(threshold=api.threshold)
    if current.operator is not None:
        merged.operator = null_if_empty(api.operator)
    if current.units is not None:
        merged.units = null_if_empty(api.units)
    return [merged]


def merge_alert_configuration(
    api: AlertConfiguration,
    current: AlertConfigurationState,
) -> AlertConfigurationState:
    """Produce the new state record from an API response.

    ``id`` and ``project_id`` are owned by the caller and kept from
    ``current``; every other top-level field comes from the API.
    """
    return AlertConfigurationState(
        id=current.id,
        project_id=current.project_id,
        alert_configuration_id=api.id,
        event_type=api.event_type_name or current.event_type,
        created=api.created,
        updated=api.updated,
        enabled=api.enabled,
        metric_threshold_config=merge_metric_threshold(
            api.metric_threshold, current.metric_threshold_config
        ),
        threshold_config=merge_threshold(api.threshold, current.threshold_config),
        notification=merge_notifications(api.notifications, current.notification),
        matcher=merge_matchers(api.matchers, current.matcher),
    )
