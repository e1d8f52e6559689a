"""Tests for reconciling API responses into alert configuration state."""

import pytest

from atlas_provider.merge import (
    NotificationConfigError,
    merge_alert_configuration,
    merge_matchers,
    merge_metric_threshold,
    merge_notifications,
    merge_threshold,
    null_if_empty,
    to_alert_configuration,
    to_metric_threshold,
    to_notification_list,
    to_threshold,
)
from atlas_provider.models import (
    SENSITIVE_NOTIFICATION_FIELDS,
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

PROJECT_ID = "5f3c1c2d9a8b7c6d5e4f3a2b"


def api_notification(**fields: object) -> Notification:
    return Notification.model_validate(fields)


class TestNullIfEmpty:
    """Tests for the empty-string normalization."""

    def test_values(self) -> None:
        assert null_if_empty("") is None
        assert null_if_empty(None) is None
        assert null_if_empty("x") == "x"


class TestMergeNotifications:
    """Tests for merge_notifications."""

    def test_count_match_keeps_secrets_from_state(self) -> None:
        """Test that obfuscated secrets never replace the state copy."""
        state = [NotificationState(type_name="PAGER_DUTY", service_key="real-service-key")]
        api = [
            api_notification(
                typeName="PAGER_DUTY",
                serviceKey="************-key",
                delayMin=0,
                notifierId="n1",
            )
        ]

        merged = merge_notifications(api, state)

        assert merged[0].service_key == "real-service-key"
        assert merged[0].notifier_id == "n1"

    def test_count_match_preserves_every_sensitive_field(self) -> None:
        """Test all sensitive fields, whatever the API returns."""
        secrets = {name: f"secret-{name}" for name in SENSITIVE_NOTIFICATION_FIELDS}
        state = [NotificationState(type_name="WEBHOOK", **secrets)]
        api = [api_notification(typeName="WEBHOOK", webhookUrl="****", apiToken="")]

        merged = merge_notifications(api, state)

        for name, value in secrets.items():
            assert getattr(merged[0], name) == value

    def test_count_match_empty_secret_becomes_none(self) -> None:
        """Test that an empty-string secret in state normalizes to None."""
        state = [NotificationState(type_name="SLACK", api_token="")]
        merged = merge_notifications([api_notification(typeName="SLACK")], state)

        assert merged[0].api_token is None

    def test_count_match_optional_only_if_previously_set(self) -> None:
        """Test that unset optional fields are not filled from the API."""
        state = [NotificationState(type_name="EMAIL", email_address="old@example.com")]
        api = [
            api_notification(
                typeName="EMAIL",
                emailAddress="new@example.com",
                channelName="#alerts",
                username="someone",
            )
        ]

        merged = merge_notifications(api, state)

        assert merged[0].email_address == "new@example.com"
        assert merged[0].type_name == "EMAIL"
        assert merged[0].channel_name is None
        assert merged[0].username is None

    def test_count_match_optional_empty_from_api_becomes_none(self) -> None:
        """Test that an emptied optional field is cleared rather than kept."""
        state = [NotificationState(type_name="SLACK", channel_name="#old")]
        api = [api_notification(typeName="SLACK", channelName="")]

        merged = merge_notifications(api, state)

        assert merged[0].channel_name is None

    def test_computed_fields_always_overwritten(self) -> None:
        """Test that server-computed fields come from the API."""
        state = [
            NotificationState(
                type_name="TEAM",
                team_id="t1",
                team_name="stale",
                interval_min=99,
                delay_min=99,
                email_enabled=True,
                notifier_id="old",
            )
        ]
        api = [
            api_notification(
                typeName="TEAM",
                teamId="t1",
                teamName="Platform",
                intervalMin=5,
                delayMin=2,
                notifierId="new",
                roles=["GROUP_OWNER"],
            )
        ]

        merged = merge_notifications(api, state)[0]

        assert merged.team_name == "Platform"
        assert merged.interval_min == 5
        assert merged.delay_min == 2
        assert merged.notifier_id == "new"
        assert merged.roles == ["GROUP_OWNER"]
        # Omitted booleans default to False
        assert merged.email_enabled is False
        assert merged.sms_enabled is False

    def test_count_mismatch_rebuilds_from_api(self) -> None:
        """Test that a length change rebuilds every item without secrets."""
        state = [NotificationState(type_name="PAGER_DUTY", service_key="real-key")]
        api = [
            api_notification(typeName="PAGER_DUTY", serviceKey="****-key", delayMin=0),
            api_notification(
                typeName="EMAIL",
                emailAddress="ops@example.com",
                channelName="",
                intervalMin=5,
            ),
        ]

        merged = merge_notifications(api, state)

        assert len(merged) == 2
        assert merged[0].type_name == "PAGER_DUTY"
        assert merged[0].service_key is None
        assert merged[1].email_address == "ops@example.com"
        assert merged[1].channel_name is None
        assert merged[1].interval_min == 5
        for item in merged:
            for name in SENSITIVE_NOTIFICATION_FIELDS:
                assert getattr(item, name) is None

    def test_import_with_empty_state(self) -> None:
        """Test that an import (no prior items) takes everything from the API."""
        merged = merge_notifications([api_notification(typeName="SMS", mobileNumber="+1555")], [])

        assert merged[0].mobile_number == "+1555"

    def test_api_without_notifications(self) -> None:
        """Test that a missing list yields an empty result."""
        assert merge_notifications(None, []) == []
        assert merge_notifications(None, [NotificationState(type_name="SMS")]) == []


class TestMergeMatchers:
    """Tests for merge_matchers."""

    def test_count_match_only_refreshes_set_fields(self) -> None:
        state = [MatcherState(field_name="HOSTNAME", operator="EQUALS")]
        api = [Matcher(field_name="HOSTNAME", operator="CONTAINS", value="db")]

        merged = merge_matchers(api, state)

        assert merged == [MatcherState(field_name="HOSTNAME", operator="CONTAINS", value=None)]

    def test_count_mismatch_rebuilds(self) -> None:
        api = [
            Matcher(field_name="HOSTNAME", operator="EQUALS", value=""),
            Matcher(field_name="PORT", operator="EQUALS", value="27017"),
        ]

        merged = merge_matchers(api, [])

        assert merged[0].value is None
        assert merged[1] == MatcherState(field_name="PORT", operator="EQUALS", value="27017")


class TestMergeThresholds:
    """Tests for the single-item threshold blocks."""

    def test_api_without_block_yields_empty(self) -> None:
        state = [MetricThresholdConfigState(metric_name="ASSERT_REGULAR", threshold=1)]

        assert merge_metric_threshold(None, state) == []
        assert merge_threshold(None, [ThresholdConfigState(threshold=1)]) == []

    def test_empty_state_builds_from_api(self) -> None:
        api = MetricThreshold(
            metric_name="ASSERT_REGULAR", operator="LESS_THAN", threshold=99.0, units="RAW", mode=""
        )

        merged = merge_metric_threshold(api, [])

        assert merged == [
            MetricThresholdConfigState(
                metric_name="ASSERT_REGULAR",
                operator="LESS_THAN",
                threshold=99.0,
                units="RAW",
                mode=None,
            )
        ]

    def test_threshold_always_overwritten(self) -> None:
        state = [MetricThresholdConfigState(metric_name="ASSERT_REGULAR", threshold=1.0)]
        api = MetricThreshold(
            metric_name="ASSERT_REGULAR", operator="GREATER_THAN", threshold=5.0, units="RAW"
        )

        merged = merge_metric_threshold(api, state)[0]

        assert merged.threshold == 5.0
        assert merged.metric_name == "ASSERT_REGULAR"
        assert merged.operator is None
        assert merged.units is None

    def test_plain_threshold_merge(self) -> None:
        state = [ThresholdConfigState(operator="LESS_THAN", threshold=1.0)]
        api = Threshold(operator="GREATER_THAN", units="HOURS", threshold=2.0)

        merged = merge_threshold(api, state)

        assert merged == [ThresholdConfigState(operator="GREATER_THAN", threshold=2.0, units=None)]


class TestMergeAlertConfiguration:
    """Tests for the top-level merge."""

    def test_top_level_fields(self) -> None:
        current = AlertConfigurationState(
            id="composite-id",
            project_id=PROJECT_ID,
            event_type="OLD_EVENT",
            enabled=False,
            notification=[NotificationState(type_name="PAGER_DUTY", service_key="k")],
        )
        api = AlertConfiguration.model_validate(
            {
                "id": "alert-1",
                "groupId": "someone-elses-project",
                "eventTypeName": "NO_PRIMARY",
                "created": "2024-01-01T00:00:00Z",
                "updated": "2024-01-02T00:00:00Z",
                "enabled": True,
                "notifications": [{"typeName": "PAGER_DUTY", "serviceKey": "***"}],
            }
        )

        merged = merge_alert_configuration(api, current)

        assert merged.id == "composite-id"
        assert merged.project_id == PROJECT_ID
        assert merged.alert_configuration_id == "alert-1"
        assert merged.event_type == "NO_PRIMARY"
        assert merged.created == "2024-01-01T00:00:00Z"
        assert merged.updated == "2024-01-02T00:00:00Z"
        assert merged.enabled is True
        assert merged.notification[0].service_key == "k"
        assert merged.metric_threshold_config == []
        assert merged.matcher == []


class TestRequestBuilders:
    """Tests for building request payloads from plan records."""

    @pytest.mark.parametrize("type_name", ["PAGER_DUTY", "OPS_GENIE", "VICTOR_OPS"])
    def test_interval_rejected_for_self_paging_integrations(self, type_name: str) -> None:
        with pytest.raises(NotificationConfigError) as exc_info:
            to_notification_list([NotificationState(type_name=type_name, interval_min=5)])

        assert "interval_min" in str(exc_info.value)

    def test_interval_check_is_case_insensitive(self) -> None:
        item = NotificationState.model_construct(type_name="pager_duty", interval_min=5)

        with pytest.raises(NotificationConfigError):
            to_notification_list([item])

    def test_interval_allowed_for_email(self) -> None:
        result = to_notification_list(
            [NotificationState(type_name="EMAIL", email_address="a@b.c", interval_min=5)]
        )

        assert result[0].interval_min == 5
        assert result[0].to_request()["emailAddress"] == "a@b.c"

    def test_empty_threshold_lists(self) -> None:
        assert to_threshold([]) is None
        assert to_metric_threshold([]) is None

    def test_to_alert_configuration(self) -> None:
        plan = AlertConfigurationState(
            project_id=PROJECT_ID,
            event_type="OUTSIDE_METRIC_THRESHOLD",
            enabled=True,
            metric_threshold_config=[
                MetricThresholdConfigState(
                    metric_name="ASSERT_REGULAR", operator="LESS_THAN", threshold=99, units="RAW"
                )
            ],
            matcher=[MatcherState(field_name="HOSTNAME_AND_PORT", operator="EQUALS", value="X")],
            notification=[NotificationState(type_name="GROUP", delay_min=0, sms_enabled=False)],
        )

        body = to_alert_configuration(plan).to_request()

        assert body["eventTypeName"] == "OUTSIDE_METRIC_THRESHOLD"
        assert body["metricThreshold"]["metricName"] == "ASSERT_REGULAR"
        assert body["matchers"][0]["fieldName"] == "HOSTNAME_AND_PORT"
        assert body["notifications"][0]["typeName"] == "GROUP"
        assert "threshold" not in body
