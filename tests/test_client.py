"""Tests for the Atlas HTTP client."""

import json
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
import requests
from requests.auth import HTTPDigestAuth

from atlas_provider.client import AtlasAPIError, AtlasClient
from atlas_provider.config import ProviderConfig
from atlas_provider.models import AlertConfiguration, Notification

BASE_URL = "https://cloud.mongodb.com/api/atlas/v1.0"


def make_response(status_code: int, payload: Any = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if payload is not None:
        response._content = json.dumps(payload).encode("utf-8")
    else:
        response._content = b""
    return response


class TestAtlasClient:
    """Tests for AtlasClient request handling."""

    def test_session_uses_digest_auth(self, provider_config: ProviderConfig) -> None:
        client = AtlasClient(provider_config)

        assert isinstance(client._session.auth, HTTPDigestAuth)
        assert client._session.headers["Accept"] == "application/json"

    def test_get_alert_configuration(self, provider_config: ProviderConfig) -> None:
        """Test URL building and camelCase decoding."""
        payload = {
            "id": "a1",
            "groupId": "p1",
            "eventTypeName": "NO_PRIMARY",
            "enabled": True,
            "notifications": [{"typeName": "SMS", "mobileNumber": "+1555", "newField": 1}],
        }
        with patch.object(
            requests.Session, "request", return_value=make_response(200, payload)
        ) as request:
            alert = AtlasClient(provider_config).get_alert_configuration("p1", "a1")

        assert alert.event_type_name == "NO_PRIMARY"
        assert alert.notifications[0].mobile_number == "+1555"
        method, url = request.call_args.args
        assert method == "GET"
        assert url == f"{BASE_URL}/groups/p1/alertConfigs/a1"
        assert request.call_args.kwargs["timeout"] == provider_config.request_timeout_seconds

    def test_list_alert_configurations(self, provider_config: ProviderConfig) -> None:
        payload = {"results": [{"id": "a1", "eventTypeName": "NO_PRIMARY"}], "totalCount": 1}
        with patch.object(
            requests.Session, "request", return_value=make_response(200, payload)
        ) as request:
            alerts = AtlasClient(provider_config).list_alert_configurations("p1")

        assert [a.id for a in alerts] == ["a1"]
        assert request.call_args.args == ("GET", f"{BASE_URL}/groups/p1/alertConfigs")

    def test_create_sends_aliased_body_without_nulls(
        self, provider_config: ProviderConfig
    ) -> None:
        alert = AlertConfiguration(
            event_type_name="NO_PRIMARY",
            enabled=True,
            notifications=[Notification(type_name="GROUP", delay_min=0)],
        )
        with patch.object(
            requests.Session, "request", return_value=make_response(201, {"id": "a1"})
        ) as request:
            AtlasClient(provider_config).create_alert_configuration("p1", alert)

        body = request.call_args.kwargs["json"]
        assert body == {
            "eventTypeName": "NO_PRIMARY",
            "enabled": True,
            "notifications": [{"typeName": "GROUP", "delayMin": 0}],
        }

    def test_enable_uses_patch(self, provider_config: ProviderConfig) -> None:
        with patch.object(
            requests.Session, "request", return_value=make_response(200, {"id": "a1"})
        ) as request:
            AtlasClient(provider_config).enable_alert_configuration("p1", "a1", False)

        assert request.call_args.args[0] == "PATCH"
        assert request.call_args.kwargs["json"] == {"enabled": False}

    def test_path_segments_are_quoted(self, provider_config: ProviderConfig) -> None:
        with patch.object(
            requests.Session,
            "request",
            return_value=make_response(200, {"name": "a/b", "stateName": "IDLE"}),
        ) as request:
            AtlasClient(provider_config).get_cluster("p1", "a/b")

        assert request.call_args.args[1].endswith("/groups/p1/clusters/a%2Fb")

    def test_not_found(self, provider_config: ProviderConfig) -> None:
        """Test that 404 maps to an error flagged as not found."""
        payload = {"errorCode": "ALERT_CONFIG_NOT_FOUND", "detail": "No alert config", "error": 404}
        with patch.object(requests.Session, "request", return_value=make_response(404, payload)):
            with pytest.raises(AtlasAPIError) as exc_info:
                AtlasClient(provider_config).get_alert_configuration("p1", "a1")

        error = exc_info.value
        assert error.is_not_found
        assert error.error_code == "ALERT_CONFIG_NOT_FOUND"
        assert "No alert config" in str(error)

    def test_server_error_without_json(self, provider_config: ProviderConfig) -> None:
        response = make_response(500)
        response._content = b"upstream exploded"
        with patch.object(requests.Session, "request", return_value=response):
            with pytest.raises(AtlasAPIError) as exc_info:
                AtlasClient(provider_config).get_project("p1")

        assert not exc_info.value.is_not_found
        assert exc_info.value.detail == "upstream exploded"

    def test_delete_returns_none_on_empty_body(self, provider_config: ProviderConfig) -> None:
        with patch.object(requests.Session, "request", return_value=make_response(204)):
            assert AtlasClient(provider_config).delete_project("p1") is None

    def test_restore_jobs_pagination_fields(self, provider_config: ProviderConfig) -> None:
        payload = {"results": [{"id": "j1", "status": "COMPLETED"}], "totalCount": 1}
        with patch.object(requests.Session, "request", return_value=make_response(200, payload)):
            page = AtlasClient(provider_config).list_shared_tier_restore_jobs("p1", "c1")

        assert page.total_count == 1
        assert page.results[0].id == "j1"

    def test_context_manager_closes_session(self, provider_config: ProviderConfig) -> None:
        session = MagicMock(spec=requests.Session)
        session.headers = {}

        with AtlasClient(provider_config, session=session):
            pass

        session.close.assert_called_once()
