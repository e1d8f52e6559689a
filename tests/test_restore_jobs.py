"""Tests for the shared-tier restore jobs data source."""

import pytest
from atlas_mock import MockAtlasClient, MockAtlasState

from atlas_provider.errors import ResourceOperationError, StateDecodeError
from atlas_provider.restore_jobs import SharedTierRestoreJobsDataSource


class TestSharedTierRestoreJobs:
    """Tests for SharedTierRestoreJobsDataSource.read."""

    def test_lists_and_flattens_jobs(
        self, mock_client: MockAtlasClient, mock_state: MockAtlasState
    ) -> None:
        project_id = mock_state.add_project()
        mock_state.add_cluster(project_id, "m2-cluster")
        job_id = mock_state.add_restore_job(
            project_id,
            "m2-cluster",
            restoreScheduledDate="2024-03-01T10:00:00Z",
            snapshotUrl="https://example.com/snap.tar.gz",
        )
        mock_state.add_restore_job(project_id, "m2-cluster", status="PENDING")

        result = SharedTierRestoreJobsDataSource(mock_client).read(
            {"project_id": project_id, "cluster_name": "m2-cluster"}
        )

        assert result.total_count == 2
        assert result.results[0].job_id == job_id
        assert result.results[0].restore_scheduled_date == "2024-03-01T10:00:00Z"
        assert result.results[0].snapshot_url == "https://example.com/snap.tar.gz"
        assert result.results[1].status == "PENDING"
        assert result.id

    def test_each_read_gets_a_fresh_id(
        self, mock_client: MockAtlasClient, mock_state: MockAtlasState
    ) -> None:
        project_id = mock_state.add_project()
        mock_state.add_cluster(project_id, "m2-cluster")
        source = SharedTierRestoreJobsDataSource(mock_client)
        query = {"project_id": project_id, "cluster_name": "m2-cluster"}

        first = source.read(query)
        second = source.read(query)

        assert first.id != second.id
        assert first.total_count == 0

    def test_missing_inputs(self, mock_client: MockAtlasClient) -> None:
        with pytest.raises(StateDecodeError):
            SharedTierRestoreJobsDataSource(mock_client).read({"project_id": "p"})

    def test_api_error_is_wrapped(self, mock_client: MockAtlasClient) -> None:
        with pytest.raises(ResourceOperationError) as exc_info:
            SharedTierRestoreJobsDataSource(mock_client).read(
                {"project_id": "p", "cluster_name": "missing"}
            )

        assert "missing" in str(exc_info.value)
