"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for atlas_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from atlas_mock import MockAtlasClient, MockAtlasState  # noqa: E402

from atlas_provider.config import ProviderConfig, WaitConfig  # noqa: E402

ATLAS_ENV_VARS = (
    "MONGODB_ATLAS_PUBLIC_KEY",
    "MONGODB_ATLAS_PRIVATE_KEY",
    "MONGODB_ATLAS_BASE_URL",
    "ATLAS_REQUEST_TIMEOUT",
    "ATLAS_STATE_DIR",
    "ATLAS_CLUSTER_IDLE_TIMEOUT",
    "ATLAS_CLUSTER_POLL_INTERVAL",
    "ATLAS_CLUSTER_DELAY",
    "ATLAS_SNAPSHOT_TIMEOUT",
    "ATLAS_SNAPSHOT_POLL_INTERVAL",
    "ATLAS_SNAPSHOT_DELAY",
)


@pytest.fixture(autouse=True)
def clean_atlas_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep developer credentials out of the tests."""
    for name in ATLAS_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def provider_config(tmp_path: Path) -> ProviderConfig:
    """A valid configuration with short waits and a private state dir."""
    return ProviderConfig(
        public_key="testpublickey",
        private_key="test-private-key-0000",
        state_dir=tmp_path / "state",
        cluster_wait=WaitConfig(timeout_seconds=60, poll_interval_seconds=1, delay_seconds=3),
        snapshot_wait=WaitConfig(timeout_seconds=120, poll_interval_seconds=2, delay_seconds=1),
    )


@pytest.fixture
def mock_state() -> MockAtlasState:
    return MockAtlasState()


@pytest.fixture
def mock_client(mock_state: MockAtlasState) -> MockAtlasClient:
    return MockAtlasClient(mock_state)


@pytest.fixture
def sleeps() -> list[float]:
    """Collects requested sleeps instead of sleeping."""
    return []
