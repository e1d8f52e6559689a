"""Atlas Admin API mock for integration testing.

This module provides an in-memory stand-in for the Atlas Admin API that
enables handler and CLI tests without network access.

Key Features:
- In-memory state for projects, clusters, alert configurations,
  snapshots and shared-tier restore jobs
- Secret obfuscation on read, like the real API
- Scripted status sequences for cluster and snapshot polling
- Error injection per client method

Usage:
    from atlas_mock import MockAtlasContext

    with MockAtlasContext() as ctx:
        provider = Provider(config)
        provider.apply(resource)

        assert ctx.state.call_count("create_alert_configuration") == 1
"""

from .client import MockAtlasClient
from .context import MockAtlasContext
from .state import MockAtlasState, new_object_id

__all__ = [
    "MockAtlasClient",
    "MockAtlasContext",
    "MockAtlasState",
    "new_object_id",
]
