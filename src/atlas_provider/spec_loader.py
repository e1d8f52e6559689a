"""Resource document loading with validation.

SECURITY: All file operations enforce size limits to prevent DoS attacks
via large files. Input validation is performed at the boundary.

A document describes one resource, either Kubernetes-style::

    apiVersion: atlas.mongodb.com/v1
    kind: AlertConfiguration
    metadata:
      name: cpu-high
    spec:
      project_id: 5f3c...
      event_type: OUTSIDE_METRIC_THRESHOLD

or flat, with ``kind`` and ``name`` next to the resource fields. A file may
hold several documents separated by ``---``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .config import MAX_SPEC_FILE_SIZE_BYTES
from .errors import AtlasProviderError, format_validation_errors
from .models import (
    PLAN_CONTEXT,
    AlertConfigurationState,
    CloudBackupSnapshotState,
    ProjectState,
    SharedTierRestoreJobsState,
    StateModel,
)

logger = logging.getLogger(__name__)


class SpecLoadError(AtlasProviderError):
    """Raised when spec loading or validation fails."""

    pass


KIND_ALERT_CONFIGURATION = "AlertConfiguration"
KIND_CLOUD_BACKUP_SNAPSHOT = "CloudBackupSnapshot"
KIND_PROJECT = "Project"
KIND_SHARED_TIER_RESTORE_JOBS = "SharedTierRestoreJobs"

KIND_MODELS: dict[str, type[StateModel]] = {
    KIND_ALERT_CONFIGURATION: AlertConfigurationState,
    KIND_CLOUD_BACKUP_SNAPSHOT: CloudBackupSnapshotState,
    KIND_PROJECT: ProjectState,
    KIND_SHARED_TIER_RESTORE_JOBS: SharedTierRestoreJobsState,
}

DATA_SOURCE_KINDS = frozenset({KIND_SHARED_TIER_RESTORE_JOBS})

# Names become file names in the state directory
NAME_PATTERN = re.compile(r"^[a-z0-9]([a-z0-9_.-]{0,62}[a-z0-9])?$")


@dataclass(frozen=True)
class ResourceSpec:
    """One validated resource document."""

    kind: str
    name: str
    spec: StateModel

    @property
    def address(self) -> str:
        return f"{self.kind}.{self.name}"

    @property
    def is_data_source(self) -> bool:
        return self.kind in DATA_SOURCE_KINDS


def get_model_class(kind: str) -> type[StateModel]:
    """Get the state model for a resource kind.

    Raises:
        ValueError: If the kind is not recognized.
    """
    model = KIND_MODELS.get(kind)
    if model is None:
        raise ValueError(f"Unknown kind '{kind}'. Valid kinds: {sorted(KIND_MODELS)}")
    return model


def validate_name(name: Any) -> str:
    if not isinstance(name, str) or not NAME_PATTERN.match(name):
        raise ValueError(
            f"Invalid resource name {name!r}: use lowercase letters, digits, '-', '_' or '.'"
        )
    return name


def parse_document(raw_data: Any, source: str) -> ResourceSpec:
    """Validate one parsed YAML document.

    Raises:
        SpecLoadError: If the document is malformed or fails validation.
    """
    if not isinstance(raw_data, dict):
        raise SpecLoadError(f"Document must be a YAML mapping: {source}")

    kind = raw_data.get("kind")
    if not kind:
        raise SpecLoadError(f"Document has no 'kind': {source}")

    try:
        model_class = get_model_class(kind)
    except ValueError as e:
        raise SpecLoadError(f"{e}: {source}") from e

    # Support both flat format and Kubernetes-style wrapper
    if "apiVersion" in raw_data and "spec" in raw_data:
        metadata = raw_data.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise SpecLoadError(f"Metadata section must be a mapping: {source}")
        name = metadata.get("name")
        spec_data = raw_data.get("spec", {})
        if not isinstance(spec_data, dict):
            raise SpecLoadError(f"Spec section must be a mapping: {source}")
    else:
        name = raw_data.get("name")
        # "name" doubles as a resource field for kinds that have one
        address_keys = {"kind"} if "name" in model_class.model_fields else {"kind", "name"}
        spec_data = {k: v for k, v in raw_data.items() if k not in address_keys}

    try:
        name = validate_name(name)
    except ValueError as e:
        raise SpecLoadError(f"{e}: {source}") from e

    try:
        spec = model_class.model_validate(spec_data, context=PLAN_CONTEXT)
    except ValidationError as e:
        raise SpecLoadError(
            f"Validation failed for {kind}.{name} in {source}:\n{format_validation_errors(e)}"
        ) from e

    return ResourceSpec(kind=kind, name=name, spec=spec)


def load_specs(spec_path: Path) -> list[ResourceSpec]:
    """Load and validate all resource documents in a YAML file.

    Args:
        spec_path: Path to the YAML file.

    Returns:
        Validated resources, in file order.

    Raises:
        SpecLoadError: If the file cannot be loaded or any document fails
            validation.
    """
    if not spec_path.exists():
        raise SpecLoadError(f"Spec file not found: {spec_path}")

    # SECURITY: Check file size before reading to prevent DoS
    try:
        file_size = spec_path.stat().st_size
    except OSError as e:
        raise SpecLoadError(f"Failed to stat spec file {spec_path}: {e}") from e

    if file_size > MAX_SPEC_FILE_SIZE_BYTES:
        raise SpecLoadError(
            f"Spec file exceeds maximum size of {MAX_SPEC_FILE_SIZE_BYTES} bytes: {spec_path}"
        )

    try:
        content = spec_path.read_text(encoding="utf-8")
    except OSError as e:
        raise SpecLoadError(f"Failed to read spec file {spec_path}: {e}") from e

    try:
        documents = [doc for doc in yaml.safe_load_all(content) if doc is not None]
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML in {spec_path}: {e}") from e

    if not documents:
        raise SpecLoadError(f"Spec file contains no documents: {spec_path}")

    resources = [parse_document(doc, str(spec_path)) for doc in documents]

    addresses = [r.address for r in resources]
    duplicates = sorted({a for a in addresses if addresses.count(a) > 1})
    if duplicates:
        raise SpecLoadError(f"Duplicate resources in {spec_path}: {duplicates}")

    logger.info("Loaded %d resource(s) from %s", len(resources), spec_path)
    return resources
