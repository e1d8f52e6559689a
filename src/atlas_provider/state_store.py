"""Local state files, one JSON document per resource address.

Layout under the state directory::

    <state_dir>/<Kind>/<name>.json

Each file holds ``{"kind": ..., "name": ..., "state": {...}}``. Writes go
through a temporary file and ``os.replace`` so a crash never leaves a
half-written record behind.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

from .config import MAX_STATE_FILE_SIZE_BYTES
from .errors import AtlasProviderError
from .spec_loader import get_model_class, validate_name

logger = logging.getLogger(__name__)

STATE_SUFFIX = ".json"


class StateStoreError(AtlasProviderError):
    """Raised when a state file cannot be read or written."""

    pass


def _atomic_write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp-{os.getpid()}")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()


class StateStore:
    """Reads and writes resource state under one directory."""

    def __init__(self, state_dir: Path) -> None:
        self._root = state_dir

    def path_for(self, kind: str, name: str) -> Path:
        try:
            get_model_class(kind)
            validate_name(name)
        except ValueError as e:
            raise StateStoreError(str(e)) from e
        return self._root / kind / f"{name}{STATE_SUFFIX}"

    def load(self, kind: str, name: str) -> dict[str, Any] | None:
        """Return the stored state record, or None if there is none.

        Raises:
            StateStoreError: If the file exists but cannot be used.
        """
        path = self.path_for(kind, name)
        if not path.exists():
            return None

        try:
            if path.stat().st_size > MAX_STATE_FILE_SIZE_BYTES:
                raise StateStoreError(
                    f"State file exceeds maximum size of {MAX_STATE_FILE_SIZE_BYTES} bytes: {path}"
                )
            document = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise StateStoreError(f"Failed to read state file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise StateStoreError(f"Invalid JSON in state file {path}: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("state"), dict):
            raise StateStoreError(f"State file has no 'state' mapping: {path}")
        if document.get("kind") != kind:
            raise StateStoreError(
                f"State file {path} holds kind {document.get('kind')!r}, expected {kind!r}"
            )
        return document["state"]

    def save(self, kind: str, name: str, state: dict[str, Any]) -> Path:
        path = self.path_for(kind, name)
        content = json.dumps({"kind": kind, "name": name, "state": state}, indent=2, sort_keys=True)
        try:
            _atomic_write_text(path, content + "\n")
        except OSError as e:
            raise StateStoreError(f"Failed to write state file {path}: {e}") from e

        logger.debug("Saved state", extra={"address": f"{kind}.{name}"})
        return path

    def remove(self, kind: str, name: str) -> bool:
        """Delete a state record. Returns False if there was none."""
        path = self.path_for(kind, name)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StateStoreError(f"Failed to remove state file {path}: {e}") from e

        logger.debug("Removed state", extra={"address": f"{kind}.{name}"})
        return True
