"""API key handling.

Atlas programmatic API keys authenticate with HTTP digest auth. The
private key is write-only as far as this codebase is concerned: it is
handed to the auth object and never logged. Notification secrets in state
are masked before anything is printed.
"""

from __future__ import annotations

import logging
from typing import Any

from requests.auth import HTTPDigestAuth

from .config import ProviderConfig
from .models import SENSITIVE_NOTIFICATION_FIELDS

logger = logging.getLogger(__name__)

MASK = "****"
VISIBLE_PREFIX_LENGTH = 4


def mask_secret(value: str | None) -> str | None:
    """Redact a secret for logging, keeping a short prefix for correlation."""
    if value is None:
        return None
    if len(value) <= VISIBLE_PREFIX_LENGTH * 2:
        return MASK
    return value[:VISIBLE_PREFIX_LENGTH] + MASK


def get_digest_auth(config: ProviderConfig) -> HTTPDigestAuth:
    """Build the digest auth object for the configured API key pair."""
    logger.info(
        "Using programmatic API key",
        extra={"public_key": mask_secret(config.public_key)},
    )
    return HTTPDigestAuth(config.public_key, config.private_key)


def redact_state(data: Any) -> Any:
    """Copy of a state document with notification secrets masked."""
    if isinstance(data, dict):
        return {
            key: mask_secret(value)
            if key in SENSITIVE_NOTIFICATION_FIELDS and isinstance(value, str)
            else redact_state(value)
            for key, value in data.items()
        }
    if isinstance(data, list):
        return [redact_state(item) for item in data]
    return data
