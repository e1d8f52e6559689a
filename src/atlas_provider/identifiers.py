"""Composite and import identifier handling.

A resource's durable handle packs several key components (project id,
cluster name, resource id) into one opaque token:

    cluster_name:Y2x1c3Rlcg==-project_id:NWY...-snapshot_id:NjQ...

Keys are sorted and every value is base64-encoded, so user-supplied names
containing ``-`` or ``:`` cannot break decoding.

Import identifiers are typed by humans and use a plainer format such as
``{project_id}-{alert_configuration_id}``.
"""

from __future__ import annotations

import base64
import binascii
import re
from collections.abc import Iterable, Mapping, Sequence

from .errors import AtlasProviderError

PAIR_DELIMITER = "-"
KEY_VALUE_DELIMITER = ":"

# Atlas object ids are 24 hex digits
SNAPSHOT_IMPORT_PATTERN = re.compile(r"(?s)^([0-9a-fA-F]{24})-(.*)-([0-9a-fA-F]{24})$")
SNAPSHOT_IMPORT_FORMAT = "{project_id}-{cluster_name}-{snapshot_id}"


class IdentifierFormatError(AtlasProviderError):
    """Raised when an identifier does not have the expected shape."""

    def __init__(self, message: str, expected_format: str | None = None) -> None:
        self.expected_format = expected_format
        if expected_format:
            message = f"{message}, use the format {expected_format}"
        super().__init__(message)


def encode_state_id(values: Mapping[str, str]) -> str:
    """Encode a mapping of key components into one opaque identifier."""
    if not values:
        raise IdentifierFormatError("cannot encode an empty identifier")

    pairs = []
    for key in sorted(values):
        if not key or PAIR_DELIMITER in key or KEY_VALUE_DELIMITER in key:
            raise IdentifierFormatError(f"invalid identifier key: {key!r}")
        encoded = base64.b64encode(str(values[key]).encode("utf-8")).decode("ascii")
        pairs.append(f"{key}{KEY_VALUE_DELIMITER}{encoded}")
    return PAIR_DELIMITER.join(pairs)


def decode_state_id(token: str, expected_keys: Iterable[str] | None = None) -> dict[str, str]:
    """Decode an identifier produced by encode_state_id.

    Args:
        token: The encoded identifier.
        expected_keys: If given, the decoded keys must match exactly.

    Raises:
        IdentifierFormatError: If the token is malformed or has the wrong
            set of components.
    """
    if not token:
        raise IdentifierFormatError("identifier is empty")

    result: dict[str, str] = {}
    for pair in token.split(PAIR_DELIMITER):
        key, sep, encoded = pair.partition(KEY_VALUE_DELIMITER)
        if not sep or not key:
            raise IdentifierFormatError(f"malformed identifier component: {pair!r}")
        if key in result:
            raise IdentifierFormatError(f"duplicate identifier component: {key!r}")
        try:
            result[key] = base64.b64decode(encoded, validate=True).decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as e:
            raise IdentifierFormatError(f"invalid encoding for component {key!r}") from e

    if expected_keys is not None:
        expected = set(expected_keys)
        if set(result) != expected:
            raise IdentifierFormatError(
                f"identifier has components {sorted(result)}, expected {sorted(expected)}"
            )

    return result


def split_import_id(import_id: str, parts: Sequence[str]) -> dict[str, str]:
    """Split a two-part ``{a}-{b}`` import id.

    The split happens on the first hyphen only, so the second part may
    itself contain hyphens.

    Args:
        import_id: The id typed by the user.
        parts: Names of the two components, in order.

    Raises:
        IdentifierFormatError: Unless there are exactly two non-empty segments.
    """
    if len(parts) != 2:
        raise ValueError("split_import_id expects exactly two part names")

    expected_format = "-".join(f"{{{name}}}" for name in parts)
    segments = import_id.split(PAIR_DELIMITER, 1)
    if len(segments) != 2 or not all(segments):
        raise IdentifierFormatError("import format error", expected_format)

    return dict(zip(parts, segments, strict=True))


def split_snapshot_import_id(import_id: str) -> dict[str, str]:
    """Split a ``{project_id}-{cluster_name}-{snapshot_id}`` import id."""
    match = SNAPSHOT_IMPORT_PATTERN.match(import_id)
    if match is None:
        raise IdentifierFormatError(
            "import format error: to import a snapshot", SNAPSHOT_IMPORT_FORMAT
        )

    return {
        "project_id": match.group(1),
        "cluster_name": match.group(2),
        "snapshot_id": match.group(3),
    }
