"""Exception hierarchy shared by the resource handlers.

Handlers raise these instead of letting raw HTTP or validation errors
escape, so callers always know which operation failed and on what.
"""

from __future__ import annotations

from pydantic import ValidationError


class AtlasProviderError(Exception):
    """Base class for all provider errors."""

    pass


class StateDecodeError(AtlasProviderError):
    """Raised when a plan or state document cannot be decoded."""

    def __init__(self, resource: str, detail: str) -> None:
        self.resource = resource
        self.detail = detail
        super().__init__(f"error decoding {resource}: {detail}")


class ResourceOperationError(AtlasProviderError):
    """Raised when a remote call fails for a specific resource.

    The message always embeds the operation name and the entity
    identifier so it can be surfaced to users verbatim.
    """

    def __init__(
        self,
        operation: str,
        resource: str,
        identifier: str,
        cause: Exception | str,
    ) -> None:
        self.operation = operation
        self.resource = resource
        self.identifier = identifier
        self.cause = cause
        super().__init__(f"error {operation} {resource} ({identifier}): {cause}")


def format_validation_errors(error: ValidationError) -> str:
    """Render pydantic errors as one ``loc: msg`` line per problem."""
    lines = []
    for item in error.errors():
        loc = ".".join(str(x) for x in item["loc"]) or "<root>"
        lines.append(f"  - {loc}: {item['msg']}")
    return "\n".join(lines)
