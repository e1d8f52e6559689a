"""Common plumbing for resource handlers.

Every handler follows the same cycle: decode the plan or prior state into
a pydantic record, make one remote call keyed by the composite
identifier, and turn the response back into a state record. This module
holds the decode and error-wrapping steps so the handlers only express
the remote call and the field mapping.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import ValidationError

from .client import AtlasClient
from .config import ProviderConfig
from .errors import ResourceOperationError, StateDecodeError, format_validation_errors
from .identifiers import IdentifierFormatError, decode_state_id, encode_state_id
from .models import PLAN_CONTEXT, StateModel

logger = logging.getLogger(__name__)

StateT = TypeVar("StateT", bound=StateModel)


class ResourceHandler(Generic[StateT]):
    """Base class for create/read/update/delete/import of one resource type.

    Subclasses set ``resource_name``, ``state_model`` and ``id_keys`` and
    implement the five operations. Each operation returns the new state
    record, or ``None`` when the remote object no longer exists.
    """

    resource_name: ClassVar[str]
    state_model: ClassVar[type[StateModel]]
    id_keys: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        client: AtlasClient,
        config: ProviderConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self._config = config
        self._sleep = sleep

    # -------------------------------------------------------------------------
    # Decode helpers
    # -------------------------------------------------------------------------

    def decode(self, data: Mapping[str, Any] | StateModel, *, plan: bool = False) -> StateT:
        """Decode a plan or state document into this handler's record.

        Plans get the desired-state checks (allowed values, required
        lists); state and API-derived records are taken as they are.

        Raises:
            StateDecodeError: If the document does not validate.
        """
        if isinstance(data, self.state_model) and not plan:
            return data  # type: ignore[return-value]
        if isinstance(data, StateModel):
            data = data.model_dump()
        try:
            return self.state_model.model_validate(  # type: ignore[return-value]
                data, context=PLAN_CONTEXT if plan else None
            )
        except ValidationError as e:
            raise StateDecodeError(
                self.resource_name, "\n" + format_validation_errors(e)
            ) from e

    def encode_id(self, **values: str) -> str:
        return encode_state_id(values)

    def decode_id(self, state: StateModel) -> dict[str, str]:
        """Decode the composite identifier stored in ``state.id``.

        Raises:
            StateDecodeError: If the record has no identifier or it is
                malformed.
        """
        token = getattr(state, "id", None)
        if not token:
            raise StateDecodeError(self.resource_name, "state has no identifier")
        try:
            return decode_state_id(token, self.id_keys)
        except IdentifierFormatError as e:
            raise StateDecodeError(self.resource_name, str(e)) from e

    def operation_error(
        self, operation: str, identifier: str, cause: Exception | str
    ) -> ResourceOperationError:
        logger.warning(
            "Atlas operation failed",
            extra={
                "operation": operation,
                "resource": self.resource_name,
                "identifier": identifier,
                "error": str(cause),
            },
        )
        return ResourceOperationError(operation, self.resource_name, identifier, cause)

    def log_gone(self, identifier: str) -> None:
        logger.info(
            "Resource not found, removing from state",
            extra={"resource": self.resource_name, "identifier": identifier},
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def requires_replace(self, plan: StateT, state: StateT) -> bool:
        """True if moving from ``state`` to ``plan`` needs delete + create."""
        return False

    def create(self, plan: Mapping[str, Any] | StateModel) -> StateT:
        raise NotImplementedError

    def read(self, state: Mapping[str, Any] | StateModel) -> StateT | None:
        raise NotImplementedError

    def update(
        self, plan: Mapping[str, Any] | StateModel, state: Mapping[str, Any] | StateModel
    ) -> StateT:
        raise NotImplementedError

    def delete(self, state: Mapping[str, Any] | StateModel) -> None:
        raise NotImplementedError

    def import_state(self, import_id: str) -> StateT:
        raise NotImplementedError

