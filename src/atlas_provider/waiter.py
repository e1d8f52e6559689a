"""Poll-until-ready waits for remote status transitions.

The remote service owns the state machine; this module only observes it.
A refresh function returns ``(record, status)``; the waiter keeps polling
on a fixed interval while the status is pending, and returns once it hits
a target status. The refresh function aborts the wait by raising, and
reports a vanished resource (HTTP 404) as the ``DELETED`` status, which
ends the wait without error.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Callable, Iterable
from typing import Any

import tenacity

from .errors import AtlasProviderError

logger = logging.getLogger(__name__)

STATUS_DELETED = "DELETED"

RefreshFunc = Callable[[], tuple[Any, str]]


class WaitTimeoutError(AtlasProviderError):
    """Raised when a status does not leave the pending set in time."""

    def __init__(self, description: str, last_status: str | None, timeout_seconds: float) -> None:
        self.last_status = last_status
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"timeout after {timeout_seconds:.0f}s waiting for {description} "
            f"(last status: {last_status or 'unknown'})"
        )


class UnexpectedStateError(AtlasProviderError):
    """Raised when the remote reports a status outside pending and target."""

    def __init__(self, description: str, status: str, expected: Iterable[str]) -> None:
        self.status = status
        super().__init__(
            f"unexpected status '{status}' for {description}, expected one of {sorted(expected)}"
        )


class StateChangeWaiter:
    """Wait for a remote status to move from ``pending`` into ``target``."""

    def __init__(
        self,
        *,
        pending: Iterable[str],
        target: Iterable[str],
        refresh: RefreshFunc,
        timeout_seconds: float,
        poll_interval_seconds: float,
        delay_seconds: float = 0.0,
        description: str = "resource",
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._pending = frozenset(pending)
        self._target = frozenset(target)
        self._refresh = refresh
        self._timeout = timeout_seconds
        self._interval = poll_interval_seconds
        self._delay = delay_seconds
        self._description = description
        self._sleep = sleep
        self._last_status: str | None = None

    @property
    def max_attempts(self) -> int:
        """Upper bound on refresh calls implied by timeout and interval."""
        return max(1, math.ceil(self._timeout / self._interval) + 1)

    def _observe(self) -> tuple[Any, str]:
        record, status = self._refresh()
        self._last_status = status

        if status == STATUS_DELETED:
            logger.info(
                "Resource disappeared while waiting",
                extra={"description": self._description},
            )
            return record, status

        if status not in self._pending and status not in self._target:
            raise UnexpectedStateError(
                self._description, status, self._pending | self._target
            )

        logger.debug(
            "Polled status",
            extra={"description": self._description, "status": status},
        )
        return record, status

    def _still_pending(self, outcome: tuple[Any, str]) -> bool:
        return outcome[1] in self._pending

    def wait(self) -> tuple[Any, str]:
        """Block until a terminal status is observed.

        Returns:
            The last ``(record, status)`` pair from the refresh function.

        Raises:
            WaitTimeoutError: If the status is still pending at the deadline.
            UnexpectedStateError: If an unknown status is observed.
            Exception: Whatever the refresh function raises.
        """
        if self._delay > 0:
            self._sleep(self._delay)

        retryer = tenacity.Retrying(
            stop=(
                tenacity.stop_after_delay(self._timeout)
                | tenacity.stop_after_attempt(self.max_attempts)
            ),
            wait=tenacity.wait_fixed(self._interval),
            retry=tenacity.retry_if_result(self._still_pending),
            sleep=self._sleep,
        )

        try:
            record, status = retryer(self._observe)
        except tenacity.RetryError as e:
            raise WaitTimeoutError(self._description, self._last_status, self._timeout) from e

        logger.info(
            "Reached terminal status",
            extra={"description": self._description, "status": status},
        )
        return record, status
