"""Request correlator: maps guids to pending requests and enforces deadlines.

Thread-safe: the map is guarded by a single lock. Callers block on the
request's future outside the lock, so the receive loop never waits on a
caller.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import CancelledError
from concurrent.futures import TimeoutError as FutureTimeoutError

from vaas.errors import (
    VaasConnectionClosedError,
    VaasInvalidStateError,
    VaasTimeoutError,
)
from vaas.protocol.messages import VerdictResponse
from vaas.session.models import PendingRequest

logger = logging.getLogger(__name__)


class RequestCorrelator:
    """Tracks outstanding requests keyed by their client-generated guid."""

    def __init__(self) -> None:
        self._pending: dict[str, PendingRequest] = {}
        self._lock = threading.Lock()
        self._closed_error: Exception | None = None

    def register(
        self, guid: str, timeout: float, final_only: bool = False
    ) -> PendingRequest:
        """Create a pending request that expires ``timeout`` seconds from now.

        With ``final_only`` the request ignores Unknown verdicts and keeps
        waiting for a final one.
        """
        with self._lock:
            if self._closed_error is not None:
                raise VaasConnectionClosedError(str(self._closed_error))
            if guid in self._pending:
                raise VaasInvalidStateError(f"Request {guid} is already pending")
            pending = PendingRequest(
                guid=guid,
                deadline=time.monotonic() + timeout,
                final_only=final_only,
            )
            self._pending[guid] = pending
        return pending

    def resolve(self, guid: str, response: VerdictResponse) -> bool:
        """Complete the pending request for ``guid``.

        Returns False when nothing is waiting for that guid or the waiter
        does not accept this response.
        """
        with self._lock:
            pending = self._pending.get(guid)
            if pending is None or not pending.accepts(response):
                return False
            del self._pending[guid]
        pending.future.set_result(response)
        return True

    def discard(self, guid: str) -> None:
        """Forget a pending request without completing it."""
        with self._lock:
            pending = self._pending.pop(guid, None)
        if pending is not None:
            pending.future.cancel()

    def fail_all(self, error: Exception) -> None:
        """Fail every pending request and refuse new registrations."""
        with self._lock:
            if self._closed_error is None:
                self._closed_error = error
            pending = list(self._pending.values())
            self._pending.clear()
        for entry in pending:
            if not entry.future.done():
                entry.future.set_exception(error)
        if pending:
            logger.debug("Failed %d pending request(s): %s", len(pending), error)

    def wait(self, pending: PendingRequest) -> VerdictResponse:
        """Block until the request resolves or its deadline passes."""
        try:
            return pending.future.result(timeout=pending.remaining())
        except FutureTimeoutError:
            with self._lock:
                if self._pending.get(pending.guid) is pending:
                    del self._pending[pending.guid]
            # A response may have landed between the timeout and the removal.
            if pending.future.done() and not pending.future.cancelled():
                return pending.future.result()
            raise VaasTimeoutError(
                f"No response for request {pending.guid} before the deadline"
            ) from None
        except CancelledError:
            raise VaasConnectionClosedError(
                f"Request {pending.guid} was discarded"
            ) from None

    def __contains__(self, guid: object) -> bool:
        with self._lock:
            return guid in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)
