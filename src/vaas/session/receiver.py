"""Receive loop: the single reader of a session's inbound frames."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future

from vaas.errors import (
    MessageDecodeError,
    VaasAuthenticationError,
    VaasConnectionClosedError,
)
from vaas.protocol.messages import (
    AuthResponse,
    VerdictResponse,
    decode_auth_response,
    decode_message,
)
from vaas.session.correlator import RequestCorrelator
from vaas.transport.base import Transport

logger = logging.getLogger(__name__)


class ReceiveLoop:
    """Reads frames one at a time and routes them by guid.

    Frames are dispatched in arrival order on one background thread. The
    first frame after ``expect_auth()`` is the authentication result; every
    later frame goes to the correlator. When the transport closes, all
    pending requests fail with VaasConnectionClosedError and ``on_closed``
    is called.
    """

    def __init__(
        self,
        transport: Transport,
        correlator: RequestCorrelator,
        on_closed: Callable[[Exception], None] | None = None,
    ) -> None:
        self._transport = transport
        self._correlator = correlator
        self._on_closed = on_closed
        self._auth_waiter: Future[AuthResponse] | None = None
        self._auth_lock = threading.Lock()
        self._thread = threading.Thread(
            target=self.run, name="vaas-receive-loop", daemon=True
        )

    def expect_auth(self) -> Future[AuthResponse]:
        """Treat the next inbound frame as the authentication result."""
        waiter: Future[AuthResponse] = Future()
        with self._auth_lock:
            self._auth_waiter = waiter
        return waiter

    def cancel_auth(self) -> None:
        """Stop waiting for an authentication result."""
        waiter = self._take_auth_waiter()
        if waiter is not None:
            waiter.cancel()

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        if self._thread.is_alive() and self._thread is not threading.current_thread():
            self._thread.join(timeout)

    @property
    def is_running(self) -> bool:
        return self._thread.is_alive()

    def run(self) -> None:
        """Blocking read loop until the transport closes."""
        error = VaasConnectionClosedError()
        try:
            while True:
                try:
                    frame = self._transport.recv()
                except VaasConnectionClosedError as exc:
                    error = exc
                    break
                self._dispatch(frame)
        except Exception as exc:
            logger.exception("Receive loop crashed")
            error = VaasConnectionClosedError(f"receive loop failed: {exc}")
        finally:
            self._shutdown(error)

    def _dispatch(self, frame: str | bytes) -> None:
        waiter = self._take_auth_waiter()
        if waiter is not None:
            try:
                waiter.set_result(decode_auth_response(frame))
            except MessageDecodeError as exc:
                waiter.set_exception(VaasAuthenticationError(str(exc)))
            return

        try:
            message = decode_message(frame)
        except MessageDecodeError as exc:
            logger.warning("Dropping undecodable frame: %s", exc)
            return

        if isinstance(message, VerdictResponse):
            if self._correlator.resolve(message.guid, message):
                logger.debug(
                    "Resolved %s: %s", message.guid, message.verdict.value
                )
            else:
                logger.debug("Response for %s not awaited, dropped", message.guid)
        else:
            logger.debug("Ignoring unexpected %s frame", message.kind)

    def _take_auth_waiter(self) -> Future[AuthResponse] | None:
        with self._auth_lock:
            waiter = self._auth_waiter
            self._auth_waiter = None
        return waiter

    def _shutdown(self, error: VaasConnectionClosedError) -> None:
        waiter = self._take_auth_waiter()
        if waiter is not None:
            waiter.set_exception(error)
        self._correlator.fail_all(error)
        if self._on_closed is not None:
            self._on_closed(error)
