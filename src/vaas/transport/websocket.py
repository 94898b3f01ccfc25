"""WebSocket transport built on the ``websockets`` synchronous client."""

from __future__ import annotations

import logging
import threading

from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI
from websockets.sync.client import ClientConnection, connect

from vaas.errors import VaasConnectionClosedError

logger = logging.getLogger(__name__)


class WebSocketTransport:
    """Adapts a ``websockets`` client connection to the Transport protocol.

    Writes are serialized by a lock so concurrent callers only queue for the
    write itself. Reads are expected from a single thread.
    """

    def __init__(self, connection: ClientConnection) -> None:
        self._connection = connection
        self._write_lock = threading.Lock()
        self._closed = threading.Event()

    @classmethod
    def open(
        cls,
        url: str,
        keep_alive_interval: float | None = 10.0,
        open_timeout: float | None = 10.0,
    ) -> WebSocketTransport:
        """Connect to ``url``; ``keep_alive_interval=None`` disables pings."""
        try:
            connection = connect(
                url,
                open_timeout=open_timeout,
                ping_interval=keep_alive_interval,
                max_size=None,
            )
        except (OSError, InvalidHandshake, InvalidURI, TimeoutError) as exc:
            raise VaasConnectionClosedError(f"Cannot connect to {url}: {exc}") from exc
        logger.info("Connected to %s", url)
        return cls(connection)

    def send(self, frame: str) -> None:
        if self._closed.is_set():
            raise VaasConnectionClosedError()
        with self._write_lock:
            try:
                self._connection.send(frame)
            except (ConnectionClosed, OSError) as exc:
                self._closed.set()
                raise VaasConnectionClosedError(str(exc)) from exc

    def recv(self) -> str | bytes:
        """Next frame as received; binary frames are decoded by the caller."""
        try:
            message = self._connection.recv()
        except (ConnectionClosed, OSError) as exc:
            self._closed.set()
            raise VaasConnectionClosedError(str(exc)) from exc
        return message

    def close(self) -> None:
        if self._closed.is_set():
            return
        self._closed.set()
        self._connection.close()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()
