"""Transport protocol: all duplex transports must satisfy this."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Transport(Protocol):
    """Ordered, full-duplex stream of JSON frames."""

    def send(self, frame: str) -> None:
        """Write one frame. Raises VaasConnectionClosedError once closed."""
        ...

    def recv(self) -> str | bytes:
        """Block for the next text or binary frame.

        Raises VaasConnectionClosedError once closed.
        """
        ...

    def close(self) -> None:
        """Close the transport; safe to call more than once."""
        ...

    @property
    def closed(self) -> bool:
        """Whether the transport has been closed by either side."""
        ...
