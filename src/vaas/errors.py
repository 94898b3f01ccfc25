"""Exception hierarchy shared by every layer of the client."""

from __future__ import annotations


class VaasError(Exception):
    """Base class for all errors raised by the vaas client."""


class VaasAuthenticationError(VaasError):
    """The service rejected the authentication token."""


class VaasInvalidStateError(VaasError):
    """An operation was attempted from a session state that forbids it."""


class VaasConnectionClosedError(VaasError):
    """The connection was closed, locally or remotely."""

    def __init__(self, message: str = "connection closed") -> None:
        super().__init__(message)


class VaasUploadError(VaasError):
    """Uploading file content to the presigned endpoint failed."""


class VaasTimeoutError(VaasError, TimeoutError):
    """No matching response arrived before the request deadline."""


class MessageDecodeError(VaasError, ValueError):
    """An inbound frame is not a valid protocol message."""
