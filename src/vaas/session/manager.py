"""Verdict session: connection lifecycle, authentication, and public requests."""

from __future__ import annotations

import logging
import threading
import uuid
from concurrent.futures import TimeoutError as FutureTimeoutError
from pathlib import Path
from typing import BinaryIO

from vaas.config import DEFAULT_URL, VaasConfig
from vaas.errors import (
    VaasAuthenticationError,
    VaasConnectionClosedError,
    VaasInvalidStateError,
    VaasTimeoutError,
    VaasUploadError,
)
from vaas.hashing import is_sha256, sha256_bytes, sha256_file
from vaas.protocol.messages import (
    AuthRequest,
    OutboundMessage,
    Verdict,
    VerdictRequest,
    VerdictRequestForStream,
    VerdictRequestForUrl,
    VerdictResponse,
    encode,
)
from vaas.session.correlator import RequestCorrelator
from vaas.session.models import SessionState, VaasVerdict
from vaas.session.receiver import ReceiveLoop
from vaas.transport.base import Transport
from vaas.transport.websocket import WebSocketTransport
from vaas.upload import upload

logger = logging.getLogger(__name__)


def _new_guid() -> str:
    return str(uuid.uuid4())


class VaasSession:
    """One authenticated connection to the verdict service.

    Any number of threads may request verdicts concurrently; each request is
    matched to its response by guid. A session is single use: once closed,
    build a new one.
    """

    def __init__(
        self,
        url: str = DEFAULT_URL,
        timeout: float = 600.0,
        keep_alive_interval: float | None = 10.0,
        upload_timeout: float | None = None,
        use_cache: bool | None = None,
        use_hash_lookup: bool | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._keep_alive_interval = keep_alive_interval
        self._upload_timeout = upload_timeout
        self._use_cache = use_cache
        self._use_hash_lookup = use_hash_lookup

        self._state = SessionState.DISCONNECTED
        self._state_lock = threading.Lock()
        self._session_id: str | None = None
        self._transport: Transport | None = None
        self._receiver: ReceiveLoop | None = None
        self._correlator = RequestCorrelator()

    @classmethod
    def from_config(cls, config: VaasConfig) -> VaasSession:
        return cls(
            url=config.url,
            timeout=config.timeout,
            keep_alive_interval=config.keep_alive_interval,
            upload_timeout=config.upload_timeout,
            use_cache=config.use_cache,
            use_hash_lookup=config.use_hash_lookup,
        )

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def session_id(self) -> str | None:
        return self._session_id

    def __enter__(self) -> VaasSession:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # -- lifecycle ---------------------------------------------------------

    def connect(self, token: str) -> None:
        """Open the connection and authenticate with ``token``.

        Raises:
            VaasInvalidStateError: if connect was already called.
            VaasAuthenticationError: if the service rejects the token.
            VaasTimeoutError: if no authentication result arrives in time.
            VaasConnectionClosedError: if the connection cannot be opened.
        """
        with self._state_lock:
            if self._state is not SessionState.DISCONNECTED:
                raise VaasInvalidStateError(
                    f"connect() called on a {self._state.value} session"
                )
            self._state = SessionState.CONNECTING

        try:
            transport = WebSocketTransport.open(
                self._url, keep_alive_interval=self._keep_alive_interval
            )
        except VaasConnectionClosedError:
            self._set_state(SessionState.CLOSED)
            raise
        with self._state_lock:
            closed = self._state is SessionState.CLOSED
            if not closed:
                self._transport = transport
        if closed:
            transport.close()
            raise VaasConnectionClosedError("Session closed during connect")

        receiver = ReceiveLoop(
            transport, self._correlator, on_closed=self._on_connection_lost
        )
        self._receiver = receiver
        waiter = receiver.expect_auth()
        receiver.start()

        try:
            transport.send(encode(AuthRequest(token=token)))
            response = waiter.result(timeout=self._timeout)
        except FutureTimeoutError:
            receiver.cancel_auth()
            self._fail_connecting()
            raise VaasTimeoutError(
                "No authentication response before the deadline"
            ) from None
        except VaasAuthenticationError:
            self._fail_connecting()
            raise
        except VaasConnectionClosedError:
            self._set_state(SessionState.CLOSED)
            raise

        if not response.success or not response.session_id:
            self._fail_connecting()
            raise VaasAuthenticationError(response.text or "Authentication failed")

        with self._state_lock:
            closed = self._state is not SessionState.CONNECTING
            if not closed:
                self._session_id = response.session_id
                self._state = SessionState.AUTHENTICATED
        if closed:
            transport.close()
            raise VaasConnectionClosedError("Session closed during connect")
        logger.info("Authenticated to %s (session %s)", self._url, self._session_id)

    def close(self) -> None:
        """Close the connection and fail every pending request. Idempotent."""
        with self._state_lock:
            was_closed = self._state is SessionState.CLOSED
            self._state = SessionState.CLOSED
            transport = self._transport

        self._correlator.fail_all(VaasConnectionClosedError("Session closed"))
        if transport is not None:
            transport.close()
        if self._receiver is not None:
            self._receiver.join(timeout=1.0)
        if not was_closed:
            logger.info("Session to %s closed", self._url)

    # -- verdict requests --------------------------------------------------

    def for_sha256(
        self, sha256: str, guid: str | None = None, timeout: float | None = None
    ) -> VaasVerdict:
        """Request the verdict for a SHA-256 digest."""
        if not is_sha256(sha256):
            raise ValueError(f"Invalid SHA-256 digest: {sha256!r}")
        session_id = self._require_authenticated()
        request = self._hash_request(session_id, sha256.lower(), guid)
        response = self._send_and_wait(
            request, request.guid, self._timeout_for(timeout)
        )
        return VaasVerdict.from_response(response)

    def for_url(
        self, url: str, guid: str | None = None, timeout: float | None = None
    ) -> VaasVerdict:
        """Request the verdict for the content behind ``url``."""
        session_id = self._require_authenticated()
        request = VerdictRequestForUrl(
            session_id=session_id,
            url=url,
            guid=guid or _new_guid(),
            use_cache=self._use_cache,
            use_hash_lookup=self._use_hash_lookup,
        )
        response = self._send_and_wait(
            request, request.guid, self._timeout_for(timeout)
        )
        return VaasVerdict.from_response(response)

    def for_file(
        self,
        path: str | Path,
        guid: str | None = None,
        timeout: float | None = None,
    ) -> VaasVerdict:
        """Request the verdict for a local file, uploading it if unknown."""
        session_id = self._require_authenticated()
        request = self._hash_request(session_id, sha256_file(path), guid)
        return self._request_with_upload(request, Path(path), timeout)

    def for_buffer(
        self, data: bytes, guid: str | None = None, timeout: float | None = None
    ) -> VaasVerdict:
        """Request the verdict for an in-memory buffer, uploading it if unknown."""
        session_id = self._require_authenticated()
        request = self._hash_request(session_id, sha256_bytes(data), guid)
        return self._request_with_upload(request, data, timeout)

    def for_stream(
        self,
        stream: BinaryIO,
        content_length: int | None = None,
        guid: str | None = None,
        timeout: float | None = None,
    ) -> VaasVerdict:
        """Request the verdict for content read from a binary stream.

        The content has no known hash, so the service answers Unknown with an
        upload target; the stream is uploaded once and the final verdict
        awaited. A stream is consumed by the upload and cannot be retried.
        """
        session_id = self._require_authenticated()
        request = VerdictRequestForStream(
            session_id=session_id,
            guid=guid or _new_guid(),
            use_cache=self._use_cache,
            use_hash_lookup=self._use_hash_lookup,
        )
        return self._request_with_upload(
            request, stream, timeout, content_length=content_length
        )

    # -- internals ---------------------------------------------------------

    def _hash_request(
        self, session_id: str, sha256: str, guid: str | None
    ) -> VerdictRequest:
        return VerdictRequest(
            session_id=session_id,
            sha256=sha256,
            guid=guid or _new_guid(),
            use_cache=self._use_cache,
            use_hash_lookup=self._use_hash_lookup,
        )

    def _request_with_upload(
        self,
        request: VerdictRequest | VerdictRequestForStream,
        source: Path | bytes | BinaryIO,
        timeout: float | None,
        content_length: int | None = None,
    ) -> VaasVerdict:
        timeout = self._timeout_for(timeout)
        response = self._send_and_wait(request, request.guid, timeout)
        if response.verdict is not Verdict.UNKNOWN:
            return VaasVerdict.from_response(response)

        if not response.has_upload_target:
            raise VaasUploadError(
                f"Unknown verdict for {request.guid} has no upload url or token"
            )

        # Registered before uploading so a fast final verdict is not dropped.
        pending = self._correlator.register(request.guid, timeout, final_only=True)
        upload_options: dict = {"timeout": self._upload_timeout}
        if content_length is not None:
            upload_options["content_length"] = content_length
        try:
            upload(response.url, response.upload_token, source, **upload_options)
        except VaasUploadError:
            self._correlator.discard(request.guid)
            raise

        pending.restart(timeout)
        logger.debug("Uploaded %s, waiting for final verdict", request.guid)
        return VaasVerdict.from_response(self._correlator.wait(pending))

    def _send_and_wait(
        self, message: OutboundMessage, guid: str, timeout: float
    ) -> VerdictResponse:
        transport = self._transport
        if transport is None or transport.closed:
            raise VaasConnectionClosedError()
        pending = self._correlator.register(guid, timeout)
        try:
            transport.send(encode(message))
        except VaasConnectionClosedError:
            self._correlator.discard(guid)
            raise
        logger.debug("Sent %s %s", message.kind, guid)
        return self._correlator.wait(pending)

    def _require_authenticated(self) -> str:
        with self._state_lock:
            state = self._state
            session_id = self._session_id
        if state is SessionState.DISCONNECTED:
            raise VaasInvalidStateError("Not connected")
        if state is SessionState.CONNECTING:
            raise VaasInvalidStateError("connect() was not completed")
        if state is SessionState.FAILED:
            raise VaasInvalidStateError("Authentication failed")
        if state is SessionState.CLOSED:
            raise VaasConnectionClosedError()
        if self._transport is None or self._transport.closed:
            raise VaasConnectionClosedError()
        if session_id is None:
            raise VaasInvalidStateError("Session has no session id")
        return session_id

    def _timeout_for(self, timeout: float | None) -> float:
        return self._timeout if timeout is None else timeout

    def _set_state(self, state: SessionState) -> None:
        with self._state_lock:
            self._state = state

    def _fail_connecting(self) -> None:
        with self._state_lock:
            if self._state is SessionState.CONNECTING:
                self._state = SessionState.FAILED

    def _on_connection_lost(self, error: Exception) -> None:
        with self._state_lock:
            was_authenticated = self._state is SessionState.AUTHENTICATED
            if was_authenticated:
                self._state = SessionState.CLOSED
        if was_authenticated:
            logger.warning("Connection to %s lost: %s", self._url, error)
