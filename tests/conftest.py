"""Shared test fixtures: an in-memory transport and a scripted verdict server."""

from __future__ import annotations

import json
import queue
import threading
import time
from collections.abc import Callable
from typing import Any
from unittest.mock import patch

import pytest

from vaas.errors import VaasConnectionClosedError
from vaas.session.manager import VaasSession

PUP_SHA256 = "d6f6c6b9fde37694e12b12009ad11ab9ec8dd0f193e7319c523933bdad8a50ad"
MALICIOUS_SHA256 = "ab5788279033b0a96f2d342e5f35159f103f69e0191dd391e036a1cd711791a2"
CLEAN_SHA256 = "cd617c5c1b1ff1c94a52ab8cf07192654f271a3f8bad49490288131ccb9efc1e"

UPLOAD_URL = "https://upload.example.test/upload"

_CLOSE = object()


class FakeTransport:
    """Transport double: records sent frames, replays pushed frames."""

    def __init__(self, handler: Callable[[FakeTransport, dict], None] | None = None):
        self.sent: list[dict[str, Any]] = []
        self._handler = handler
        self._inbound: queue.Queue[Any] = queue.Queue()
        self._closed = threading.Event()

    def send(self, frame: str) -> None:
        if self._closed.is_set():
            raise VaasConnectionClosedError()
        message = json.loads(frame)
        self.sent.append(message)
        if self._handler is not None:
            self._handler(self, message)

    def recv(self) -> str | bytes:
        item = self._inbound.get()
        if item is _CLOSE:
            self._closed.set()
            raise VaasConnectionClosedError("closed by peer")
        return item

    def close(self) -> None:
        if not self._closed.is_set():
            self._closed.set()
            self._inbound.put(_CLOSE)

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def push(self, frame: dict[str, Any] | str | bytes) -> None:
        if isinstance(frame, dict):
            frame = json.dumps(frame)
        self._inbound.put(frame)

    def remote_close(self) -> None:
        self._inbound.put(_CLOSE)


class FakeServer:
    """Answers AuthRequest and verdict requests the way the service does."""

    def __init__(self) -> None:
        self.valid_tokens = {"valid-token"}
        self.session_id = "session-1"
        self.verdicts: dict[str, str] = {
            PUP_SHA256: "Pup",
            MALICIOUS_SHA256: "Malicious",
        }
        self.url_verdicts: dict[str, str] = {}
        self.answer_auth = True
        self.hold = False
        self.offer_upload = True
        self.held: list[dict[str, Any]] = []
        self._held_lock = threading.Lock()

    def handle(self, transport: FakeTransport, message: dict[str, Any]) -> None:
        kind = message["kind"]
        if kind == "AuthRequest":
            if not self.answer_auth:
                return
            ok = message["token"] in self.valid_tokens
            reply: dict[str, Any] = {"kind": "AuthResponse", "success": ok}
            if ok:
                reply["session_id"] = self.session_id
            transport.push(reply)
            return

        if kind == "VerdictRequest":
            sha256 = message["sha256"]
            verdict = self.verdicts.get(sha256, "Clean")
        elif kind == "VerdictRequestForStream":
            sha256 = ""
            verdict = "Unknown"
        else:
            sha256 = CLEAN_SHA256
            verdict = self.url_verdicts.get(message["url"], "Clean")

        reply = {
            "kind": "VerdictResponse",
            "guid": message["guid"],
            "sha256": sha256,
            "verdict": verdict,
        }
        if verdict == "Malicious":
            reply["detection"] = "EICAR-Test-File"
        if verdict == "Unknown" and self.offer_upload:
            reply["url"] = UPLOAD_URL
            reply["upload_token"] = "upload-token"

        if self.hold:
            with self._held_lock:
                self.held.append(reply)
        else:
            transport.push(reply)

    def release(self, transport: FakeTransport, reverse: bool = False) -> None:
        with self._held_lock:
            held = list(reversed(self.held)) if reverse else list(self.held)
            self.held.clear()
        for reply in held:
            transport.push(reply)

    def held_count(self) -> int:
        with self._held_lock:
            return len(self.held)


def _wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while not predicate():
        if time.monotonic() > deadline:
            raise AssertionError("condition not met in time")
        time.sleep(0.005)


@pytest.fixture
def wait_until() -> Callable[..., None]:
    return _wait_until


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def transport(server: FakeServer) -> FakeTransport:
    return FakeTransport(server.handle)


@pytest.fixture
def transport_cls(transport: FakeTransport):
    with patch("vaas.session.manager.WebSocketTransport") as cls:
        cls.open.return_value = transport
        yield cls


@pytest.fixture
def session(transport_cls):
    vaas = VaasSession(url="wss://vaas.test", timeout=2.0, keep_alive_interval=None)
    yield vaas
    vaas.close()


@pytest.fixture
def connected(session: VaasSession) -> VaasSession:
    session.connect("valid-token")
    return session
