"""Session data models: lifecycle state, pending requests, and verdicts."""

from __future__ import annotations

import enum
import time
from concurrent.futures import Future
from dataclasses import dataclass, field

from vaas.protocol.messages import Verdict, VerdictResponse


class SessionState(enum.Enum):
    """Lifecycle state of a verdict session."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"
    CLOSED = "closed"


@dataclass(frozen=True)
class VaasVerdict:
    """Final classification handed back to the caller."""

    sha256: str
    verdict: Verdict
    detection: str | None = None

    @classmethod
    def from_response(cls, response: VerdictResponse) -> VaasVerdict:
        return cls(
            sha256=response.sha256,
            verdict=response.verdict,
            detection=response.detection,
        )


@dataclass
class PendingRequest:
    """An outstanding request waiting for the response with the same guid."""

    guid: str
    deadline: float
    final_only: bool = False
    future: Future[VerdictResponse] = field(default_factory=Future)

    def accepts(self, response: VerdictResponse) -> bool:
        """Whether ``response`` completes this request."""
        return not (self.final_only and response.verdict is Verdict.UNKNOWN)

    def restart(self, timeout: float) -> None:
        """Move the deadline to ``timeout`` seconds from now."""
        self.deadline = time.monotonic() + timeout

    def remaining(self) -> float:
        """Seconds left until the deadline, never negative."""
        return max(0.0, self.deadline - time.monotonic())
