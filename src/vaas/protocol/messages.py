"""Wire messages: pydantic models for every frame kind and the JSON codec.

Outbound frames are built from the request models and serialized with
``encode``. Inbound frames are validated against a closed tagged union keyed
on ``kind``; anything else (malformed JSON, an unknown kind, an unknown
verdict) raises ``MessageDecodeError``.
"""

from __future__ import annotations

import enum
import json
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from vaas.errors import MessageDecodeError


class Verdict(str, enum.Enum):
    """Classification issued by the service."""

    CLEAN = "Clean"
    MALICIOUS = "Malicious"
    PUP = "Pup"
    UNKNOWN = "Unknown"


class _Message(BaseModel):
    model_config = ConfigDict(frozen=True)


class AuthRequest(_Message):
    kind: Literal["AuthRequest"] = "AuthRequest"
    token: str


class AuthResponse(_Message):
    """Result of the authentication handshake.

    The service may omit ``kind`` on this frame, so it defaults here.
    """

    kind: Literal["AuthResponse"] = "AuthResponse"
    success: bool = False
    session_id: str | None = None
    text: str | None = None


class VerdictRequest(_Message):
    kind: Literal["VerdictRequest"] = "VerdictRequest"
    session_id: str
    sha256: str
    guid: str
    use_cache: bool | None = None
    use_hash_lookup: bool | None = None


class VerdictRequestForUrl(_Message):
    kind: Literal["VerdictRequestForUrl"] = "VerdictRequestForUrl"
    session_id: str
    url: str
    guid: str
    use_cache: bool | None = None
    use_hash_lookup: bool | None = None


class VerdictRequestForStream(_Message):
    """Ask for a verdict on content the client will upload as a stream."""

    kind: Literal["VerdictRequestForStream"] = "VerdictRequestForStream"
    session_id: str
    guid: str
    use_cache: bool | None = None
    use_hash_lookup: bool | None = None


class VerdictResponse(_Message):
    kind: Literal["VerdictResponse"] = "VerdictResponse"
    guid: str
    verdict: Verdict
    sha256: str = ""
    detection: str | None = None
    url: str | None = None
    upload_token: str | None = None

    @property
    def has_upload_target(self) -> bool:
        """Whether the response carries a presigned upload url and token."""
        return bool(self.url) and bool(self.upload_token)


OutboundMessage = Union[
    AuthRequest, VerdictRequest, VerdictRequestForUrl, VerdictRequestForStream
]

InboundMessage = Annotated[
    Union[AuthResponse, VerdictResponse],
    Field(discriminator="kind"),
]

_INBOUND = TypeAdapter(InboundMessage)


def encode(message: OutboundMessage) -> str:
    """Serialize an outbound message to a compact JSON text frame."""
    return message.model_dump_json(exclude_none=True)


def decode_auth_response(text: str | bytes) -> AuthResponse:
    """Decode the first frame of a session as an authentication result."""
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise MessageDecodeError(f"Invalid JSON frame: {exc}") from exc
    if not isinstance(data, dict):
        raise MessageDecodeError("Auth response must be a JSON object")
    kind = data.get("kind", "AuthResponse")
    if kind != "AuthResponse":
        raise MessageDecodeError(f"Expected AuthResponse, got {kind!r}")
    try:
        return AuthResponse.model_validate(data)
    except ValidationError as exc:
        raise MessageDecodeError(f"Invalid AuthResponse: {exc}") from exc


def decode_message(text: str | bytes) -> AuthResponse | VerdictResponse:
    """Decode an inbound frame into one of the known message kinds."""
    try:
        return _INBOUND.validate_json(text)
    except ValidationError as exc:
        raise MessageDecodeError(f"Invalid frame: {exc}") from exc
