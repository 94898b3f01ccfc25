"""Upload channel: PUT file content to the presigned url from an Unknown verdict."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import BinaryIO

import requests

from vaas.errors import VaasUploadError

logger = logging.getLogger(__name__)


def upload(
    url: str,
    token: str,
    source: str | Path | bytes | BinaryIO,
    timeout: float | None = None,
    content_length: int | None = None,
) -> None:
    """Upload ``source`` (a file path, raw bytes, or a binary stream) to ``url``.

    Files and streams are handed to requests as file objects so the body is
    streamed rather than read into memory. ``content_length`` sets the
    Content-Length header for streams whose size requests cannot determine.

    Raises:
        VaasUploadError: on any transport failure or non-2xx status.
    """
    headers = {"Authorization": token}
    if content_length is not None:
        headers["Content-Length"] = str(content_length)
    try:
        if isinstance(source, (str, Path)):
            with open(source, "rb") as body:
                response = requests.put(
                    url, data=body, headers=headers, timeout=timeout
                )
        else:
            response = requests.put(url, data=source, headers=headers, timeout=timeout)
    except (requests.RequestException, OSError) as exc:
        raise VaasUploadError(f"Upload to {url} failed: {exc}") from exc
    if not 200 <= response.status_code < 300:
        raise VaasUploadError(
            f"Upload to {url} failed with status {response.status_code}: "
            f"{response.text[:200]}"
        )
    logger.info("Uploaded %s to %s", _describe(source), url)


def _describe(source: str | Path | bytes | BinaryIO) -> str:
    if isinstance(source, bytes):
        return f"{len(source)} bytes"
    if isinstance(source, (str, Path)):
        return str(source)
    return "stream"
