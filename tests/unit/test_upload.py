"""Tests for the upload channel."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from vaas.errors import VaasUploadError
from vaas.upload import upload

URL = "https://upload.example.test/upload"


def _response(status: int, text: str = "") -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.text = text
    return response


@patch("vaas.upload.requests.put")
def test_upload_streams_file(mock_put: MagicMock, tmp_path: Path):
    path = tmp_path / "sample.bin"
    path.write_bytes(b"payload")
    seen: dict = {}

    def fake_put(url, data, headers, timeout):
        seen["url"] = url
        seen["headers"] = headers
        seen["streamed"] = hasattr(data, "read")
        seen["body"] = data.read()
        return _response(200)

    mock_put.side_effect = fake_put

    upload(URL, "upload-token", path, timeout=5.0)

    assert seen == {
        "url": URL,
        "headers": {"Authorization": "upload-token"},
        "streamed": True,
        "body": b"payload",
    }


@patch("vaas.upload.requests.put")
def test_upload_bytes(mock_put: MagicMock):
    mock_put.return_value = _response(201)

    upload(URL, "tok", b"raw bytes")

    mock_put.assert_called_once_with(
        URL, data=b"raw bytes", headers={"Authorization": "tok"}, timeout=None
    )


@patch("vaas.upload.requests.put")
def test_invalid_upload_token_raises(mock_put: MagicMock):
    mock_put.return_value = _response(401, "invalid token")

    with pytest.raises(VaasUploadError, match="401"):
        upload(URL, "invalid_token", b"data")


@patch("vaas.upload.requests.put")
def test_transport_failure_is_wrapped(mock_put: MagicMock):
    cause = requests.ConnectionError("connection refused")
    mock_put.side_effect = cause

    with pytest.raises(VaasUploadError) as excinfo:
        upload(URL, "tok", b"data")
    assert excinfo.value.__cause__ is cause


@patch("vaas.upload.requests.put")
def test_missing_file_is_upload_error(mock_put: MagicMock, tmp_path: Path):
    with pytest.raises(VaasUploadError):
        upload(URL, "tok", tmp_path / "missing.bin")
    mock_put.assert_not_called()


@patch("vaas.upload.requests.put")
def test_upload_stream_with_content_length(mock_put: MagicMock):
    mock_put.return_value = _response(200)
    stream = io.BytesIO(b"streamed payload")

    upload(URL, "tok", stream, content_length=16)

    mock_put.assert_called_once_with(
        URL,
        data=stream,
        headers={"Authorization": "tok", "Content-Length": "16"},
        timeout=None,
    )
