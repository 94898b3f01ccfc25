"""Tests for CLI commands using Click's CliRunner."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

from click.testing import CliRunner
from conftest import MALICIOUS_SHA256, PUP_SHA256

from vaas.cli import main
from vaas.errors import VaasAuthenticationError, VaasTimeoutError
from vaas.protocol.messages import Verdict
from vaas.session.models import VaasVerdict


def _mock_session(session_cls: MagicMock) -> MagicMock:
    vaas = MagicMock()
    vaas.__enter__.return_value = vaas
    vaas.__exit__.return_value = False
    session_cls.from_config.return_value = vaas
    return vaas


def test_main_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "VaaS" in result.output
    assert "sha256" in result.output
    assert "file" in result.output
    assert "url" in result.output


def test_main_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_file_help():
    runner = CliRunner()
    result = runner.invoke(main, ["file", "--help"])
    assert result.exit_code == 0
    assert "PATHS" in result.output


@patch("vaas.cli.verdict.VaasSession")
def test_sha256_prints_verdicts(session_cls: MagicMock):
    vaas = _mock_session(session_cls)
    vaas.for_sha256.return_value = VaasVerdict(PUP_SHA256, Verdict.PUP)

    runner = CliRunner()
    result = runner.invoke(main, ["--token", "tok", "sha256", PUP_SHA256])

    assert result.exit_code == 0, result.output
    assert "Pup" in result.output
    vaas.connect.assert_called_once_with("tok")
    vaas.for_sha256.assert_called_once_with(PUP_SHA256)


@patch("vaas.cli.verdict.VaasSession")
def test_malicious_or_failed_exits_nonzero(session_cls: MagicMock):
    vaas = _mock_session(session_cls)

    def for_sha256(digest):
        if digest == MALICIOUS_SHA256:
            return VaasVerdict(digest, Verdict.MALICIOUS, "EICAR")
        raise VaasTimeoutError("too slow")

    vaas.for_sha256.side_effect = for_sha256

    runner = CliRunner()
    result = runner.invoke(
        main, ["--token", "tok", "sha256", MALICIOUS_SHA256, PUP_SHA256]
    )

    assert result.exit_code == 1
    assert "Malicious" in result.output
    assert "slow" in result.output


@patch("vaas.cli.verdict.VaasSession")
def test_connect_failure_exits_with_error(session_cls: MagicMock):
    vaas = _mock_session(session_cls)
    vaas.connect.side_effect = VaasAuthenticationError("bad token")

    runner = CliRunner()
    result = runner.invoke(main, ["--token", "nope", "url", "https://example.com"])

    assert result.exit_code == 2
    vaas.for_url.assert_not_called()


@patch("vaas.cli.verdict.ClientCredentialsGrantAuthenticator")
@patch("vaas.cli.verdict.VaasSession")
def test_token_fetched_from_client_credentials(
    session_cls: MagicMock, auth_cls: MagicMock, tmp_path
):
    vaas = _mock_session(session_cls)
    auth_cls.return_value.get_token.return_value = "fetched"
    sample = tmp_path / "sample.txt"
    sample.write_text("hello")
    vaas.for_file.return_value = VaasVerdict("00" * 32, Verdict.CLEAN)

    runner = CliRunner()
    result = runner.invoke(
        main,
        ["--client-id", "id", "--client-secret", "secret", "file", str(sample)],
    )

    assert result.exit_code == 0, result.output
    vaas.connect.assert_called_once_with("fetched")
    assert "Clean" in result.output


def test_missing_credentials_is_usage_error(monkeypatch, tmp_path):
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    for name in (
        "VAAS_TOKEN",
        "VAAS_CLIENT_ID",
        "VAAS_CLIENT_SECRET",
        "CLIENT_ID",
        "CLIENT_SECRET",
    ):
        monkeypatch.delenv(name, raising=False)
    runner = CliRunner()
    result = runner.invoke(main, ["sha256", PUP_SHA256])
    assert result.exit_code == 2
    assert "--token" in result.output
