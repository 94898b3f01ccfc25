"""CLI entry point: Click group with global connection options."""

from __future__ import annotations

import logging

import click

from vaas import __version__
from vaas.config import VaasConfig


@click.group()
@click.version_option(version=__version__, prog_name="vaas")
@click.option("--url", envvar="VAAS_URL", help="WebSocket url of the service.")
@click.option(
    "--token",
    envvar="VAAS_TOKEN",
    help="Bearer token; skips the OAuth token request.",
)
@click.option("--client-id", envvar="VAAS_CLIENT_ID", help="OAuth client id.")
@click.option(
    "--client-secret", envvar="VAAS_CLIENT_SECRET", help="OAuth client secret."
)
@click.option("--token-url", envvar="VAAS_TOKEN_URL", help="OAuth token endpoint.")
@click.option(
    "--timeout", type=float, help="Seconds to wait for each verdict."
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(
    ctx: click.Context,
    url: str | None,
    token: str | None,
    client_id: str | None,
    client_secret: str | None,
    token_url: str | None,
    timeout: float | None,
    verbose: bool,
) -> None:
    """VaaS: request malware verdicts for hashes, files and urls."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    config = VaasConfig.load()
    if url:
        config.url = url
    if client_id:
        config.client_id = client_id
    if client_secret:
        config.client_secret = client_secret
    if token_url:
        config.token_url = token_url
    if timeout is not None:
        config.timeout = timeout

    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["token"] = token


def _register_commands() -> None:
    from vaas.cli.verdict import file, sha256, url  # noqa: F811

    main.add_command(sha256)
    main.add_command(file)
    main.add_command(url)


_register_commands()
