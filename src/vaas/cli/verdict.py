"""CLI commands: vaas sha256 / file / url, one session per invocation."""

from __future__ import annotations

import sys
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor

import click
from rich.console import Console
from rich.table import Table

from vaas.auth import ClientCredentialsGrantAuthenticator
from vaas.config import VaasConfig
from vaas.errors import VaasError
from vaas.protocol.messages import Verdict
from vaas.session.manager import VaasSession
from vaas.session.models import VaasVerdict

console = Console(stderr=True)
output = Console()

_MAX_WORKERS = 8

_VERDICT_COLORS = {
    Verdict.CLEAN: "green",
    Verdict.MALICIOUS: "red",
    Verdict.PUP: "yellow",
    Verdict.UNKNOWN: "blue",
}


@click.command()
@click.argument("hashes", nargs=-1, required=True)
@click.pass_context
def sha256(ctx: click.Context, hashes: tuple[str, ...]) -> None:
    """Request verdicts for SHA256 hashes."""
    _run(ctx, hashes, lambda vaas, subject: vaas.for_sha256(subject))


@click.command()
@click.argument(
    "paths", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False)
)
@click.pass_context
def file(ctx: click.Context, paths: tuple[str, ...]) -> None:
    """Request verdicts for local files, uploading unknown ones."""
    _run(ctx, paths, lambda vaas, subject: vaas.for_file(subject))


@click.command()
@click.argument("urls", nargs=-1, required=True)
@click.pass_context
def url(ctx: click.Context, urls: tuple[str, ...]) -> None:
    """Request verdicts for the content behind URLs."""
    _run(ctx, urls, lambda vaas, subject: vaas.for_url(subject))


def _run(
    ctx: click.Context,
    subjects: Sequence[str],
    request: Callable[[VaasSession, str], VaasVerdict],
) -> None:
    config: VaasConfig = ctx.obj["config"]
    try:
        token = ctx.obj.get("token") or _fetch_token(config)
        with VaasSession.from_config(config) as vaas:
            vaas.connect(token)
            results = _request_all(vaas, subjects, request)
    except VaasError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        sys.exit(2)

    table = Table(title="Verdicts", show_lines=False)
    table.add_column("Subject", style="cyan")
    table.add_column("Verdict", style="bold")
    table.add_column("Detection")
    table.add_column("SHA256", style="dim")

    failed = False
    for subject, result in zip(subjects, results):
        if isinstance(result, Exception):
            failed = True
            table.add_row(subject, "[red]error[/red]", str(result), "")
            continue
        color = _VERDICT_COLORS.get(result.verdict, "white")
        if result.verdict is Verdict.MALICIOUS:
            failed = True
        table.add_row(
            subject,
            f"[{color}]{result.verdict.value}[/{color}]",
            result.detection or "",
            result.sha256,
        )

    output.print(table)
    if failed:
        sys.exit(1)


def _request_all(
    vaas: VaasSession,
    subjects: Sequence[str],
    request: Callable[[VaasSession, str], VaasVerdict],
) -> list[VaasVerdict | Exception]:
    """Issue every request concurrently on the one session."""

    def one(subject: str) -> VaasVerdict | Exception:
        try:
            return request(vaas, subject)
        except (VaasError, ValueError, OSError) as exc:
            return exc

    workers = max(1, min(_MAX_WORKERS, len(subjects)))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(one, subjects))


def _fetch_token(config: VaasConfig) -> str:
    if not config.client_id or not config.client_secret:
        raise click.UsageError(
            "Provide --token or --client-id and --client-secret "
            "(or VAAS_CLIENT_ID / VAAS_CLIENT_SECRET)."
        )
    authenticator = ClientCredentialsGrantAuthenticator(
        config.client_id, config.client_secret, token_url=config.token_url
    )
    return authenticator.get_token()
