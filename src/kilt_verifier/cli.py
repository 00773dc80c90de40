"""
Command-line interface for the KILT credential verifier.

Usage:
    kilt-verify credential.json
    kilt-verify https://example.com/credentials/123
    cat credential.json | kilt-verify -
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

import click
import httpx
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from kilt_verifier.config import DEFAULT_TRUSTED_ISSUERS, VerifierConfig
from kilt_verifier.kilt import DEFAULT_ENDPOINT
from kilt_verifier.results import VerificationResult
from kilt_verifier.verifier import CredentialVerifier


console = Console()


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def format_result(result: VerificationResult, offline: bool = False) -> None:
    """Format and print verification result.

    In offline mode a passing result only covers claim integrity and the
    root hash, and is labelled as such.
    """
    if result.verified and offline:
        status_icon = "[bold cyan]INTEGRITY OK (offline)[/]"
        panel_style = "cyan"
    elif result.verified:
        status_icon = "[bold green]VERIFIED[/]"
        panel_style = "green"
    elif result.retryable:
        status_icon = "[bold yellow]INCONCLUSIVE[/]"
        panel_style = "yellow"
    else:
        status_icon = "[bold red]NOT VERIFIED[/]"
        panel_style = "red"

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column("Field", style="dim")
    table.add_column("Value")

    table.add_row("Status", status_icon)

    if result.owner:
        table.add_row("Owner", result.owner)
    if result.root_hash:
        table.add_row("Root Hash", result.root_hash)
    if result.attester:
        table.add_row("Attester", result.attester)

    for check in result.checks:
        mark = "[green]ok[/]" if check.passed else "[red]failed[/]"
        table.add_row(check.stage.value, f"{mark}  {check.detail}")

    if result.reason:
        table.add_row("Reason", f"[red]{result.reason.value}[/]")

    console.print(Panel(table, title="Verification Result", border_style=panel_style))

    if result.retryable:
        console.print("\n[yellow]![/] The chain lookup failed; verification may be retried.")


def load_credential(source: str, timeout: float = 30.0) -> Any:
    """Load credential from file, URL, or stdin.

    Args:
        source: File path, URL, or "-" for stdin.
        timeout: HTTP request timeout in seconds.

    Returns:
        Parsed credential JSON.
    """
    if source == "-":
        return json.loads(sys.stdin.read())

    if source.startswith("http://") or source.startswith("https://"):
        with httpx.Client(timeout=timeout) as client:
            response = client.get(source, headers={"Accept": "application/json"})
            response.raise_for_status()
            return response.json()

    path = Path(source)
    if not path.exists():
        raise click.ClickException(f"File not found: {source}")

    with path.open(encoding="utf-8") as f:
        return json.load(f)


@click.command()
@click.argument("source", required=True)
@click.option(
    "--endpoint",
    envvar="KILT_VERIFIER_ENDPOINT",
    default=DEFAULT_ENDPOINT,
    show_default=True,
    help="KILT node JSON-RPC endpoint",
)
@click.option(
    "--trusted-issuer",
    "trusted_issuers",
    multiple=True,
    help="DID of a trusted attester (repeatable; defaults to socialkyc.io "
    "or KILT_VERIFIER_TRUSTED_ISSUERS)",
)
@click.option(
    "--offline",
    is_flag=True,
    help="Only check claim contents and root hash (no chain access)",
)
@click.option(
    "--no-ssl-verify",
    is_flag=True,
    help="Disable SSL certificate verification",
)
@click.option(
    "--json-output",
    is_flag=True,
    help="Output result as JSON",
)
@click.option(
    "--timeout",
    envvar="KILT_VERIFIER_TIMEOUT",
    type=float,
    default=30.0,
    show_default=True,
    help="Chain lookup timeout in seconds",
)
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.version_option(package_name="kilt-verifier")
def main(
    source: str,
    endpoint: str,
    trusted_issuers: tuple[str, ...],
    offline: bool,
    no_ssl_verify: bool,
    json_output: bool,
    timeout: float,
    verbose: bool,
) -> None:
    """Verify a KILT credential.

    SOURCE can be:
    - A file path (e.g., credential.json)
    - A URL (e.g., https://example.com/credentials/123)
    - "-" to read from stdin

    Examples:

        kilt-verify credential.json

        kilt-verify --offline credential.json

        cat credential.json | kilt-verify --trusted-issuer did:kilt:4pnf... -
    """
    configure_logging(verbose)

    try:
        credential = load_credential(source, timeout=timeout)

        env_config = VerifierConfig.from_env()
        config = VerifierConfig(
            endpoint=endpoint,
            trusted_issuers=(
                frozenset(trusted_issuers)
                if trusted_issuers
                else env_config.trusted_issuers or DEFAULT_TRUSTED_ISSUERS
            ),
            timeout=timeout,
            verify_ssl=env_config.verify_ssl and not no_ssl_verify,
        )

        if offline:
            verifier = CredentialVerifier(
                check_signature=False,
                check_attestation=False,
            )
        else:
            verifier = CredentialVerifier.from_config(config)

        result = asyncio.run(verifier.verify(credential))

        if json_output:
            data = result.to_dict()
            data["offline"] = offline
            console.print_json(data=data)
        else:
            format_result(result, offline=offline)

        sys.exit(0 if result.verified else 1)

    except json.JSONDecodeError as e:
        if json_output:
            console.print_json(data={"error": f"Invalid JSON: {e}"})
        else:
            console.print(f"[red]Error:[/] Invalid JSON: {e}")
        sys.exit(2)

    except httpx.HTTPError as e:
        if json_output:
            console.print_json(data={"error": f"HTTP error: {e}"})
        else:
            console.print(f"[red]Error:[/] HTTP error: {e}")
        sys.exit(2)

    except ValueError as e:
        if json_output:
            console.print_json(data={"error": f"Invalid configuration: {e}"})
        else:
            console.print(f"[red]Error:[/] Invalid configuration: {e}")
        sys.exit(2)


if __name__ == "__main__":
    main()
