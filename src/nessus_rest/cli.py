"""nessus-rest CLI - Command Line Interface.

A small Typer CLI over NessusClient for scripting scans and reports.
Connection settings come from NESSUS_* environment variables or .env.
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from nessus_rest import __version__
from nessus_rest.client import NessusClient
from nessus_rest.config import get_settings
from nessus_rest.errors import PollTimeoutError
from nessus_rest.models.scan import ScanStatus

app = typer.Typer(
    name="nessus-rest",
    help="nessus-rest - Drive a Nessus scanner over its REST interface",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold blue]nessus-rest[/] version [green]{__version__}[/]")
        raise typer.Exit()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    logger.remove()
    level = "DEBUG" if verbose else get_settings().log_level
    log_format = (
        "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <level>{message}</level>"
    )
    logger.add(sys.stderr, level=level, format=log_format)


def _connect() -> NessusClient:
    """Build a client and make sure it is logged in."""
    settings = get_settings()
    client = NessusClient(settings, autologin=False)
    if not client.authenticate(settings.username, settings.password):
        console.print(f"[red]✗[/] Failed to log in to {settings.base_url}")
        client.close()
        raise typer.Exit(1)
    return client


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
) -> None:
    """nessus-rest - Create, launch and wait for scans, download reports."""
    setup_logging(verbose)


@app.command()
def status() -> None:
    """Show scanner status and properties."""
    with _connect() as client:
        server_status = client.server_status()
        properties = client.server_properties()

    table = Table(title="Nessus Server", border_style="blue")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Status", str(server_status.get("status", "N/A")))
    table.add_row("Version", str(properties.get("server_version", "N/A")))
    table.add_row("UI Version", str(properties.get("nessus_ui_version", "N/A")))
    table.add_row("Type", str(properties.get("nessus_type", "N/A")))

    console.print(table)


@app.command()
def scans() -> None:
    """List scans."""
    with _connect() as client:
        result = client.scan_list()

    scan_list = result.get("scans") or []
    if not scan_list:
        console.print("[yellow]No scans found[/]")
        raise typer.Exit(0)

    table = Table(title="Scans", border_style="blue")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Status", style="green")

    for scan in scan_list:
        table.add_row(str(scan.get("id", "")), scan.get("name", ""), scan.get("status", ""))

    console.print(table)


def _wait(client: NessusClient, scan_id: int, timeout: float | None) -> str:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Waiting for scan {scan_id}...", total=None)
        try:
            final = client.wait_for_scan(scan_id, timeout=timeout)
        except PollTimeoutError as e:
            progress.update(task, description=f"[red]✗[/] {e}")
            raise typer.Exit(1) from None
        progress.update(task, description=f"[green]✓[/] Scan {scan_id} {final}")
    return final


@app.command()
def wait(
    scan_id: Annotated[int, typer.Argument(help="Scan ID")],
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Give up after this many seconds."),
    ] = None,
) -> None:
    """Wait until a scan is completed, canceled or imported."""
    with _connect() as client:
        final = _wait(client, scan_id, timeout)
    if final == ScanStatus.ERROR:
        raise typer.Exit(1)


@app.command(name="quick-scan")
def quick_scan(
    template: Annotated[str, typer.Argument(help="Template uuid, name or title")],
    name: Annotated[str, typer.Argument(help="Name of the new scan")],
    targets: Annotated[str, typer.Argument(help="Scan targets")],
    launch: Annotated[
        bool,
        typer.Option("--launch/--no-launch", help="Launch the scan after creating it."),
    ] = True,
    wait_finish: Annotated[
        bool,
        typer.Option("--wait", "-w", help="Wait for the scan to finish."),
    ] = False,
) -> None:
    """Create a scan from a template and optionally launch it."""
    console.print(Panel.fit("[bold blue]Nessus Quick Scan[/]", border_style="blue"))
    with _connect() as client:
        created = client.scan_quick_template(template, name, targets)
        scan_id = ((created or {}).get("scan") or {}).get("id")
        if scan_id is None:
            console.print(f"[red]✗[/] Could not create scan from template {template!r}")
            raise typer.Exit(1)
        console.print(f"[green]✓[/] Created scan {scan_id}")

        if launch:
            client.scan_launch(scan_id)
            console.print(f"[green]✓[/] Launched scan {scan_id}")
            if wait_finish:
                _wait(client, scan_id, None)


@app.command()
def report(
    scan_id: Annotated[int, typer.Argument(help="Scan ID")],
    export_format: Annotated[str, typer.Argument(help="Export format (nessus, csv, html, ...)")],
    output: Annotated[Path, typer.Argument(help="Output file")],
    timeout: Annotated[
        float | None,
        typer.Option("--timeout", "-t", help="Give up after this many seconds."),
    ] = None,
) -> None:
    """Export a scan report and download it."""
    with _connect() as client:
        try:
            path = client.report_download_file(scan_id, export_format, output, timeout=timeout)
        except PollTimeoutError as e:
            console.print(f"[red]✗[/] {e}")
            raise typer.Exit(1) from None

    if path is None:
        console.print(f"[red]✗[/] Export of scan {scan_id} failed")
        raise typer.Exit(1)
    console.print(f"[green]✓[/] Report written to {path}")


@app.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    table = Table(title="nessus-rest Configuration", border_style="blue")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("URL", settings.base_url)
    table.add_row("Verify TLS", "Yes" if settings.ssl_verify else "No")
    table.add_row("Username", settings.username)
    table.add_row("Password", "Set" if settings.password.get_secret_value() else "Not set")
    table.add_row("Retries", str(settings.http_retry))
    table.add_row("Retry Sleep", f"{settings.http_sleep}s")
    table.add_row("Poll Sleep", f"{settings.poll_sleep}s")
    table.add_row("Log Level", settings.log_level)

    console.print(table)


if __name__ == "__main__":
    app()
