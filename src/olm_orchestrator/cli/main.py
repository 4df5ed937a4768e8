"""Main CLI entry point using Typer."""

from __future__ import annotations

import typer
from rich.console import Console

from olm_orchestrator import __version__
from olm_orchestrator.cli.commands import install, monitoring, upgrade
from olm_orchestrator.logging.config import configure_logging

app = typer.Typer(
    name="olm-orchestrator",
    help="Install database operators into Kubernetes through OLM.",
    add_completion=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"olm-orchestrator version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        help="Enable debug mode.",
    ),
    json_logs: bool = typer.Option(
        False,
        "--json-logs",
        help="Write log lines to the console as JSON.",
    ),
) -> None:
    """OLM orchestrator - install database operators with manual approval."""
    configure_logging(verbose=verbose, debug=debug, json_output=json_logs)


# Register subcommands
app.command()(install.install)
app.command("upgrade-operator")(upgrade.upgrade_operator)
app.command()(monitoring.monitoring)


if __name__ == "__main__":
    app()
