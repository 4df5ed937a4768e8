"""Install command: OLM, catalog, database operators, and monitoring."""

from __future__ import annotations

import structlog
import typer

from olm_orchestrator.cli.commands.base import (
    ConfigOption,
    ContextOption,
    KubeconfigOption,
    build_installer,
    cancellable,
    console,
    print_results,
    resolve_config,
)
from olm_orchestrator.services.installer.approval import CSVWaitPolicy, InstallResult

logger = structlog.get_logger()


def _result_row(result: InstallResult) -> tuple[str, ...]:
    state = "approved" if result.approved_now else "already approved"
    details = result.install_plan
    if result.csv:
        details = f"{details} ({result.csv})"
    return (result.operator, result.namespace, state, details)


def install(
    namespaces: str | None = typer.Option(
        None,
        "--namespaces",
        help="Comma-separated database namespaces to install operators into.",
    ),
    config_path: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
    mysql: bool | None = typer.Option(
        None, "--mysql/--no-mysql", help="Install the MySQL operator."
    ),
    mongodb: bool | None = typer.Option(
        None, "--mongodb/--no-mongodb", help="Install the MongoDB operator."
    ),
    postgresql: bool | None = typer.Option(
        None, "--postgresql/--no-postgresql", help="Install the PostgreSQL operator."
    ),
    monitoring: bool | None = typer.Option(
        None, "--monitoring/--no-monitoring", help="Install the monitoring stack."
    ),
    skip_olm: bool = typer.Option(
        False, "--skip-olm", help="Assume OLM is already installed in the cluster."
    ),
    concurrency: int | None = typer.Option(
        None, "--concurrency", min=1, help="Operators installed in parallel per namespace."
    ),
    csv_wait: CSVWaitPolicy | None = typer.Option(
        None,
        "--csv-wait",
        case_sensitive=False,
        help="Wait for each operator's ClusterServiceVersion to succeed.",
    ),
) -> None:
    """Install OLM and the database operators into one or more namespaces."""
    config = resolve_config(
        config_path,
        namespaces=namespaces,
        concurrency=concurrency,
        csv_wait=csv_wait,
        **{
            "operators.mysql": mysql,
            "operators.mongodb": mongodb,
            "operators.postgresql": postgresql,
            "monitoring.enabled": monitoring,
        },
    )
    if not config.namespaces:
        console.print(
            "[red]Error:[/red] No database namespaces given. "
            "Use --namespaces or OLM_INSTALL_NAMESPACES."
        )
        raise typer.Exit(1)

    logger.info("install_started", namespaces=config.namespaces, skip_olm=skip_olm)
    with cancellable("install") as token:
        installer = build_installer(config, kubeconfig, context)
        batches = installer.install(config.namespaces, skip_olm=skip_olm, cancel=token)

    rows = []
    for batch in batches:
        rows.extend(_result_row(result) for result in batch.results)
        if batch.platform is not None:
            rows.append(_result_row(batch.platform))
    print_results("Installed Operators", rows, ["Operator", "Namespace", "Status", "Install Plan"])

    if any(batch.restarted for batch in batches):
        console.print(
            f"[yellow]Restarted[/yellow] {config.controller_deployment} "
            "to pick up new database engines."
        )
    console.print("\n[green]Installation complete.[/green]")
