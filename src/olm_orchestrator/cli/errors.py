"""Error reporting for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesAuthError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
    KubernetesValidationError,
)
from olm_orchestrator.services.installer.exceptions import (
    BootstrapError,
    InstallerError,
    MonitoringProvisionError,
    NamespaceValidationError,
    OperatorInstallError,
)
from olm_orchestrator.utils.concurrency import OperationCancelledError

console = Console()


def _print_k8s_error(error: KubernetesError) -> None:
    if isinstance(error, KubernetesConnectionError):
        console.print("[red]Error:[/red] Cannot connect to Kubernetes cluster")
        console.print(f"  {escape(error.message)}")
        if error.original_error:
            console.print(f"  Cause: {escape(str(error.original_error))}")
        console.print(
            "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is reachable.[/dim]"
        )

    elif isinstance(error, KubernetesAuthError):
        console.print("[red]Error:[/red] Authentication/authorization failed")
        console.print(f"  {escape(error.message)}")
        console.print("\n[dim]Hint: Check your credentials, token, or RBAC permissions.[/dim]")

    elif isinstance(error, KubernetesNotFoundError):
        console.print("[red]Error:[/red] Resource not found")
        console.print(f"  {escape(error.message)}")

    elif isinstance(error, KubernetesValidationError):
        console.print("[red]Error:[/red] Validation failed")
        console.print(f"  {escape(error.message)}")

    elif isinstance(error, KubernetesTimeoutError):
        console.print("[red]Error:[/red] Operation timed out")
        console.print(f"  {escape(error.message)}")
        console.print(
            "\n[dim]Hint: Raise the poll timeout with OLM_INSTALL_POLL_TIMEOUT "
            "or check the OLM operator logs.[/dim]"
        )

    else:
        console.print(f"[red]Error:[/red] {escape(error.message)}")
        if error.status_code:
            console.print(f"  HTTP Status: {error.status_code}")


def handle_error(error: Exception) -> NoReturn:
    """Print an installer or Kubernetes error with a hint and exit 1.

    Raises:
        typer.Exit: Always exits with code 1.
    """
    if isinstance(error, OperationCancelledError):
        console.print(f"[yellow]Cancelled:[/yellow] {escape(error.reason)}")

    elif isinstance(error, OperatorInstallError):
        console.print(
            f"[red]Error:[/red] Installing operator [bold]{escape(error.operator)}[/bold] "
            f"failed while trying to {escape(error.stage)}"
        )
        if isinstance(error.cause, KubernetesError):
            _print_k8s_error(error.cause)
        else:
            console.print(f"  {escape(str(error.cause))}")

    elif isinstance(error, NamespaceValidationError):
        console.print(f"[red]Error:[/red] {escape(error.message)}")

    elif isinstance(error, (BootstrapError, MonitoringProvisionError)):
        console.print(f"[red]Error:[/red] {escape(error.message)}")
        cause = error.__cause__
        if isinstance(cause, KubernetesConnectionError):
            console.print(
                "\n[dim]Hint: Check that your kubeconfig is valid and the cluster is "
                "reachable.[/dim]"
            )

    elif isinstance(error, InstallerError):
        console.print(f"[red]Error:[/red] {escape(error.message)}")

    elif isinstance(error, KubernetesError):
        _print_k8s_error(error)

    else:
        console.print(f"[red]Error:[/red] {escape(str(error))}")

    raise typer.Exit(1)
