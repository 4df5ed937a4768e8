"""Shared options and helpers for installer commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from olm_orchestrator.cli.errors import handle_error
from olm_orchestrator.core.config.models import InstallerConfig, load_config
from olm_orchestrator.integrations.kubernetes.client import KubernetesClient
from olm_orchestrator.integrations.kubernetes.config import KubernetesConfig
from olm_orchestrator.integrations.kubernetes.exceptions import KubernetesError
from olm_orchestrator.logging.config import get_logger
from olm_orchestrator.services.installer.exceptions import InstallerError
from olm_orchestrator.services.installer.installer import Installer
from olm_orchestrator.services.kubernetes.cluster_gateway import ClusterGateway
from olm_orchestrator.utils.concurrency import CancelToken, OperationCancelledError

console = Console()

COLUMN_STYLES = ("cyan", "green", "dim")

# =============================================================================
# Common Typer Option Annotations
# =============================================================================

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to the installer configuration file",
        dir_okay=False,
    ),
]

KubeconfigOption = Annotated[
    str | None,
    typer.Option(
        "--kubeconfig",
        help="Path to the kubeconfig file",
    ),
]

ContextOption = Annotated[
    str | None,
    typer.Option(
        "--context",
        help="Kubeconfig context to use",
    ),
]

NamespaceOption = Annotated[
    str,
    typer.Option(
        "--namespace",
        "-n",
        help="Namespace the operator is installed in",
    ),
]


def resolve_config(path: Path | None, **overrides: Any) -> InstallerConfig:
    """Load configuration and apply command line overrides.

    ``None`` overrides are ignored. Keys may be dotted to reach nested
    sections, e.g. ``operators.mysql``.
    """
    try:
        config = load_config(path)
        data = config.model_dump()
        for key, value in overrides.items():
            if value is None:
                continue
            section, _, field = key.rpartition(".")
            target = data[section] if section else data
            target[field] = value
        return InstallerConfig.model_validate(data)
    except ValidationError as e:
        console.print("[red]Error:[/red] Invalid configuration")
        for error in e.errors():
            loc = ".".join(str(part) for part in error["loc"]) or "config"
            console.print(f"  - {loc}: {error['msg']}")
        raise typer.Exit(1) from e
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e


def build_installer(
    config: InstallerConfig,
    kubeconfig: str | None = None,
    context: str | None = None,
) -> Installer:
    """Connect to the cluster and wire an :class:`Installer`."""
    k8s_config = KubernetesConfig.from_env()
    overrides = {"kubeconfig": kubeconfig, "context": context}
    data = {**k8s_config.model_dump(), **{k: v for k, v in overrides.items() if v}}
    client = KubernetesClient(KubernetesConfig.model_validate(data))
    get_logger(__name__, component="cli").info(
        "connected_to_cluster",
        context=client.get_current_context(),
        version=client.get_cluster_version(),
    )
    gateway = ClusterGateway(client, poll_interval=config.poll_interval)
    return Installer(config, gateway)


@contextmanager
def cancellable(description: str) -> Iterator[CancelToken]:
    """Yield a token that is cancelled on Ctrl-C.

    Installer and Kubernetes errors are reported through
    :func:`olm_orchestrator.cli.errors.handle_error`.
    """
    token = CancelToken()
    try:
        yield token
    except KeyboardInterrupt:
        token.cancel(f"{description} interrupted")
        handle_error(OperationCancelledError(token.reason or "interrupted"))
    except (KubernetesError, InstallerError, OperationCancelledError) as e:
        token.cancel(str(e))
        handle_error(e)


def print_results(title: str, rows: list[tuple[str, ...]], columns: list[str]) -> None:
    """Render a result summary table."""
    table = Table(title=title)
    for index, column in enumerate(columns):
        style = COLUMN_STYLES[min(index, len(COLUMN_STYLES) - 1)]
        table.add_column(column, style=style, no_wrap=index == 0)
    for row in rows:
        table.add_row(*row)
    console.print(table)
