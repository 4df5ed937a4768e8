"""Approve a pending operator upgrade."""

from __future__ import annotations

import typer

from olm_orchestrator.cli.commands.base import (
    ConfigOption,
    ContextOption,
    KubeconfigOption,
    NamespaceOption,
    build_installer,
    cancellable,
    console,
    resolve_config,
)


def upgrade_operator(
    name: str = typer.Argument(..., help="Subscription name of the operator."),
    namespace: NamespaceOption = "everest-system",
    config_path: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
) -> None:
    """Approve the install plan of a pending operator upgrade."""
    config = resolve_config(config_path)
    with cancellable("upgrade") as token:
        installer = build_installer(config, kubeconfig, context)
        approved = installer.upgrade_operator(name, namespace, token)

    if approved:
        console.print(f"[green]Approved upgrade of[/green] {namespace}/{name}")
    else:
        console.print(f"[dim]No pending upgrade for {namespace}/{name}[/dim]")
