"""Provision the monitoring stack on its own."""

from __future__ import annotations

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


def monitoring(
    config_path: ConfigOption = None,
    kubeconfig: KubeconfigOption = None,
    context: ContextOption = None,
) -> None:
    """Install the metrics agent operator and apply the monitoring manifests."""
    config = resolve_config(config_path)
    with cancellable("monitoring") as token:
        installer = build_installer(config, kubeconfig, context)
        result = installer.provision_monitoring(token)

    print_results(
        "Monitoring",
        [(result.operator, result.namespace, result.install_plan)],
        ["Operator", "Namespace", "Install Plan"],
    )
    console.print("\n[green]Monitoring stack provisioned.[/green]")
