"""Operator installation through OLM."""

from olm_orchestrator.services.installer.approval import (
    CSVWaitPolicy,
    InstallPlanApprovalEngine,
    InstallResult,
)
from olm_orchestrator.services.installer.bootstrap import ManifestBootstrapper
from olm_orchestrator.services.installer.coordinator import (
    BatchResult,
    InstallBatch,
    ParallelInstallCoordinator,
)
from olm_orchestrator.services.installer.exceptions import (
    BootstrapError,
    InstallerError,
    InstallStage,
    MonitoringProvisionError,
    NamespaceValidationError,
    OperatorInstallError,
)
from olm_orchestrator.services.installer.installer import Installer
from olm_orchestrator.services.installer.monitoring import MonitoringProvisioner

__all__ = [
    "BatchResult",
    "BootstrapError",
    "CSVWaitPolicy",
    "InstallBatch",
    "InstallPlanApprovalEngine",
    "InstallResult",
    "InstallStage",
    "Installer",
    "InstallerError",
    "ManifestBootstrapper",
    "MonitoringProvisionError",
    "MonitoringProvisioner",
    "NamespaceValidationError",
    "OperatorInstallError",
    "ParallelInstallCoordinator",
]
