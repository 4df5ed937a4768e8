"""Installer exceptions.

Kubernetes-level failures keep their own classes in
:mod:`olm_orchestrator.integrations.kubernetes.exceptions`; the classes here
add which operator and which installation stage failed.
"""

from __future__ import annotations

from enum import StrEnum


class InstallStage(StrEnum):
    """Stages of one operator installation."""

    SUBSCRIBE = "subscribe"
    APPROVE_INSTALL_PLAN = "approve install plan"
    WAIT_CSV = "wait for cluster service version"
    APPROVE_UPGRADE = "approve upgrade"


class InstallerError(Exception):
    """Base exception for installer failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class OperatorInstallError(InstallerError):
    """Installing one operator failed at a given stage.

    Attributes:
        operator: Operator (subscription) name.
        stage: Stage that failed.
        cause: The underlying error.
    """

    def __init__(self, operator: str, stage: InstallStage, cause: Exception) -> None:
        super().__init__(f"Operator {operator!r} failed at stage '{stage}': {cause}")
        self.operator = operator
        self.stage = stage
        self.cause = cause


class BootstrapError(InstallerError):
    """Installing OLM or the catalog failed."""

    def __init__(self, message: str, step: str | None = None) -> None:
        super().__init__(message if step is None else f"{message} (step: {step})")
        self.step = step


class MonitoringProvisionError(InstallerError):
    """Applying the monitoring stack failed."""

    def __init__(self, message: str, manifest: str | None = None) -> None:
        super().__init__(message if manifest is None else f"{message} [{manifest}]")
        self.manifest = manifest


class NamespaceValidationError(InstallerError, ValueError):
    """A requested namespace is not usable."""

    def __init__(self, message: str, namespace: str | None = None) -> None:
        super().__init__(message)
        self.namespace = namespace
