"""Unit tests for Kubernetes exceptions."""

from __future__ import annotations

import pytest

from olm_orchestrator.integrations.kubernetes.exceptions import (
    KubernetesAlreadyExistsError,
    KubernetesConflictError,
    KubernetesConnectionError,
    KubernetesError,
    KubernetesNotFoundError,
    KubernetesTimeoutError,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestKubernetesError:
    """Test KubernetesError base exception."""

    def test_init_minimal(self) -> None:
        """Test initialization with minimal arguments."""
        error = KubernetesError("Something went wrong")
        assert error.message == "Something went wrong"
        assert error.status_code is None
        assert str(error) == "Something went wrong"

    def test_str_with_location(self) -> None:
        """Test the resource location is appended."""
        error = KubernetesError(
            "Failed",
            status_code=500,
            resource_type="InstallPlan",
            resource_name="install-abc",
            namespace="db",
        )
        assert str(error) == "Failed (status: 500) [InstallPlan/install-abc in db]"


@pytest.mark.unit
@pytest.mark.kubernetes
class TestSubclasses:
    """Test the specialized exceptions."""

    def test_not_found_message(self) -> None:
        """Test the message names the missing resource."""
        error = KubernetesNotFoundError(
            resource_type="OperatorGroup", resource_name="everest", namespace="db"
        )
        assert error.status_code == 404
        assert error.message == "OperatorGroup 'everest' not found in namespace 'db'"

    def test_already_exists_is_conflict(self) -> None:
        """Test callers catching conflicts also catch already-exists."""
        error = KubernetesAlreadyExistsError(resource_type="Namespace", resource_name="db")
        assert isinstance(error, KubernetesConflictError)
        assert error.message == "Namespace 'db' already exists"

    def test_conflict_message(self) -> None:
        """Test the conflict message."""
        error = KubernetesConflictError(resource_type="InstallPlan", resource_name="p")
        assert error.status_code == 409
        assert "modified concurrently" in error.message

    def test_timeout_message(self) -> None:
        """Test the timeout is appended to the message."""
        error = KubernetesTimeoutError("Timed out waiting", timeout_seconds=2.5)
        assert error.message == "Timed out waiting (after 2.5s)"
        assert error.timeout_seconds == 2.5

    def test_connection_keeps_original(self) -> None:
        """Test the original error is kept."""
        original = OSError("refused")
        error = KubernetesConnectionError(original_error=original)
        assert error.original_error is original
