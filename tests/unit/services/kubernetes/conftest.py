"""Shared fixtures for Kubernetes service tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any
from unittest.mock import MagicMock

import pytest
from kubernetes.client.rest import ApiException

from olm_orchestrator.integrations.kubernetes.client import KubernetesClient


@pytest.fixture
def mock_k8s_client() -> MagicMock:
    """Create a mock Kubernetes client with API sub-mocks.

    Error translation is the real one so managers raise the same exceptions
    they would against a cluster; the retry decorator is a pass-through.
    """
    mock_client = MagicMock()
    mock_client.default_namespace = "default"
    mock_client.translate_api_exception = KubernetesClient.translate_api_exception
    mock_client.make_retry_decorator.return_value = lambda fn: fn
    return mock_client


@pytest.fixture
def api_error() -> Callable[..., ApiException]:
    """Factory for ApiException instances with an optional Status reason."""

    def make(status: int, reason: str | None = None) -> ApiException:
        error = ApiException(status=status, reason=reason or "error")
        if reason:
            error.body = json.dumps({"kind": "Status", "reason": reason})
        return error

    return make


def custom_object(kind: str, name: str, namespace: str, **sections: Any) -> dict[str, Any]:
    """Build a custom object dict as returned by CustomObjectsApi."""
    return {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": kind,
        "metadata": {"name": name, "namespace": namespace, "resourceVersion": "7"},
        **sections,
    }
