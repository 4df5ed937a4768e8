"""Unit tests for Kubernetes base models and utilities."""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from olm_orchestrator.integrations.kubernetes.models.base import (
    K8sEntityBase,
    _get_labels,
    _get_timestamp,
    _safe_get,
)


@pytest.mark.unit
@pytest.mark.kubernetes
class TestSafeGet:
    """Test _safe_get utility function."""

    def test_safe_get_nested_attrs(self) -> None:
        """Test getting nested attributes."""
        obj = MagicMock()
        obj.metadata.name = "olm-operator"
        assert _safe_get(obj, "metadata", "name") == "olm-operator"

    def test_safe_get_missing_attr(self) -> None:
        """Test getting missing attribute returns default."""
        obj = SimpleNamespace(name="test")
        assert _safe_get(obj, "missing", default="default-value") == "default-value"

    def test_safe_get_none_intermediate(self) -> None:
        """Test getting when intermediate value is None."""
        obj = SimpleNamespace(status=None)
        assert _safe_get(obj, "status", "ready_replicas", default=0) == 0


@pytest.mark.unit
@pytest.mark.kubernetes
class TestHelpers:
    """Test timestamp and label helpers."""

    def test_timestamp_from_datetime(self) -> None:
        """Test datetimes are rendered in ISO format."""
        ts = datetime(2024, 1, 2, 3, 4, 5, tzinfo=UTC)
        assert _get_timestamp(ts) == "2024-01-02T03:04:05+00:00"

    def test_timestamp_passthrough(self) -> None:
        """Test strings and None are returned as is."""
        assert _get_timestamp("2024-01-02T03:04:05Z") == "2024-01-02T03:04:05Z"
        assert _get_timestamp(None) is None

    def test_empty_labels_are_none(self) -> None:
        """Test empty label maps collapse to None."""
        obj = SimpleNamespace(metadata=SimpleNamespace(labels={}))
        assert _get_labels(obj) is None


@pytest.mark.unit
@pytest.mark.kubernetes
class TestK8sEntityBase:
    """Test the base model."""

    def test_strips_whitespace(self) -> None:
        """Test string fields are stripped."""
        assert K8sEntityBase(name="  olm  ").name == "olm"

    def test_ignores_extra(self) -> None:
        """Test unknown fields are ignored."""
        entity = K8sEntityBase(name="olm", unknown="x")  # type: ignore[call-arg]
        assert not hasattr(entity, "unknown")
