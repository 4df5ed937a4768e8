"""Unit tests for install planning."""

from __future__ import annotations

import pytest

from olm_orchestrator.core.config.models import InstallerConfig
from olm_orchestrator.services.installer.plan import (
    PG_OPERATOR,
    PSMDB_OPERATOR,
    PXC_OPERATOR,
    build_batches,
    engine_requests,
    platform_request,
)


@pytest.mark.unit
class TestEngineRequests:
    """Tests for engine_requests."""

    def test_all_engines_by_default(self) -> None:
        """Every engine operator should be requested by default."""
        requests = engine_requests(InstallerConfig(), "db")

        assert [r.name for r in requests] == [PXC_OPERATOR, PSMDB_OPERATOR, PG_OPERATOR]
        assert {r.namespace for r in requests} == {"db"}
        assert {r.operator_group for r in requests} == {"everest-databases"}

    def test_respects_selection(self) -> None:
        """Deselected engines should be left out."""
        config = InstallerConfig(operators={"mysql": False, "mongodb": True, "postgresql": False})

        assert [r.name for r in engine_requests(config, "db")] == [PSMDB_OPERATOR]

    def test_channels_and_catalog(self) -> None:
        """Requests should use the configured channels and catalog."""
        config = InstallerConfig(channels={"postgresql": "fast-v2"}, catalog_source="my-catalog")

        pg = engine_requests(config, "db")[-1]

        assert pg.channel == "fast-v2"
        assert pg.catalog_source == "my-catalog"
        assert pg.catalog_namespace == "olm"

    def test_telemetry_env(self) -> None:
        """Disabled telemetry should be passed to the operators."""
        config = InstallerConfig(disable_telemetry=True)

        assert engine_requests(config, "db")[0].env == {"DISABLE_TELEMETRY": "true"}


@pytest.mark.unit
class TestPlatformRequest:
    """Tests for platform_request."""

    def test_watches_database_namespaces(self) -> None:
        """The platform operator should target every database namespace."""
        request = platform_request(InstallerConfig(), ["db1", "db2"])

        assert request.namespace == "everest-system"
        assert request.name == "everest-operator"
        assert request.target_namespaces == ("db1", "db2")
        assert request.env["DB_NAMESPACES"] == "db1,db2"
        assert request.env["MONITORING_NAMESPACE"] == "everest-monitoring"


@pytest.mark.unit
class TestBuildBatches:
    """Tests for build_batches."""

    def test_one_batch_per_namespace(self) -> None:
        """Each namespace should get its own batch, platform on the last."""
        batches = build_batches(InstallerConfig(), ["db1", "db2"])

        assert [b.namespace for b in batches] == ["db1", "db2"]
        assert batches[0].platform is None
        assert batches[1].platform is not None
        assert batches[1].platform.target_namespaces == ("db1", "db2")

    def test_monitoring_operator_in_first_batch(self) -> None:
        """The metrics agent should be installed with the first batch only."""
        batches = build_batches(InstallerConfig(), ["db1", "db2"])

        first = [r.name for r in batches[0].operators]
        second = [r.name for r in batches[1].operators]
        assert first[0] == "victoriametrics-operator"
        assert "victoriametrics-operator" not in second
        assert batches[0].operators[0].namespace == "everest-monitoring"

    def test_monitoring_disabled(self) -> None:
        """Without monitoring only engine operators should be batched."""
        config = InstallerConfig(monitoring={"enabled": False})

        (batch,) = build_batches(config, ["db"])

        assert [r.name for r in batch.operators] == [PXC_OPERATOR, PSMDB_OPERATOR, PG_OPERATOR]

    def test_no_namespaces(self) -> None:
        """No namespaces means nothing to install."""
        assert build_batches(InstallerConfig(), []) == []
