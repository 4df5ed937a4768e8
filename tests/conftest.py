"""Shared pytest fixtures for olm_orchestrator tests."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Generator, Iterator
from pathlib import Path

import pytest
import structlog
import typer
from typer.testing import CliRunner

from olm_orchestrator.cli.main import app
from olm_orchestrator.logging.config import _installed_handlers


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Typer CLI test runner."""
    return CliRunner()


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_config_file(temp_dir: Path) -> Path:
    """Create a temporary installer config file."""
    config_path = temp_dir / "config.yaml"
    config_path.write_text(
        """
namespaces: [db1, db2]
concurrency: 2
operators:
  postgresql: false
monitoring:
  enabled: false
"""
    )
    return config_path


@pytest.fixture(autouse=True)
def reset_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Reset environment variables and keep log files out of the home directory."""
    for key in list(os.environ.keys()):
        if key.startswith("OLM_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("DISABLE_TELEMETRY", raising=False)
    monkeypatch.setattr("olm_orchestrator.logging.config.LOG_DIR", tmp_path / "logs")
    monkeypatch.setattr(
        "olm_orchestrator.core.config.models.CONFIG_FILE", tmp_path / "config.yaml"
    )


@pytest.fixture
def cli_app() -> typer.Typer:
    """Return the CLI app for testing."""
    return app


@pytest.fixture(autouse=True)
def isolate_logging() -> Iterator[None]:
    """Close handlers installed by configure_logging and restore the root logger."""
    root = logging.getLogger()
    original_handlers = [h for h in root.handlers if h not in _installed_handlers]
    original_level = root.level
    yield
    for handler in _installed_handlers:
        root.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()
    root.handlers = original_handlers
    root.setLevel(original_level)
    structlog.reset_defaults()
