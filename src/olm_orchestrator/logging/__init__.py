"""Logging configuration for olm_orchestrator."""

from olm_orchestrator.logging.config import configure_logging, get_logger

__all__ = ["configure_logging", "get_logger"]
