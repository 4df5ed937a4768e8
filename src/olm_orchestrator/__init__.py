"""OLM orchestrator - install operators through OLM with manual approval."""

__version__ = "0.1.0"
